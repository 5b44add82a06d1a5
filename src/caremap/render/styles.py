"""Paint/layout expressions of the facility and isochrone layers.

Each expression has a Python mirror (``occupancy_color``,
``isochrone_colors``) used wherever a colour is needed outside the map
engine, e.g. the popup and the HTML snapshot.
"""

from __future__ import annotations

import math
from typing import Any

from caremap._constants import (
    FACILITY_FILL_COLOR,
    FACILITY_RADIUS,
    FACILITY_STROKE_WIDTH,
    LABEL_TEXT_COLOR,
    LABEL_TEXT_SIZE,
)
from caremap.config import IsochroneStyle, LabelFormat, OccupancyPalette


def occupancy_color(occupancy: float, palette: OccupancyPalette) -> str:
    """Stroke colour of a facility with the given occupancy percentage."""
    if math.isnan(occupancy) or occupancy < palette.medium_threshold:
        return palette.low
    if occupancy < palette.high_threshold:
        return palette.medium
    return palette.high


def occupancy_step_expression(palette: OccupancyPalette) -> list[Any]:
    return [
        "step",
        ["to-number", ["coalesce", ["get", "occupancy"], 0]],
        palette.low,
        palette.medium_threshold,
        palette.medium,
        palette.high_threshold,
        palette.high,
    ]


def wait_time_label_expression(label_format: LabelFormat) -> list[Any]:
    if label_format == LabelFormat.MINUTES:
        return [
            "format",
            ["get", "wait_time_label"],
            {"font-scale": 1.0},
            "\nmin",
            {"font-scale": 0.6},
        ]
    return ["get", "wait_time_label"]


def facility_circle_layer(layer_id: str, source_id: str, palette: OccupancyPalette) -> dict[str, Any]:
    return {
        "id": layer_id,
        "type": "circle",
        "source": source_id,
        "paint": {
            "circle-radius": FACILITY_RADIUS,
            "circle-color": FACILITY_FILL_COLOR,
            "circle-stroke-color": occupancy_step_expression(palette),
            "circle-stroke-width": FACILITY_STROKE_WIDTH,
        },
    }


def facility_label_layer(layer_id: str, source_id: str, label_format: LabelFormat) -> dict[str, Any]:
    return {
        "id": layer_id,
        "type": "symbol",
        "source": source_id,
        "layout": {
            "text-field": wait_time_label_expression(label_format),
            "text-size": LABEL_TEXT_SIZE,
            "text-offset": [0, 0],
            "text-anchor": "center",
            "text-justify": "center",
        },
        "paint": {"text-color": LABEL_TEXT_COLOR},
    }


def isochrone_colors(name: str, style: IsochroneStyle) -> tuple[str, str]:
    """``(fill, outline)`` colours of the isochrone named *name*."""
    if name in style.highlighted:
        return style.highlight_fill, style.highlight_outline
    return style.fill, style.outline


def _name_match(highlighted: tuple[str, ...], hit: str, miss: str) -> Any:
    if not highlighted:
        return miss
    return ["match", ["get", "name"], list(highlighted), hit, miss]


def isochrone_fill_layer(layer_id: str, source_id: str, style: IsochroneStyle) -> dict[str, Any]:
    return {
        "id": layer_id,
        "type": "fill",
        "source": source_id,
        "paint": {
            "fill-color": _name_match(style.highlighted, style.highlight_fill, style.fill),
            "fill-opacity": style.opacity,
            "fill-outline-color": _name_match(style.highlighted, style.highlight_outline, style.outline),
        },
    }
