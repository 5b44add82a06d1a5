"""Static HTML snapshot of the map state, rendered with folium."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import folium

from caremap._constants import FACILITY_FILL_COLOR, FACILITY_STROKE_WIDTH
from caremap.config import IsochroneStyle, MapViewConfig, OccupancyPalette
from caremap.ingestion.normalize import format_number
from caremap.models.facility import Facility
from caremap.render.renderer import MapRenderer
from caremap.render.styles import isochrone_colors, occupancy_color

_logger = logging.getLogger(__name__)

_MARKER_RADIUS = 10


def _isochrone_style_function(style: IsochroneStyle) -> Callable[[dict[str, Any]], dict[str, Any]]:
    def _style(feature: dict[str, Any]) -> dict[str, Any]:
        fill, outline = isochrone_colors(str(feature.get("properties", {}).get("name", "")), style)
        return {"color": outline, "weight": 2, "fillColor": fill, "fillOpacity": style.opacity}

    return _style


def build_folium_map(
    view: MapViewConfig,
    facilities: Iterable[Facility],
    *,
    isochrone: dict[str, Any] | None = None,
    palette: OccupancyPalette | None = None,
    isochrone_style: IsochroneStyle | None = None,
    selected: Facility | None = None,
) -> folium.Map:
    """Build a folium map mirroring the facility and isochrone layers."""
    palette = palette or OccupancyPalette()
    isochrone_style = isochrone_style or IsochroneStyle()
    lon, lat = view.center
    fmap = folium.Map(location=[lat, lon], zoom_start=round(view.zoom), tiles="CartoDB positron", control_scale=True)

    if isochrone and isochrone.get("features"):
        folium.GeoJson(
            isochrone,
            name="Isochrone",
            style_function=_isochrone_style_function(isochrone_style),
        ).add_to(fmap)

    layer = folium.FeatureGroup(name="Facilities")
    count = 0
    for facility in facilities:
        wait_label = format_number(facility.wait_time_minutes)
        is_selected = selected is not None and facility.display_index == selected.display_index
        folium.CircleMarker(
            location=[facility.coordinates.lat, facility.coordinates.lon],
            radius=_MARKER_RADIUS * (1.4 if is_selected else 1.0),
            color=occupancy_color(facility.occupancy_percent, palette),
            weight=FACILITY_STROKE_WIDTH,
            fill=True,
            fill_color=FACILITY_FILL_COLOR,
            fill_opacity=0.9,
            tooltip=f"{facility.name} - {wait_label} min",
            popup=folium.Popup(
                f"<b>{facility.name}</b><br>Saturation: {format_number(facility.occupancy_percent)}%",
                max_width=320,
            ),
        ).add_to(layer)
        count += 1
    layer.add_to(fmap)
    folium.LayerControl(collapsed=True).add_to(fmap)
    _logger.debug("Built folium map with %d facilities", count)
    return fmap


def export_html(renderer: MapRenderer, path: str | Path, *, selected: Facility | None = None) -> Path:
    """Write the renderer's current facility and isochrone layers to *path*."""
    fmap = build_folium_map(
        renderer.context.view,
        renderer.facilities,
        isochrone=renderer.isochrone_data(),
        palette=renderer.palette,
        isochrone_style=renderer.isochrone_style,
        selected=selected,
    )
    target = Path(path)
    fmap.save(str(target))
    _logger.info("Wrote map snapshot to %s", target)
    return target
