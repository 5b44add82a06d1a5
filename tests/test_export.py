from __future__ import annotations

from pathlib import Path

from caremap.config import IsochroneStyle, MapViewConfig
from caremap.export import _isochrone_style_function, build_folium_map, export_html
from caremap.render import MapContext, MapRenderer
from caremap.state.layer import LayerAction
from tests._helpers import facility, polygon


def test_folium_map_contains_facilities_and_isochrone() -> None:
    clinic = facility("Hospital A", occupancy_percent=80.0, wait_time_minutes=12.0)

    fmap = build_folium_map(
        MapViewConfig(),
        [clinic, facility("CAP Raval", 2)],
        isochrone=polygon("Hospital A").to_feature_collection(),
        selected=clinic,
    )
    html = fmap.get_root().render()

    assert "Hospital A - 12 min" in html
    assert "CAP Raval - NaN min" in html
    assert "#7f1d1d" in html


def test_export_html_writes_renderer_state(tmp_path: Path) -> None:
    context = MapContext(MapViewConfig())
    context.open()
    renderer = MapRenderer(context)
    renderer.show_facilities([facility("Hospital A")])
    renderer.apply_isochrone(LayerAction.CREATE, polygon("Hospital A"))

    written = export_html(renderer, tmp_path / "map.html")

    assert written == tmp_path / "map.html"
    text = written.read_text(encoding="utf-8")
    assert "Hospital A" in text
    assert "leaflet" in text.lower()


def test_isochrone_style_function_uses_highlight_colors() -> None:
    style = _isochrone_style_function(IsochroneStyle())

    highlighted = style({"properties": {"name": "Vall d'Hebron Barcelona Hospital Campus"}})
    regular = style({"properties": {"name": "CAP Raval"}})

    assert highlighted == {"color": "#dc2626", "weight": 2, "fillColor": "#ef4444", "fillOpacity": 0.35}
    assert regular["fillColor"] == "#22c55e"
    assert regular["color"] == "#15803d"
