"""Map rendering: engine interface, layer styles and the renderer."""

from caremap.render.engine import EngineFactory, MapEngine, MapEvent, StyleDocumentEngine
from caremap.render.renderer import MapContext, MapRenderer, facility_collection, facility_feature
from caremap.render.styles import isochrone_colors, occupancy_color, occupancy_step_expression

__all__ = [
    "EngineFactory",
    "MapContext",
    "MapEngine",
    "MapEvent",
    "MapRenderer",
    "StyleDocumentEngine",
    "facility_collection",
    "facility_feature",
    "isochrone_colors",
    "occupancy_color",
    "occupancy_step_expression",
]
