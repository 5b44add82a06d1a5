"""Data models for caremap."""

from caremap.models.facility import Coordinates, Facility
from caremap.models.isochrone import IsochronePolygon, PolygonGeometry
from caremap.models.popup import PopupContent

__all__ = [
    "Coordinates",
    "Facility",
    "IsochronePolygon",
    "PolygonGeometry",
    "PopupContent",
]
