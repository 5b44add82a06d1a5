"""caremap - Async healthcare-facility capacity map with travel-time isochrones."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("caremap")
except PackageNotFoundError:
    __version__ = "0+local"
from caremap.config import (
    CareMapConfig,
    CorrelationKey,
    DataSourceConfig,
    IsochroneStyle,
    KeyNormalization,
    LabelFormat,
    MapViewConfig,
    OccupancyPalette,
)
from caremap.controller import InteractionController, impacted_population
from caremap.correlation import CorrelationIndex, lookup
from caremap.exceptions import (
    CareMapConfigError,
    CareMapError,
    FetchError,
    LookupMiss,
    MapStateError,
    ParseError,
)
from caremap.models import Coordinates, Facility, IsochronePolygon, PopupContent
from caremap.render import MapContext, MapRenderer, StyleDocumentEngine
from caremap.state import Absent, Present, SelectionSource
from caremap.view import FacilityMapView

__all__ = [
    "__version__",
    "Absent",
    "CareMapConfig",
    "CareMapConfigError",
    "CareMapError",
    "Coordinates",
    "CorrelationIndex",
    "CorrelationKey",
    "DataSourceConfig",
    "Facility",
    "FacilityMapView",
    "FetchError",
    "InteractionController",
    "IsochronePolygon",
    "IsochroneStyle",
    "KeyNormalization",
    "LabelFormat",
    "LookupMiss",
    "MapContext",
    "MapRenderer",
    "MapStateError",
    "MapViewConfig",
    "OccupancyPalette",
    "ParseError",
    "PopupContent",
    "Present",
    "SelectionSource",
    "StyleDocumentEngine",
    "impacted_population",
    "lookup",
]
