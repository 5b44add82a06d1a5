"""Configuration for caremap views."""

from __future__ import annotations

import dataclasses
import os
from enum import StrEnum
from typing import Any

from caremap._constants import (
    DEFAULT_BEARING,
    DEFAULT_CENTER,
    DEFAULT_ENCODING,
    DEFAULT_FACILITIES_SOURCE,
    DEFAULT_ISOCHRONES_SOURCE,
    DEFAULT_PITCH,
    DEFAULT_STYLE,
    DEFAULT_ZOOM,
    HIGHLIGHTED_FACILITIES,
    ISOCHRONE_DEFAULT_FILL,
    ISOCHRONE_DEFAULT_OUTLINE,
    ISOCHRONE_HIGHLIGHT_FILL,
    ISOCHRONE_HIGHLIGHT_OUTLINE,
    ISOCHRONE_OPACITY,
    OCCUPANCY_HIGH_COLOR,
    OCCUPANCY_HIGH_THRESHOLD,
    OCCUPANCY_LOW_COLOR,
    OCCUPANCY_MEDIUM_COLOR,
    OCCUPANCY_MEDIUM_THRESHOLD,
)
from caremap.exceptions import CareMapConfigError


class CorrelationKey(StrEnum):
    """Facility attribute joined against the isochrone ``name`` property."""

    NAME = "name"
    REGISTER_ID = "register_id"


class KeyNormalization(StrEnum):
    """How correlation keys are folded before indexing and lookup."""

    EXACT = "exact"
    TRIM = "trim"
    CASEFOLD = "casefold"


class LabelFormat(StrEnum):
    """Wait-time label rendered on top of each facility circle."""

    MINUTES = "minutes"
    PLAIN = "plain"


_DELIMITERS = {"tab": "\t", "\\t": "\t", "comma": ",", "auto": None}


def _env_delimiter(value: str) -> str | None:
    normalized = value.strip().lower()
    if normalized in _DELIMITERS:
        return _DELIMITERS[normalized]
    if value in {"\t", ","}:
        return value
    raise CareMapConfigError(f"Unsupported delimiter {value!r} (use tab, comma or auto)")


def _env_center(value: str) -> tuple[float, float]:
    parts = [part.strip() for part in value.split(",")]
    if len(parts) != 2:
        raise CareMapConfigError(f"Map center must be 'lon,lat', got {value!r}")
    try:
        return float(parts[0]), float(parts[1])
    except ValueError as exc:
        raise CareMapConfigError(f"Map center must be numeric, got {value!r}") from exc


def _env_enum(enum_cls: type[StrEnum], value: str) -> Any:
    try:
        return enum_cls(value.strip().lower())
    except ValueError as exc:
        choices = ", ".join(member.value for member in enum_cls)
        raise CareMapConfigError(f"{value!r} is not one of: {choices}") from exc


@dataclasses.dataclass(frozen=True)
class MapViewConfig:
    """View parameters handed to the map engine on creation.

    Parameters
    ----------
    center : tuple of float
        ``(lon, lat)`` of the initial view.
    zoom, pitch, bearing : float
        Initial camera parameters.
    style : str
        Opaque reference to an externally hosted visual style.
    antialias : bool
        Forwarded to engines that support it.
    """

    center: tuple[float, float] = DEFAULT_CENTER
    zoom: float = DEFAULT_ZOOM
    pitch: float = DEFAULT_PITCH
    bearing: float = DEFAULT_BEARING
    style: str = DEFAULT_STYLE
    antialias: bool = True


@dataclasses.dataclass(frozen=True)
class DataSourceConfig:
    """Where the facility table and isochrone collection come from.

    Parameters
    ----------
    facilities : str
        URL or path of the delimited facility table.
    isochrones : str
        URL or path of the isochrone FeatureCollection.
    facilities_encoding, isochrones_encoding : str
        Text encodings of the two files. Both default to UTF-16.
    delimiter : str or None
        Field delimiter of the facility table; ``None`` sniffs tab/comma
        from the header line.
    correlation_key : CorrelationKey
        Facility attribute matched against the polygon ``name`` property.
    key_normalization : KeyNormalization
        Folding applied to both sides of the join.
    label_format : LabelFormat
        Wait-time label format of the facility layer.
    fetch_retries : int
        Extra attempts after a failed fetch. ``0`` disables retries.
    fetch_retry_delay : float
        Seconds between fetch attempts.
    """

    facilities: str = DEFAULT_FACILITIES_SOURCE
    isochrones: str = DEFAULT_ISOCHRONES_SOURCE
    facilities_encoding: str = DEFAULT_ENCODING
    isochrones_encoding: str = DEFAULT_ENCODING
    delimiter: str | None = "\t"
    correlation_key: CorrelationKey = CorrelationKey.NAME
    key_normalization: KeyNormalization = KeyNormalization.EXACT
    label_format: LabelFormat = LabelFormat.MINUTES
    fetch_retries: int = 0
    fetch_retry_delay: float = 1.0

    def __post_init__(self) -> None:
        if self.delimiter is not None and self.delimiter not in {"\t", ","}:
            raise CareMapConfigError(f"Unsupported delimiter {self.delimiter!r}")
        if self.fetch_retries < 0:
            raise CareMapConfigError("fetch_retries must be >= 0")


@dataclasses.dataclass(frozen=True)
class OccupancyPalette:
    """Stroke colours of the occupancy step function.

    ``[-inf, medium) -> low``, ``[medium, high) -> medium``,
    ``[high, +inf) -> high``.
    """

    low: str = OCCUPANCY_LOW_COLOR
    medium: str = OCCUPANCY_MEDIUM_COLOR
    high: str = OCCUPANCY_HIGH_COLOR
    medium_threshold: float = OCCUPANCY_MEDIUM_THRESHOLD
    high_threshold: float = OCCUPANCY_HIGH_THRESHOLD

    def __post_init__(self) -> None:
        if self.medium_threshold >= self.high_threshold:
            raise CareMapConfigError("medium_threshold must be lower than high_threshold")


@dataclasses.dataclass(frozen=True)
class IsochroneStyle:
    """Fill of the selected isochrone.

    Polygons whose ``name`` is listed in ``highlighted`` use the highlight
    colours; every other polygon uses the default ones.
    """

    highlighted: tuple[str, ...] = HIGHLIGHTED_FACILITIES
    highlight_fill: str = ISOCHRONE_HIGHLIGHT_FILL
    highlight_outline: str = ISOCHRONE_HIGHLIGHT_OUTLINE
    fill: str = ISOCHRONE_DEFAULT_FILL
    outline: str = ISOCHRONE_DEFAULT_OUTLINE
    opacity: float = ISOCHRONE_OPACITY


@dataclasses.dataclass(frozen=True)
class CareMapConfig:
    """Top-level configuration of a facility map view.

    Parameters
    ----------
    view : MapViewConfig
        Initial camera and style.
    data : DataSourceConfig
        Input files and how to read and join them.
    palette : OccupancyPalette
        Occupancy stroke colours.
    isochrone_style : IsochroneStyle
        Selected-isochrone colours.
    details_url : str or None
        Link attached to every popup, if any.
    """

    view: MapViewConfig = dataclasses.field(default_factory=MapViewConfig)
    data: DataSourceConfig = dataclasses.field(default_factory=DataSourceConfig)
    palette: OccupancyPalette = dataclasses.field(default_factory=OccupancyPalette)
    isochrone_style: IsochroneStyle = dataclasses.field(default_factory=IsochroneStyle)
    details_url: str | None = "https://polez.shinyapps.io/smartcap/"

    @classmethod
    def from_env(cls, **overrides: Any) -> CareMapConfig:
        """Create configuration from ``CAREMAP_*`` environment variables.

        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        CareMapConfig
            Populated configuration.
        """
        env = os.environ

        view_kwargs: dict[str, Any] = {}
        if (center := env.get("CAREMAP_CENTER")) is not None:
            view_kwargs["center"] = _env_center(center)
        for env_key, field_name in (
            ("CAREMAP_ZOOM", "zoom"),
            ("CAREMAP_PITCH", "pitch"),
            ("CAREMAP_BEARING", "bearing"),
        ):
            val = env.get(env_key)
            if val is not None:
                view_kwargs[field_name] = float(val)
        if (style := env.get("CAREMAP_STYLE")) is not None:
            view_kwargs["style"] = style

        data_kwargs: dict[str, Any] = {}
        _ENV_DATA_MAP = {
            "CAREMAP_FACILITIES": "facilities",
            "CAREMAP_ISOCHRONES": "isochrones",
            "CAREMAP_FACILITIES_ENCODING": "facilities_encoding",
            "CAREMAP_ISOCHRONES_ENCODING": "isochrones_encoding",
        }
        for env_key, field_name in _ENV_DATA_MAP.items():
            val = env.get(env_key)
            if val is not None:
                data_kwargs[field_name] = val
        if (delimiter := env.get("CAREMAP_DELIMITER")) is not None:
            data_kwargs["delimiter"] = _env_delimiter(delimiter)
        if (key := env.get("CAREMAP_CORRELATION_KEY")) is not None:
            data_kwargs["correlation_key"] = _env_enum(CorrelationKey, key)
        if (normalization := env.get("CAREMAP_KEY_NORMALIZATION")) is not None:
            data_kwargs["key_normalization"] = _env_enum(KeyNormalization, normalization)
        if (label := env.get("CAREMAP_LABEL_FORMAT")) is not None:
            data_kwargs["label_format"] = _env_enum(LabelFormat, label)
        if (retries := env.get("CAREMAP_FETCH_RETRIES")) is not None:
            data_kwargs["fetch_retries"] = int(retries)

        # Nested dict overrides merge into the env-derived sections.
        view_overrides = overrides.pop("view", None)
        if isinstance(view_overrides, dict):
            view_kwargs.update(view_overrides)
        elif isinstance(view_overrides, MapViewConfig):
            view_kwargs = dataclasses.asdict(view_overrides)

        data_overrides = overrides.pop("data", None)
        if isinstance(data_overrides, dict):
            data_kwargs.update(data_overrides)
        elif isinstance(data_overrides, DataSourceConfig):
            data_kwargs = dataclasses.asdict(data_overrides)

        config_kwargs: dict[str, Any] = {
            "view": MapViewConfig(**view_kwargs),
            "data": DataSourceConfig(**data_kwargs),
        }
        if "details_url" not in overrides and "CAREMAP_DETAILS_URL" in env:
            config_kwargs["details_url"] = env["CAREMAP_DETAILS_URL"] or None

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
