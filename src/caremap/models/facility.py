"""Facility model."""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field

from caremap.config import CorrelationKey


class Coordinates(BaseModel):
    """WGS84 position of a facility."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(allow_inf_nan=False)
    lon: float = Field(allow_inf_nan=False)

    def lng_lat(self) -> tuple[float, float]:
        """``(lon, lat)`` order, as GeoJSON and the map engine expect."""
        return self.lon, self.lat


class Facility(BaseModel):
    """A healthcare site with location, capacity and staffing attributes.

    Built by :func:`caremap.ingestion.facilities.normalize_row`; a facility
    always has a non-empty name and finite coordinates.
    """

    model_config = ConfigDict(frozen=True)

    id: str = ""
    """Register identifier (``register_id`` column)."""
    name: str = Field(min_length=1)
    """Trimmed display name. Default correlation key."""
    coordinates: Coordinates
    occupancy_percent: float = 0.0
    """Capacity utilization. Not clamped to ``[0, 100]``."""
    wait_time_minutes: float = math.nan
    """Simulated wait time; NaN when the source cell is not numeric."""
    current_staff_count: float = 0.0
    is_hospital: str = ""
    """Boolean-like flag exactly as found in the source (trimmed)."""
    display_index: int = Field(ge=1)
    """1-based position among the normalized facilities, in source order."""
    address: str = ""
    phone: str = ""
    raw: dict[str, str] = Field(default_factory=dict, repr=False)
    """Original row mapping."""

    @property
    def has_wait_time(self) -> bool:
        return not math.isnan(self.wait_time_minutes)

    def correlation_value(self, key: CorrelationKey) -> str:
        """Return the attribute joined against isochrone names."""
        if key == CorrelationKey.REGISTER_ID:
            return self.id
        return self.name
