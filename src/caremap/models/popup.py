"""Popup payload model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from caremap.models.facility import Coordinates


class PopupContent(BaseModel):
    """Data shown in the popup of a clicked facility.

    Markup is left to the presentation layer; this only carries values.
    """

    model_config = ConfigDict(frozen=True)

    facility_id: str
    name: str
    coordinates: Coordinates
    occupancy_percent: float
    occupancy_color: str
    impacted_population: int
    current_staff_count: float
    wait_time_minutes: float
    details_url: str | None = None
