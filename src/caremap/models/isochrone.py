"""Isochrone polygon model."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PolygonGeometry(BaseModel):
    """GeoJSON ``Polygon`` / ``MultiPolygon`` geometry (lon/lat order)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["Polygon", "MultiPolygon"]
    coordinates: list[Any] = Field(min_length=1)


class IsochronePolygon(BaseModel):
    """Area reachable within a fixed travel time from one facility.

    The ``name`` property is the correlation key. Nothing guarantees it is
    unique within a collection.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    geometry: PolygonGeometry
    properties: dict[str, Any]

    @field_validator("properties")
    @classmethod
    def _require_name(cls, value: dict[str, Any]) -> dict[str, Any]:
        name = value.get("name")
        if not isinstance(name, str):
            raise ValueError("isochrone feature needs a string 'name' property")
        return value

    @property
    def name(self) -> str:
        return self.properties["name"]

    def to_feature(self) -> dict[str, Any]:
        return {
            "type": "Feature",
            "geometry": self.geometry.model_dump(),
            "properties": dict(self.properties),
        }

    def to_feature_collection(self) -> dict[str, Any]:
        """Wrap this polygon alone in a FeatureCollection."""
        return {"type": "FeatureCollection", "features": [self.to_feature()]}
