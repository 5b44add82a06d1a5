"""Isochrone collection ingestion."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from caremap._constants import DEFAULT_ENCODING
from caremap._transport import Fetcher
from caremap.exceptions import FetchError, ParseError
from caremap.ingestion.tabular import decode
from caremap.models.isochrone import IsochronePolygon

_logger = logging.getLogger(__name__)


def _require_collection(document: Any, source: str) -> list[Any]:
    if not isinstance(document, dict) or document.get("type") != "FeatureCollection":
        raise ParseError(f"{source or 'input'} is not a GeoJSON FeatureCollection", source=source)
    features = document.get("features")
    if not isinstance(features, list):
        raise ParseError(f"{source or 'input'} has no 'features' array", source=source)
    return features


def parse_isochrones(raw: bytes, *, encoding: str = DEFAULT_ENCODING, source: str = "") -> list[IsochronePolygon]:
    """Decode a FeatureCollection of named polygons.

    The document is all-or-nothing: if it does not decode or is not a
    FeatureCollection, :class:`ParseError` is raised. Individual features
    without a polygon geometry or a string ``name`` are skipped.
    """
    text = decode(raw, encoding, source=source)
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON in {source or 'input'}: {exc}", source=source) from exc

    polygons: list[IsochronePolygon] = []
    for position, feature in enumerate(_require_collection(document, source)):
        try:
            polygons.append(IsochronePolygon.model_validate(feature))
        except ValidationError as exc:
            _logger.warning(
                "Skipping isochrone feature #%d in %s: %s",
                position,
                source or "input",
                exc.errors()[0].get("msg", "invalid"),
            )
    _logger.debug("Parsed %d isochrone polygons from %s", len(polygons), source or "input")
    return polygons


class IsochroneStore:
    """Fetch + parse the isochrone collection.

    ``polygons`` holds the result of the last load; failed loads leave it
    empty.
    """

    def __init__(self, fetcher: Fetcher, *, encoding: str = DEFAULT_ENCODING) -> None:
        self._fetcher = fetcher
        self._encoding = encoding
        self.polygons: list[IsochronePolygon] = []

    def parse(self, raw: bytes, *, source: str = "") -> list[IsochronePolygon]:
        return parse_isochrones(raw, encoding=self._encoding, source=source)

    async def load(self, source: str) -> list[IsochronePolygon]:
        """Fetch and parse *source*; failures are logged and yield ``[]``."""
        polygons: list[IsochronePolygon] = []
        try:
            raw = await self._fetcher.fetch(source)
            polygons = self.parse(raw, source=source)
        except FetchError:
            _logger.error("Error fetching isochrone GeoJSON %s", source, exc_info=True)
        except ParseError:
            _logger.error("Error parsing isochrone GeoJSON %s", source, exc_info=True)
        self.polygons = polygons
        return polygons
