"""Facility normalization.

Validation is deliberately asymmetric: a row without a name or without
finite coordinates cannot be placed on the map and is dropped, while every
other malformed cell falls back to a default so the facility still shows.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from caremap._constants import (
    ADDRESS_COLUMNS,
    ADDRESS_FALLBACK,
    COL_CURRENT_OCCUPANCY,
    COL_IS_HOSPITAL,
    COL_LAT,
    COL_LON,
    COL_NAME,
    COL_OCCUPANCY,
    COL_PHONE,
    COL_REGISTER_ID,
    COL_WAIT_TIME,
)
from caremap.ingestion.normalize import clean_str, finite_float, float_or_default, float_or_nan, join_non_empty
from caremap.models.facility import Coordinates, Facility

_logger = logging.getLogger(__name__)


def normalize_row(row: Mapping[str, str], display_index: int) -> Facility | None:
    """Convert one raw row into a :class:`Facility`, or ``None`` if excluded."""
    name = clean_str(row.get(COL_NAME))
    lat = finite_float(row.get(COL_LAT))
    lon = finite_float(row.get(COL_LON))
    if not name:
        _logger.debug("Excluding row without name: %r", dict(row))
        return None
    if lat is None or lon is None:
        _logger.debug(
            "Excluding %r: non-numeric coordinates (%r, %r)",
            name,
            row.get(COL_LAT),
            row.get(COL_LON),
        )
        return None

    return Facility(
        id=clean_str(row.get(COL_REGISTER_ID)),
        name=name,
        coordinates=Coordinates(lat=lat, lon=lon),
        occupancy_percent=float_or_default(row.get(COL_OCCUPANCY), 0.0),
        wait_time_minutes=float_or_nan(row.get(COL_WAIT_TIME)),
        current_staff_count=float_or_default(row.get(COL_CURRENT_OCCUPANCY), 0.0),
        is_hospital=clean_str(row.get(COL_IS_HOSPITAL)),
        display_index=display_index,
        address=join_non_empty([row.get(column) for column in ADDRESS_COLUMNS]) or ADDRESS_FALLBACK,
        phone=clean_str(row.get(COL_PHONE)),
        raw=dict(row),
    )


def normalize_rows(rows: Iterable[Mapping[str, str]]) -> list[Facility]:
    """Normalize *rows* in source order.

    ``display_index`` counts only the retained facilities, starting at 1.
    """
    facilities: list[Facility] = []
    excluded = 0
    for row in rows:
        facility = normalize_row(row, len(facilities) + 1)
        if facility is None:
            excluded += 1
            continue
        facilities.append(facility)
    if excluded:
        _logger.info("Normalized %d facilities, excluded %d rows", len(facilities), excluded)
    return facilities
