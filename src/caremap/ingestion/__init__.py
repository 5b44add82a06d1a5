"""Ingestion layer.

This package contains adapters that fetch the static data files and emit
normalized domain objects: facility rows from the delimited table and named
polygons from the isochrone collection.
"""

from caremap.ingestion.facilities import normalize_row, normalize_rows
from caremap.ingestion.isochrones import IsochroneStore, parse_isochrones
from caremap.ingestion.tabular import TabularIngestor, parse_table

__all__ = [
    "IsochroneStore",
    "TabularIngestor",
    "normalize_row",
    "normalize_rows",
    "parse_isochrones",
    "parse_table",
]
