"""Facility ↔ isochrone correlation index."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from types import MappingProxyType

from caremap.config import KeyNormalization
from caremap.models.isochrone import IsochronePolygon

_logger = logging.getLogger(__name__)

_NORMALIZERS: dict[KeyNormalization, Callable[[str], str]] = {
    KeyNormalization.EXACT: lambda key: key,
    KeyNormalization.TRIM: str.strip,
    KeyNormalization.CASEFOLD: lambda key: key.strip().casefold(),
}


def normalize_key(key: str, normalization: KeyNormalization = KeyNormalization.EXACT) -> str:
    return _NORMALIZERS[normalization](key)


class CorrelationIndex(Mapping[str, IsochronePolygon]):
    """Read-only ``key -> polygon`` mapping built from one isochrone load.

    Keys are polygon ``name`` properties passed through the configured
    normalization; item access and ``in`` normalize their argument the same
    way. Duplicate keys resolve last-write-wins. The index is never
    updated in place: a reload builds a new one.
    """

    def __init__(
        self,
        entries: Mapping[str, IsochronePolygon],
        *,
        normalization: KeyNormalization = KeyNormalization.EXACT,
    ) -> None:
        self._entries = MappingProxyType(dict(entries))
        self._normalization = normalization

    @classmethod
    def build(
        cls,
        polygons: Iterable[IsochronePolygon],
        *,
        normalization: KeyNormalization = KeyNormalization.EXACT,
    ) -> CorrelationIndex:
        entries: dict[str, IsochronePolygon] = {}
        for polygon in polygons:
            key = normalize_key(polygon.name, normalization)
            if key in entries:
                _logger.debug("Duplicate isochrone name %r, keeping the last one", polygon.name)
            entries[key] = polygon
        _logger.debug("Built correlation index with %d keys (%s)", len(entries), normalization.value)
        return cls(entries, normalization=normalization)

    @property
    def normalization(self) -> KeyNormalization:
        return self._normalization

    def lookup(self, key: str) -> IsochronePolygon | None:
        """Return the polygon indexed under *key* (after normalization)."""
        return self._entries.get(normalize_key(key, self._normalization))

    def __getitem__(self, key: str) -> IsochronePolygon:
        return self._entries[normalize_key(key, self._normalization)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def lookup(index: CorrelationIndex | None, key: str) -> IsochronePolygon | None:
    """Resolve *key* against *index*; a not-yet-built index is a miss."""
    if index is None:
        return None
    return index.lookup(key)
