"""Shared builders and fakes for the test-suite."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from caremap.exceptions import FetchError
from caremap.models import Coordinates, Facility, IsochronePolygon

HEADER = [
    "name",
    "register_id",
    "geo_epgs_4326_lat",
    "geo_epgs_4326_lon",
    "simulated_wait_time",
    "occupancy_percentage",
    "current_occupancy",
    "is_hospital",
]


def tsv(rows: list[list[str]], *, header: list[str] = HEADER, encoding: str = "utf-16") -> bytes:
    lines = ["\t".join(header)] + ["\t".join(row) for row in rows]
    return ("\n".join(lines) + "\n").encode(encoding)


def polygon_feature(name: str, *, offset: float = 0.0) -> dict:
    return {
        "type": "Feature",
        "geometry": {
            "type": "Polygon",
            "coordinates": [
                [
                    [2.10 + offset, 41.30],
                    [2.20 + offset, 41.30],
                    [2.20 + offset, 41.40],
                    [2.10 + offset, 41.30],
                ]
            ],
        },
        "properties": {"name": name},
    }


def polygon(name: str, *, offset: float = 0.0) -> IsochronePolygon:
    return IsochronePolygon.model_validate(polygon_feature(name, offset=offset))


def facility(name: str, index: int = 1, **overrides) -> Facility:
    values = {
        "id": f"REG-{index}",
        "name": name,
        "coordinates": Coordinates(lat=41.4, lon=2.2),
        "display_index": index,
    }
    values.update(overrides)
    return Facility(**values)


@dataclass
class FakeFetcher:
    """In-memory fetcher.

    A gate holds the next fetch of its source until the event is set; the
    payload is the one present when that fetch started.
    """

    payloads: dict[str, bytes] = field(default_factory=dict)
    missing: set[str] = field(default_factory=set)
    gates: dict[str, asyncio.Event] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    async def fetch(self, source: str) -> bytes:
        self.calls.append(source)
        payload = self.payloads.get(source)
        gate = self.gates.pop(source, None)
        if gate is not None:
            await gate.wait()
        if source in self.missing or payload is None:
            raise FetchError(f"{source} not found", source=source, status_code=404)
        return payload
