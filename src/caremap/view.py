"""High-level async facility map view."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar

from caremap._transport import Fetcher, SourceFetcher
from caremap.config import CareMapConfig
from caremap.controller import InteractionController
from caremap.correlation import CorrelationIndex
from caremap.ingestion.facilities import normalize_rows
from caremap.ingestion.isochrones import IsochroneStore
from caremap.ingestion.tabular import TabularIngestor
from caremap.models.facility import Facility
from caremap.models.popup import PopupContent
from caremap.render.engine import EngineFactory, MapEvent, StyleDocumentEngine
from caremap.render.renderer import MapContext, MapRenderer

_logger = logging.getLogger(__name__)

_T = TypeVar("_T")


async def _cancel(task: asyncio.Task[Any] | None) -> None:
    if task is None or task.done():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


class FacilityMapView:
    """Facility map wired to its two data files.

    Usage::

        async with FacilityMapView(CareMapConfig.from_env()) as view:
            await view.wait_loaded()
            popup = view.click(view.facilities[0])

    Mounting starts the isochrone fetch right away and the facility fetch once
    the engine reports ``load``. The two complete in any order; a click that
    arrives before the isochrones are indexed behaves like a lookup miss.
    """

    def __init__(
        self,
        config: CareMapConfig | None = None,
        *,
        fetcher: Fetcher | None = None,
        engine_factory: EngineFactory = StyleDocumentEngine,
    ) -> None:
        self._config = config or CareMapConfig()
        data = self._config.data
        self._owns_fetcher = fetcher is None
        self._fetcher: Fetcher = fetcher or SourceFetcher(
            retries=data.fetch_retries,
            retry_delay=data.fetch_retry_delay,
        )
        self.context = MapContext(self._config.view, engine_factory)
        self.renderer = MapRenderer(
            self.context,
            palette=self._config.palette,
            isochrone_style=self._config.isochrone_style,
            label_format=data.label_format,
        )
        self.controller = InteractionController(
            self.renderer,
            correlation_key=data.correlation_key,
            details_url=self._config.details_url,
        )
        self.renderer.on_facility_click(self.controller.on_facility_click)
        self._tabular = TabularIngestor(self._fetcher, encoding=data.facilities_encoding, delimiter=data.delimiter)
        self._isochrones = IsochroneStore(self._fetcher, encoding=data.isochrones_encoding)
        self._facilities: list[Facility] = []
        self._facility_task: asyncio.Task[list[Facility]] | None = None
        self._isochrone_task: asyncio.Task[CorrelationIndex] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._map_ready = asyncio.Event()

    @property
    def config(self) -> CareMapConfig:
        return self._config

    @property
    def facilities(self) -> list[Facility]:
        """Normalized facilities in source order, for list rendering."""
        return list(self._facilities)

    @property
    def selected(self) -> Facility | None:
        return self.controller.selected

    @property
    def mounted(self) -> bool:
        return self.context.initialized

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FacilityMapView:
        self.mount()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.unmount()

    def mount(self, target: Any = None) -> None:
        """Create the map engine and start both data loads (idempotent)."""
        if self.context.initialized:
            _logger.debug("View already mounted")
            return
        self.context.open(target)
        self._map_ready = asyncio.Event()
        self._isochrone_task = self._start(self._load_isochrones())
        self.context.on("load", self._on_map_ready)

    async def unmount(self) -> None:
        """Cancel pending loads, tear the engine down and release the fetcher."""
        for task in list(self._tasks):
            await _cancel(task)
        self._facility_task = None
        self._isochrone_task = None
        self._facilities = []
        self.context.close()
        self.renderer.reset()
        self.controller.reset_layer_state()
        self.controller.selection.clear_listeners()
        if self._owns_fetcher and isinstance(self._fetcher, SourceFetcher):
            await self._fetcher.close()

    def _start(self, coro: Coroutine[Any, Any, _T]) -> asyncio.Task[_T]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _on_map_ready(self, _event: MapEvent) -> None:
        self._map_ready.set()
        if self._facility_task is None:
            self._facility_task = self._start(self._load_facilities())

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def _load_facilities(self) -> list[Facility]:
        rows = await self._tabular.load(self._config.data.facilities)
        facilities = normalize_rows(rows)
        self._facilities = facilities
        self.renderer.show_facilities(facilities)
        _logger.info("Loaded %d facilities", len(facilities))
        return facilities

    async def _load_isochrones(self) -> CorrelationIndex:
        polygons = await self._isochrones.load(self._config.data.isochrones)
        index = CorrelationIndex.build(polygons, normalization=self._config.data.key_normalization)
        self.controller.set_index(index)
        _logger.info("Indexed %d isochrones", len(index))
        return index

    async def wait_ready(self) -> None:
        """Wait for the engine's ``load`` event."""
        await self._map_ready.wait()

    async def wait_loaded(self) -> None:
        """Wait until both data loads have finished (successfully or not)."""
        await self.wait_ready()
        tasks = [task for task in (self._isochrone_task, self._facility_task) if task is not None]
        await asyncio.gather(*tasks)

    async def reload_isochrones(self) -> CorrelationIndex:
        """Re-fetch the isochrones and replace the index with a fresh build.

        A load still in flight is cancelled first.
        """
        await _cancel(self._isochrone_task)
        self._isochrone_task = self._start(self._load_isochrones())
        return await self._isochrone_task

    async def reload_facilities(self) -> list[Facility]:
        """Re-fetch the facility table; the existing source is updated in place."""
        await self.wait_ready()
        await _cancel(self._facility_task)
        self._facility_task = self._start(self._load_facilities())
        return await self._facility_task

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------

    def click(self, facility: Facility) -> PopupContent:
        """Same as a click on *facility* in the facility layer."""
        return self.controller.on_facility_click(facility)

    def find(self, name: str) -> Facility | None:
        """First facility whose trimmed name equals *name*."""
        for facility in self._facilities:
            if facility.name == name.strip():
                return facility
        return None
