"""Map engine interface and the in-memory style-document engine.

The interface mirrors the subset of the Mapbox GL JS ``Map`` surface the
renderer needs, in snake_case. `StyleDocumentEngine` implements it by keeping
a Mapbox GL style document (version 8) in memory, which is enough to drive a
browser front-end, a static HTML export, or tests.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from caremap.config import MapViewConfig
from caremap.exceptions import MapStateError

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MapEvent:
    """An event dispatched by a map engine.

    For layer ``click`` events ``features`` holds the GeoJSON features under
    the pointer, topmost first.
    """

    type: str
    layer_id: str | None = None
    features: list[dict[str, Any]] = field(default_factory=list)
    lng_lat: tuple[float, float] | None = None


MapEventHandler = Callable[[MapEvent], None]


class GeoJSONSource(Protocol):
    data: dict[str, Any]

    def set_data(self, data: dict[str, Any]) -> None:
        ...


class MapEngine(Protocol):
    """Structural interface of a map engine instance."""

    def add_control(self, control: str, position: str = "top-right") -> None:
        ...

    def add_source(self, source_id: str, spec: dict[str, Any]) -> None:
        ...

    def get_source(self, source_id: str) -> GeoJSONSource | None:
        ...

    def remove_source(self, source_id: str) -> None:
        ...

    def add_layer(self, layer: dict[str, Any]) -> None:
        ...

    def get_layer(self, layer_id: str) -> dict[str, Any] | None:
        ...

    def remove_layer(self, layer_id: str) -> None:
        ...

    def on(self, event: str, handler: MapEventHandler, layer_id: str | None = None) -> None:
        ...

    def off(self, event: str, handler: MapEventHandler, layer_id: str | None = None) -> None:
        ...

    def show_popup(self, lng_lat: tuple[float, float], content: Any) -> None:
        ...

    def remove(self) -> None:
        ...


EngineFactory = Callable[[Any, MapViewConfig], MapEngine]
"""``factory(mount_target, view_config) -> MapEngine``."""


class StyleSource:
    """A GeoJSON source of a `StyleDocumentEngine`."""

    def __init__(self, source_id: str, spec: dict[str, Any]) -> None:
        if spec.get("type") != "geojson":
            raise MapStateError(f"Only geojson sources are supported, got {spec.get('type')!r}")
        self.id = source_id
        self.data: dict[str, Any] = copy.deepcopy(spec.get("data") or {})
        self.updates = 0

    def set_data(self, data: dict[str, Any]) -> None:
        self.data = copy.deepcopy(data)
        self.updates += 1

    def to_style(self) -> dict[str, Any]:
        return {"type": "geojson", "data": copy.deepcopy(self.data)}


class StyleDocumentEngine:
    """In-memory map engine backed by a Mapbox GL style document.

    Like a browser map, the ``load`` event fires asynchronously after
    construction when an event loop is running. Without a running loop the
    engine is ready immediately and ``load`` handlers registered afterwards
    run synchronously.
    """

    def __init__(self, container: Any, view: MapViewConfig) -> None:
        self.container = container
        self.view = view
        self.sources: dict[str, StyleSource] = {}
        self.layers: list[dict[str, Any]] = []
        self.controls: list[tuple[str, str]] = []
        self.popup: tuple[tuple[float, float], Any] | None = None
        self._handlers: dict[tuple[str, str | None], list[MapEventHandler]] = {}
        self._loaded = False
        self._removed = False

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loaded = True
        else:
            loop.call_soon(self._fire_load)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def removed(self) -> bool:
        return self._removed

    def _fire_load(self) -> None:
        if self._removed or self._loaded:
            return
        self._loaded = True
        self._dispatch(MapEvent(type="load"))

    def remove(self) -> None:
        self._removed = True
        self._handlers.clear()
        self.sources.clear()
        self.layers.clear()
        self.popup = None

    def _require_alive(self) -> None:
        if self._removed:
            raise MapStateError("Map engine has been removed")

    # ------------------------------------------------------------------
    # Sources / layers / controls
    # ------------------------------------------------------------------

    def add_control(self, control: str, position: str = "top-right") -> None:
        self._require_alive()
        self.controls.append((control, position))

    def add_source(self, source_id: str, spec: dict[str, Any]) -> None:
        self._require_alive()
        if source_id in self.sources:
            raise MapStateError(f"There is already a source with ID {source_id!r}")
        self.sources[source_id] = StyleSource(source_id, spec)

    def get_source(self, source_id: str) -> StyleSource | None:
        return self.sources.get(source_id)

    def remove_source(self, source_id: str) -> None:
        self._require_alive()
        users = [layer["id"] for layer in self.layers if layer.get("source") == source_id]
        if users:
            raise MapStateError(f"Source {source_id!r} cannot be removed while layers {users} use it")
        if self.sources.pop(source_id, None) is None:
            _logger.debug("Source %s not present, nothing to remove", source_id)

    def add_layer(self, layer: dict[str, Any]) -> None:
        self._require_alive()
        layer_id = layer.get("id")
        if not layer_id:
            raise MapStateError("Layer needs an 'id'")
        if self.get_layer(layer_id) is not None:
            raise MapStateError(f"Layer with id {layer_id!r} already exists on this map")
        if layer.get("source") not in self.sources:
            raise MapStateError(f"Source {layer.get('source')!r} not found for layer {layer_id!r}")
        self.layers.append(copy.deepcopy(layer))

    def get_layer(self, layer_id: str) -> dict[str, Any] | None:
        for layer in self.layers:
            if layer["id"] == layer_id:
                return layer
        return None

    def remove_layer(self, layer_id: str) -> None:
        self._require_alive()
        self.layers = [layer for layer in self.layers if layer["id"] != layer_id]

    def show_popup(self, lng_lat: tuple[float, float], content: Any) -> None:
        self._require_alive()
        self.popup = (lng_lat, content)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: str, handler: MapEventHandler, layer_id: str | None = None) -> None:
        self._require_alive()
        if event == "load" and self._loaded:
            handler(MapEvent(type="load"))
            return
        self._handlers.setdefault((event, layer_id), []).append(handler)

    def off(self, event: str, handler: MapEventHandler, layer_id: str | None = None) -> None:
        handlers = self._handlers.get((event, layer_id))
        if handlers and handler in handlers:
            handlers.remove(handler)

    def _dispatch(self, event: MapEvent) -> None:
        for handler in list(self._handlers.get((event.type, event.layer_id), [])):
            handler(event)

    def click(self, layer_id: str, feature: dict[str, Any], lng_lat: tuple[float, float] | None = None) -> None:
        """Dispatch a ``click`` on *feature* of *layer_id* (no-op if the layer is gone)."""
        self._require_alive()
        if self.get_layer(layer_id) is None:
            return
        if lng_lat is None:
            coordinates = feature.get("geometry", {}).get("coordinates") or [0.0, 0.0]
            lng_lat = (float(coordinates[0]), float(coordinates[1]))
        self._dispatch(MapEvent(type="click", layer_id=layer_id, features=[feature], lng_lat=lng_lat))

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_style(self) -> dict[str, Any]:
        """Return the current map state as a Mapbox GL style document."""
        return {
            "version": 8,
            "metadata": {"caremap:base-style": self.view.style},
            "center": list(self.view.center),
            "zoom": self.view.zoom,
            "pitch": self.view.pitch,
            "bearing": self.view.bearing,
            "sources": {source_id: source.to_style() for source_id, source in self.sources.items()},
            "layers": copy.deepcopy(self.layers),
        }
