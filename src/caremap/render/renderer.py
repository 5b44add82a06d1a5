"""Map renderer.

Owns the two independently-lifecycled source/layer pairs drawn on the map:
the facility markers + labels, and the selected isochrone fill.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from caremap._constants import (
    FACILITIES_CIRCLE_LAYER_ID,
    FACILITIES_LABEL_LAYER_ID,
    FACILITIES_SOURCE_ID,
    ISOCHRONE_FILL_LAYER_ID,
    ISOCHRONE_SOURCE_ID,
)
from caremap.config import IsochroneStyle, LabelFormat, MapViewConfig, OccupancyPalette
from caremap.exceptions import MapStateError
from caremap.ingestion.normalize import format_number
from caremap.models.facility import Facility
from caremap.models.isochrone import IsochronePolygon
from caremap.models.popup import PopupContent
from caremap.render.engine import EngineFactory, MapEngine, MapEvent, MapEventHandler, StyleDocumentEngine
from caremap.render.styles import facility_circle_layer, facility_label_layer, isochrone_fill_layer
from caremap.state.layer import LayerAction

_logger = logging.getLogger(__name__)

FacilityClickCallback = Callable[[Facility], Any]


class MapContext:
    """Caller-owned handle on one live map engine.

    ``open()`` creates the engine at most once; calling it again on an open
    context returns the same engine. ``close()`` detaches every listener
    registered through :meth:`on` and removes the engine.
    """

    def __init__(self, view: MapViewConfig, engine_factory: EngineFactory = StyleDocumentEngine) -> None:
        self._view = view
        self._engine_factory = engine_factory
        self._engine: MapEngine | None = None
        self._mount_target: Any = None
        self._listeners: list[tuple[str, MapEventHandler, str | None]] = []

    @property
    def view(self) -> MapViewConfig:
        return self._view

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> MapEngine:
        if self._engine is None:
            raise MapStateError("Map context is not open. Call open() first.")
        return self._engine

    def open(self, mount_target: Any = None) -> MapEngine:
        if self._engine is not None:
            _logger.debug("Map context already open, reusing engine")
            return self._engine
        engine = self._engine_factory(mount_target, self._view)
        engine.add_control("navigation")
        self._engine = engine
        self._mount_target = mount_target
        _logger.debug("Opened map engine at %s (zoom %.1f)", self._view.center, self._view.zoom)
        return engine

    def on(self, event: str, handler: MapEventHandler, layer_id: str | None = None) -> None:
        self.engine.on(event, handler, layer_id)
        self._listeners.append((event, handler, layer_id))

    def close(self) -> None:
        engine = self._engine
        if engine is None:
            return
        for event, handler, layer_id in self._listeners:
            engine.off(event, handler, layer_id)
        self._listeners.clear()
        engine.remove()
        self._engine = None
        self._mount_target = None
        _logger.debug("Closed map engine")


def facility_feature(facility: Facility) -> dict[str, Any]:
    """GeoJSON point feature of *facility* as consumed by the facility layers."""
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": list(facility.coordinates.lng_lat())},
        "properties": {
            "name": facility.name,
            "register_id": facility.id,
            "index": facility.display_index,
            # NaN is not valid JSON; the label property carries the text form.
            "simulated_wait_time": facility.wait_time_minutes if facility.has_wait_time else None,
            "wait_time_label": format_number(facility.wait_time_minutes),
            "is_hospital": facility.is_hospital,
            "occupancy": facility.occupancy_percent,
            "current_occupancy": facility.current_staff_count,
        },
    }


def facility_collection(facilities: Iterable[Facility]) -> dict[str, Any]:
    return {"type": "FeatureCollection", "features": [facility_feature(facility) for facility in facilities]}


class MapRenderer:
    """Keeps the map layers in sync with ingestion results and selections."""

    def __init__(
        self,
        context: MapContext,
        *,
        palette: OccupancyPalette | None = None,
        isochrone_style: IsochroneStyle | None = None,
        label_format: LabelFormat = LabelFormat.MINUTES,
    ) -> None:
        self._context = context
        self.palette = palette or OccupancyPalette()
        self.isochrone_style = isochrone_style or IsochroneStyle()
        self.label_format = label_format
        self._facilities: dict[int, Facility] = {}
        self._click_callback: FacilityClickCallback | None = None
        self._click_registered = False

    @property
    def context(self) -> MapContext:
        return self._context

    @property
    def engine(self) -> MapEngine:
        return self._context.engine

    @property
    def facilities(self) -> list[Facility]:
        return list(self._facilities.values())

    def on_facility_click(self, callback: FacilityClickCallback) -> None:
        """Route clicks on the facility layer to *callback*."""
        self._click_callback = callback

    def reset(self) -> None:
        """Forget per-engine bookkeeping (after the context was closed)."""
        self._facilities.clear()
        self._click_registered = False

    # ------------------------------------------------------------------
    # Facility layers
    # ------------------------------------------------------------------

    def show_facilities(self, facilities: Iterable[Facility]) -> bool:
        """Add or refresh the facility source and layers.

        Returns ``True`` when the source/layers were created, ``False`` when an
        existing source only had its data replaced.
        """
        facilities = list(facilities)
        self._facilities = {facility.display_index: facility for facility in facilities}
        engine = self.engine
        data = facility_collection(facilities)

        source = engine.get_source(FACILITIES_SOURCE_ID)
        if source is not None:
            source.set_data(data)
            _logger.debug("Updated facilities source with %d features", len(facilities))
            return False

        engine.add_source(FACILITIES_SOURCE_ID, {"type": "geojson", "data": data})
        engine.add_layer(facility_circle_layer(FACILITIES_CIRCLE_LAYER_ID, FACILITIES_SOURCE_ID, self.palette))
        engine.add_layer(facility_label_layer(FACILITIES_LABEL_LAYER_ID, FACILITIES_SOURCE_ID, self.label_format))
        if not self._click_registered:
            self._context.on("click", self._handle_click, FACILITIES_CIRCLE_LAYER_ID)
            self._click_registered = True
        _logger.debug("Added facilities source with %d features", len(facilities))
        return True

    def facility_for_feature(self, feature: dict[str, Any]) -> Facility | None:
        properties = feature.get("properties") or {}
        index = properties.get("index")
        if not isinstance(index, int):
            return None
        return self._facilities.get(index)

    def _handle_click(self, event: MapEvent) -> None:
        if not event.features:
            return
        facility = self.facility_for_feature(event.features[0])
        if facility is None:
            _logger.debug("Click on unknown facility feature %r", event.features[0].get("properties"))
            return
        if self._click_callback is not None:
            self._click_callback(facility)

    # ------------------------------------------------------------------
    # Isochrone layer
    # ------------------------------------------------------------------

    def apply_isochrone(self, action: LayerAction, polygon: IsochronePolygon | None = None) -> None:
        """Carry out one isochrone layer state-machine action on the engine."""
        engine = self.engine
        if action in (LayerAction.CREATE, LayerAction.UPDATE):
            if polygon is None:
                raise ValueError(f"{action.value} needs a polygon")
            data = polygon.to_feature_collection()
            source = engine.get_source(ISOCHRONE_SOURCE_ID)
            if source is not None:
                source.set_data(data)
                return
            engine.add_source(ISOCHRONE_SOURCE_ID, {"type": "geojson", "data": data})
            engine.add_layer(isochrone_fill_layer(ISOCHRONE_FILL_LAYER_ID, ISOCHRONE_SOURCE_ID, self.isochrone_style))
        elif action == LayerAction.REMOVE:
            if engine.get_layer(ISOCHRONE_FILL_LAYER_ID) is not None:
                engine.remove_layer(ISOCHRONE_FILL_LAYER_ID)
            if engine.get_source(ISOCHRONE_SOURCE_ID) is not None:
                engine.remove_source(ISOCHRONE_SOURCE_ID)

    def isochrone_data(self) -> dict[str, Any] | None:
        """FeatureCollection currently shown by the isochrone layer, if any."""
        source = self.engine.get_source(ISOCHRONE_SOURCE_ID)
        return source.data if source is not None else None

    # ------------------------------------------------------------------
    # Popup
    # ------------------------------------------------------------------

    def show_popup(self, content: PopupContent) -> None:
        self.engine.show_popup(content.coordinates.lng_lat(), content)
