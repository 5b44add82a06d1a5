"""Facility click handling.

Resolves the clicked facility's isochrone, drives the isochrone layer state
machine, builds the popup payload and records the selection.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable

from caremap._constants import IMPACTED_POPULATION_RANGE
from caremap.config import CorrelationKey
from caremap.correlation import CorrelationIndex, lookup
from caremap.exceptions import LookupMiss
from caremap.models.facility import Facility
from caremap.models.isochrone import IsochronePolygon
from caremap.models.popup import PopupContent
from caremap.render.renderer import MapRenderer
from caremap.render.styles import occupancy_color
from caremap.state.layer import Absent, IsochroneLayerState, LayerAction, transition
from caremap.state.selection import Selection, SelectionEvent, SelectionListener, SelectionSource

_logger = logging.getLogger(__name__)


def impacted_population(facility: Facility) -> int:
    """Plausible per-facility population figure in ``[0, 1000)``.

    Derived from a stable hash of the facility identity, so the same
    facility always shows the same number.
    """
    digest = hashlib.sha256(f"{facility.id}\x1f{facility.name}".encode()).digest()
    return int.from_bytes(digest[:8], "big") % IMPACTED_POPULATION_RANGE


class InteractionController:
    """Reacts to facility selections coming from the map or the list UI."""

    def __init__(
        self,
        renderer: MapRenderer,
        *,
        correlation_key: CorrelationKey = CorrelationKey.NAME,
        details_url: str | None = None,
        population: Callable[[Facility], int] = impacted_population,
        selection: Selection | None = None,
    ) -> None:
        self._renderer = renderer
        self._correlation_key = correlation_key
        self._details_url = details_url
        self._population = population
        self._index: CorrelationIndex | None = None
        self._layer_state: IsochroneLayerState = Absent()
        self.selection = selection or Selection()

    @property
    def index(self) -> CorrelationIndex | None:
        return self._index

    @property
    def layer_state(self) -> IsochroneLayerState:
        return self._layer_state

    @property
    def selected(self) -> Facility | None:
        return self.selection.current

    def set_index(self, index: CorrelationIndex | None) -> None:
        """Swap in a freshly built index (the previous one is discarded)."""
        self._index = index

    def reset_layer_state(self) -> None:
        """Forget the isochrone layer (the engine it lived on is gone)."""
        self._layer_state = Absent()

    def resolve(self, facility: Facility) -> IsochronePolygon:
        """Return the isochrone of *facility*.

        Raises
        ------
        LookupMiss
            If no polygon is indexed under the facility's correlation key,
            including when the isochrones have not been loaded yet.
        """
        key = facility.correlation_value(self._correlation_key)
        polygon = lookup(self._index, key)
        if polygon is None:
            raise LookupMiss(key)
        return polygon

    def on_facility_click(self, facility: Facility) -> PopupContent:
        """Handle a click on *facility* in the map's facility layer."""
        try:
            polygon: IsochronePolygon | None = self.resolve(facility)
        except LookupMiss as miss:
            _logger.warning("No matching isochrone found for %r", miss.key)
            polygon = None

        next_state, action = transition(self._layer_state, found=polygon is not None, name=facility.name)
        if action != LayerAction.NONE:
            self._renderer.apply_isochrone(action, polygon)
        _logger.debug("Isochrone layer %s -> %s (%s)", self._layer_state, next_state, action.value)
        self._layer_state = next_state

        content = self.popup_content(facility)
        self._renderer.show_popup(content)
        self.selection.set(facility, SelectionSource.MAP)
        return content

    def popup_content(self, facility: Facility) -> PopupContent:
        return PopupContent(
            facility_id=facility.id,
            name=facility.name,
            coordinates=facility.coordinates,
            occupancy_percent=facility.occupancy_percent,
            occupancy_color=occupancy_color(facility.occupancy_percent, self._renderer.palette),
            impacted_population=self._population(facility),
            current_staff_count=facility.current_staff_count,
            wait_time_minutes=facility.wait_time_minutes,
            details_url=self._details_url,
        )

    def select(self, facility: Facility, source: SelectionSource = SelectionSource.LIST) -> SelectionEvent:
        """Accept a selection signal from outside the map (e.g. the list UI).

        Only the selection slot and its subscribers are updated; the map
        itself is left as is.
        """
        return self.selection.set(facility, source)

    def subscribe(self, listener: SelectionListener) -> Callable[[], None]:
        return self.selection.subscribe(listener)
