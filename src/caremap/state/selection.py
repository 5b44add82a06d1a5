"""Selected-facility slot and selection events."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from caremap.models.facility import Facility

_logger = logging.getLogger(__name__)


class SelectionSource(StrEnum):
    MAP = "map"
    """Click on the facility layer."""
    LIST = "list"
    """Selection signal coming from the list UI."""


class SelectionEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    facility: Facility
    source: SelectionSource
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


SelectionListener = Callable[[SelectionEvent], None]


class Selection:
    """Single mutable slot holding the last selected facility.

    Never cleared automatically; listeners are notified on every update,
    including re-selection of the same facility.
    """

    def __init__(self) -> None:
        self._current: Facility | None = None
        self._listeners: list[SelectionListener] = []

    @property
    def current(self) -> Facility | None:
        return self._current

    def set(self, facility: Facility, source: SelectionSource) -> SelectionEvent:
        self._current = facility
        event = SelectionEvent(facility=facility, source=source)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                _logger.exception("Selection listener %r failed", listener)
        return event

    def subscribe(self, listener: SelectionListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def clear_listeners(self) -> None:
        self._listeners.clear()
