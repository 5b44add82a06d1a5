"""Isochrone layer state machine.

States are ``Absent`` (no isochrone source/layer on the map) and
``Present(name)`` (the layer shows the polygon of facility *name*).

=================  ===============  ================  =============
lookup result      current state    action            next state
=================  ===============  ================  =============
hit                Absent           CREATE            Present(new)
hit                Present(other)   UPDATE            Present(new)
miss               Present(any)     REMOVE            Absent
miss               Absent           NONE              Absent
=================  ===============  ================  =============
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


@dataclass(frozen=True, slots=True)
class Absent:
    pass


@dataclass(frozen=True, slots=True)
class Present:
    name: str


IsochroneLayerState = Absent | Present


class LayerAction(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    REMOVE = "remove"
    NONE = "none"


def transition(state: IsochroneLayerState, *, found: bool, name: str) -> tuple[IsochroneLayerState, LayerAction]:
    """Return the next state and the map action for a click on *name*."""
    if found:
        if isinstance(state, Absent):
            return Present(name), LayerAction.CREATE
        return Present(name), LayerAction.UPDATE
    if isinstance(state, Present):
        return Absent(), LayerAction.REMOVE
    return state, LayerAction.NONE
