"""View state.

The isochrone layer state machine and the selected-facility slot. Both are
plain in-memory objects mutated on the event-loop thread only.
"""

from caremap.state.layer import Absent, IsochroneLayerState, LayerAction, Present, transition
from caremap.state.selection import Selection, SelectionEvent, SelectionSource

__all__ = [
    "Absent",
    "IsochroneLayerState",
    "LayerAction",
    "Present",
    "Selection",
    "SelectionEvent",
    "SelectionSource",
    "transition",
]
