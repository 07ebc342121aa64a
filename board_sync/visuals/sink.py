"""
Visual Sink — the narrow interface rendering implements and the core calls into.

Meshes, animation, particles and audio all live behind this boundary.
RecordingVisualSink keeps an in-memory picture of what would be on screen;
it backs the test-suite and the HTTP harness.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List, Optional, Protocol, Tuple

from pydantic import BaseModel

from board_sync.models.slots import SlotAddress
from board_sync.models.units import UnitSnapshot
from board_sync.models.visuals import VisualHandle


class VisualSink(Protocol):
    """Protocol for the rendering side — pluggable backend."""

    def create_visual(self, unit: UnitSnapshot, slot: SlotAddress) -> VisualHandle: ...

    def move_visual(self, handle: VisualHandle, slot: SlotAddress, animated: bool) -> None: ...

    def update_visual(
        self, handle: VisualHandle, star_level: int, items: Tuple[str, ...]
    ) -> None: ...

    def destroy_visual(self, handle: VisualHandle) -> None: ...

    def highlight_slots(self, slots: Iterable[SlotAddress]) -> None: ...


class VisualState(BaseModel):
    """What one visual currently looks like."""

    handle: VisualHandle
    template_id: str
    slot: SlotAddress
    star_level: int
    items: Tuple[str, ...] = ()
    animated: bool = False                  # Whether the last move was animated


class RecordingVisualSink:
    """
    In-memory visual sink. Tracks live visuals and logs every call
    as (operation, handle) pairs so tests can assert on flicker.
    """

    def __init__(self):
        self._next_handle = 1
        self.visuals: Dict[VisualHandle, VisualState] = {}
        self.highlighted: FrozenSet[SlotAddress] = frozenset()
        self.calls: List[Tuple[str, Optional[VisualHandle]]] = []

    def create_visual(self, unit: UnitSnapshot, slot: SlotAddress) -> VisualHandle:
        handle = self._next_handle
        self._next_handle += 1
        self.visuals[handle] = VisualState(
            handle=handle,
            template_id=unit.template_id,
            slot=slot,
            star_level=unit.star_level,
            items=unit.equipped_item_ids,
        )
        self.calls.append(("create", handle))
        return handle

    def move_visual(self, handle: VisualHandle, slot: SlotAddress, animated: bool) -> None:
        visual = self.visuals[handle]
        visual.slot = slot
        visual.animated = animated
        self.calls.append(("move", handle))

    def update_visual(
        self, handle: VisualHandle, star_level: int, items: Tuple[str, ...]
    ) -> None:
        visual = self.visuals[handle]
        visual.star_level = star_level
        visual.items = tuple(items)
        self.calls.append(("update", handle))

    def destroy_visual(self, handle: VisualHandle) -> None:
        self.visuals.pop(handle, None)
        self.calls.append(("destroy", handle))

    def highlight_slots(self, slots: Iterable[SlotAddress]) -> None:
        self.highlighted = frozenset(slots)
        self.calls.append(("highlight", None))

    # --- Inspection helpers ---

    def at(self, slot: SlotAddress) -> List[VisualState]:
        """Visuals currently shown in a slot."""
        return [v for v in self.visuals.values() if v.slot == slot]

    def count(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    def reset_calls(self) -> None:
        self.calls.clear()
