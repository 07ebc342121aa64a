"""Drag sessions and gesture outcomes."""

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel

from board_sync.models.intents import AuthorityIntent
from board_sync.models.slots import EntityId, SlotAddress

Position = Tuple[float, float]              # Pointer position in screen pixels


class DragPhase(str, Enum):
    NONE = "none"
    PENDING = "pending"     # Pointer down, threshold not crossed yet
    ACTIVE = "active"       # Dragging


class DragSession(BaseModel):
    """The single in-flight pointer gesture. Dragging is an exclusive resource."""

    session_id: str
    source_entity: EntityId
    source_slot: SlotAddress                # Where the unit was picked up; commits move it from here
    origin_slot: SlotAddress                # Where to snap back to on revert/cancel
    phase: DragPhase = DragPhase.PENDING
    is_from_bench: bool
    down_position: Position
    last_position: Position
    down_tick: int = 0


class OutcomeKind(str, Enum):
    IGNORED = "ignored"       # Nothing under the pointer / nothing to do
    PENDING = "pending"       # Session started
    ACTIVATED = "activated"   # Threshold crossed
    DRAGGING = "dragging"
    SELECT = "select"         # Tap
    MOVE = "move"
    SWAP = "swap"
    SELL = "sell"
    REVERT = "revert"         # Invalid target, speculative state undone
    NOOP = "noop"             # Dropped back onto its own slot
    CANCELLED = "cancelled"
    REJECTED = "rejected"     # Pointer-down while another drag is active


class GestureOutcome(BaseModel):
    """What a pointer event resolved to, and what (if anything) was sent to the authority."""

    kind: OutcomeKind
    entity_id: Optional[EntityId] = None
    origin: Optional[SlotAddress] = None
    target: Optional[SlotAddress] = None
    displaced_entity: Optional[EntityId] = None     # Other half of a swap
    intents: List[AuthorityIntent] = []
    reason: Optional[str] = None
    previous: Optional["GestureOutcome"] = None     # Stale session resolved first

    @property
    def is_mutation(self) -> bool:
        return self.kind in (OutcomeKind.MOVE, OutcomeKind.SWAP, OutcomeKind.SELL)
