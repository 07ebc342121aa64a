"""Board sync data models."""

from board_sync.models.config import BoardGeometry, SyncConfig
from board_sync.models.gesture import (
    DragPhase,
    DragSession,
    GestureOutcome,
    OutcomeKind,
    Position,
)
from board_sync.models.intents import (
    AuthorityIntent,
    BenchUnit,
    BuyUnit,
    MoveBenchUnit,
    PlaceUnit,
    SellUnit,
)
from board_sync.models.merge import MergePrediction, MergeStep
from board_sync.models.reports import LedgerState, ReconcileReport
from board_sync.models.slots import (
    PROVISIONAL_PREFIX,
    EntityId,
    Ownership,
    SlotAddress,
    SlotKind,
    is_provisional,
)
from board_sync.models.snapshot import (
    ActionResult,
    BoardPlacement,
    BoardSnapshot,
    GamePhase,
)
from board_sync.models.units import MAX_ITEMS_PER_UNIT, UnitSnapshot
from board_sync.models.visuals import RegistryEntry, VisualHandle

__all__ = [
    "ActionResult",
    "AuthorityIntent",
    "BenchUnit",
    "BoardGeometry",
    "BoardPlacement",
    "BoardSnapshot",
    "BuyUnit",
    "DragPhase",
    "DragSession",
    "EntityId",
    "GamePhase",
    "GestureOutcome",
    "LedgerState",
    "MAX_ITEMS_PER_UNIT",
    "MergePrediction",
    "MergeStep",
    "MoveBenchUnit",
    "OutcomeKind",
    "Ownership",
    "PROVISIONAL_PREFIX",
    "PlaceUnit",
    "Position",
    "ReconcileReport",
    "RegistryEntry",
    "SellUnit",
    "SlotAddress",
    "SlotKind",
    "SyncConfig",
    "UnitSnapshot",
    "VisualHandle",
    "is_provisional",
]
