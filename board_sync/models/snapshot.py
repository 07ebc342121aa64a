"""Authoritative snapshots — the server's complete view of the local board."""

from enum import Enum
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, model_validator

from board_sync.models.slots import EntityId, SlotAddress
from board_sync.models.units import UnitSnapshot


class GamePhase(str, Enum):
    WAITING = "waiting"
    PLANNING = "planning"
    COMBAT = "combat"
    RESULTS = "results"
    GAME_OVER = "game_over"

    @property
    def permits_placement(self) -> bool:
        """Board units may only be moved, sold or merged into while planning."""
        return self == GamePhase.PLANNING


class BoardPlacement(BaseModel):
    """A unit sitting on a board tile."""

    model_config = ConfigDict(frozen=True)

    x: int = Field(ge=0)
    y: int = Field(ge=0)
    unit: UnitSnapshot

    @property
    def slot(self) -> SlotAddress:
        return SlotAddress.board(self.x, self.y)


class BoardSnapshot(BaseModel):
    """
    Inbound Snapshot{board, bench, phase}.
    Fully replaces the client's prior authoritative view on arrival.
    """

    model_config = ConfigDict(frozen=True)

    board: List[BoardPlacement] = []
    bench: List[Optional[UnitSnapshot]] = []
    phase: GamePhase = GamePhase.PLANNING
    round: int = Field(ge=0, default=1)
    revision: int = Field(ge=0, default=0)    # Server sequence number, informational

    @model_validator(mode="after")
    def _check_unique(self) -> "BoardSnapshot":
        seen_slots: Set[SlotAddress] = set()
        seen_ids: Set[EntityId] = set()
        for slot, unit in self._iter_slots():
            if slot in seen_slots:
                raise ValueError(f"two units placed on {slot}")
            if unit.entity_id in seen_ids:
                raise ValueError(f"entity {unit.entity_id} appears in two slots")
            seen_slots.add(slot)
            seen_ids.add(unit.entity_id)
        return self

    def _iter_slots(self):
        for placement in self.board:
            yield placement.slot, placement.unit
        for i, unit in enumerate(self.bench):
            if unit is not None:
                yield SlotAddress.bench(i), unit

    def slots(self) -> Dict[SlotAddress, UnitSnapshot]:
        """SlotAddress → UnitSnapshot for every occupied slot."""
        return dict(self._iter_slots())

    def locate(self, entity_id: EntityId) -> Optional[SlotAddress]:
        for slot, unit in self._iter_slots():
            if unit.entity_id == entity_id:
                return slot
        return None


class ActionResult(BaseModel):
    """Server acknowledgement of an intent. Logged only; rejections self-heal."""

    action: str
    success: bool
    error: Optional[str] = None
