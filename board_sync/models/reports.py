"""Reconciliation and ledger reports."""

from typing import List

from pydantic import BaseModel

from board_sync.models.slots import EntityId, SlotAddress


class LedgerState(BaseModel):
    """Serializable view of the Suppression Ledger."""

    cycle: int
    suppressed_entities: List[EntityId] = []
    suppressed_slots: List[SlotAddress] = []
    pending_merge_targets: List[EntityId] = []


class ReconcileReport(BaseModel):
    """Outcome of reconciling one authoritative snapshot."""

    revision: int
    ledger_cycle: int
    created: List[EntityId] = []
    moved: List[EntityId] = []
    updated: List[EntityId] = []
    adopted: List[EntityId] = []
    destroyed: List[EntityId] = []
    skipped: List[EntityId] = []            # Live but suppressed

    @property
    def changed(self) -> bool:
        return bool(self.created or self.moved or self.updated or self.adopted or self.destroyed)
