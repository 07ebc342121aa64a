"""
Suppression Ledger — protects in-flight speculative mutations from reconciliation.

The Reconciliation Engine runs on every snapshot arrival and would otherwise
undo speculative moves the server has not caught up with yet.

Behavioral Contract:
- Inserts are idempotent and happen at the moment a speculative mutation commits.
- clear() drops entities, slots and pending merges together, once per snapshot
  ingestion, after reconciliation has read the ledger for that snapshot.
  An entry therefore protects exactly one snapshot, whether or not the server
  confirmed the mutation.
- release(owner) drops only the entries a cancelled drag session added.
- Confined to the tick thread; no locking.
"""

import logging
from typing import Dict, Hashable, Optional, Set, Tuple

from board_sync.models.reports import LedgerState
from board_sync.models.slots import EntityId, SlotAddress

logger = logging.getLogger(__name__)

_ENTITY = "entity"
_SLOT = "slot"
_MERGE = "merge"

# Entries inserted outside any drag session (commits, merge predictions)
COMMITTED = None

_Key = Tuple[str, Hashable]


class SuppressionLedger:
    """
    {suppressed_entities, suppressed_slots, pending_merge_targets}.
    Each entry remembers which owners asked for it so a cancelled session
    can be unwound without touching entries a commit still needs.
    """

    def __init__(self):
        self._entries: Dict[_Key, Set[Optional[str]]] = {}
        self._cycle = 0

    @property
    def cycle(self) -> int:
        """Number of snapshot cycles the ledger has been cleared for."""
        return self._cycle

    def __len__(self) -> int:
        return len(self._entries)

    def _add(self, key: _Key, owner: Optional[str]) -> None:
        self._entries.setdefault(key, set()).add(owner)

    def suppress_entity(self, entity_id: EntityId, owner: Optional[str] = COMMITTED) -> None:
        self._add((_ENTITY, entity_id), owner)

    def suppress_slot(self, slot: SlotAddress, owner: Optional[str] = COMMITTED) -> None:
        self._add((_SLOT, slot), owner)

    def mark_pending_merge(self, entity_id: EntityId, owner: Optional[str] = COMMITTED) -> None:
        self._add((_MERGE, entity_id), owner)

    def is_entity_suppressed(self, entity_id: EntityId) -> bool:
        return (_ENTITY, entity_id) in self._entries

    def is_slot_suppressed(self, slot: SlotAddress) -> bool:
        return (_SLOT, slot) in self._entries

    def is_pending_merge(self, entity_id: EntityId) -> bool:
        return (_MERGE, entity_id) in self._entries

    def is_suppressed(self, target) -> bool:
        """Convenience query accepting either an EntityId or a SlotAddress."""
        if isinstance(target, SlotAddress):
            return self.is_slot_suppressed(target)
        return self.is_entity_suppressed(target)

    def release(self, owner: str) -> int:
        """Drop every entry held only by `owner`. Returns how many entries went away."""
        removed = 0
        for key in list(self._entries):
            owners = self._entries[key]
            if owner in owners:
                owners.discard(owner)
                if not owners:
                    del self._entries[key]
                    removed += 1
        if removed:
            logger.debug("Released %d ledger entries for session %s", removed, owner)
        return removed

    def clear(self) -> None:
        """Expire every entry. Called once per authoritative snapshot ingestion."""
        if self._entries:
            logger.debug(
                "Clearing %d ledger entries at cycle %d", len(self._entries), self._cycle
            )
        self._entries.clear()
        self._cycle += 1

    def _values(self, kind: str) -> list:
        return [key[1] for key in self._entries if key[0] == kind]

    def snapshot(self) -> LedgerState:
        """Serializable view of the current entries."""
        return LedgerState(
            cycle=self._cycle,
            suppressed_entities=sorted(self._values(_ENTITY)),
            suppressed_slots=sorted(self._values(_SLOT), key=str),
            pending_merge_targets=sorted(self._values(_MERGE)),
        )
