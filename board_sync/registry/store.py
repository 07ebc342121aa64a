"""
Entity Registry — the single owner of entity → visual bookkeeping.

Updated by: Reconciliation Engine, Drag Controller, Merge Predictor
Queried by: all of the above and the hit tester

Invariants:
- At most one visual per EntityId.
- At most one EntityId per occupied slot, outside a swap's single-frame transition.
"""

from typing import Dict, Iterator, List, Optional

from board_sync.models.slots import EntityId, SlotAddress
from board_sync.models.visuals import RegistryEntry


class DuplicateVisualError(Exception):
    """Raised when a second visual is registered for the same entity."""
    pass


class UnknownEntityError(KeyError):
    """Raised when an operation names an entity the registry does not hold."""
    pass


class EntityRegistry:
    """In-memory registry keyed by EntityId with a slot index kept alongside."""

    def __init__(self):
        self._entries: Dict[EntityId, RegistryEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entity_id: EntityId) -> bool:
        return entity_id in self._entries

    def __iter__(self) -> Iterator[RegistryEntry]:
        return iter(list(self._entries.values()))

    def insert(self, entry: RegistryEntry) -> None:
        """Register a visual for an entity that has none yet."""
        if entry.entity_id in self._entries:
            raise DuplicateVisualError(
                f"Entity {entry.entity_id} already has visual "
                f"{self._entries[entry.entity_id].handle}"
            )
        self._entries[entry.entity_id] = entry

    def remove(self, entity_id: EntityId) -> Optional[RegistryEntry]:
        """Unregister an entity. Returns the removed entry, if any."""
        return self._entries.pop(entity_id, None)

    def get(self, entity_id: EntityId) -> Optional[RegistryEntry]:
        return self._entries.get(entity_id)

    def require(self, entity_id: EntityId) -> RegistryEntry:
        entry = self._entries.get(entity_id)
        if entry is None:
            raise UnknownEntityError(entity_id)
        return entry

    def rekey(self, old_id: EntityId, new_id: EntityId) -> RegistryEntry:
        """Hand an existing visual over to a new EntityId (provisional adoption)."""
        if new_id in self._entries:
            raise DuplicateVisualError(f"Entity {new_id} already has a visual")
        entry = self._entries.pop(old_id, None)
        if entry is None:
            raise UnknownEntityError(old_id)
        entry.entity_id = new_id
        self._entries[new_id] = entry
        return entry

    def move(self, entity_id: EntityId, slot: SlotAddress) -> RegistryEntry:
        entry = self.require(entity_id)
        entry.slot = slot
        return entry

    def occupants(self, slot: SlotAddress) -> List[RegistryEntry]:
        return [e for e in self._entries.values() if e.slot == slot]

    def occupant(self, slot: SlotAddress) -> Optional[RegistryEntry]:
        """The entity shown in a slot, if any."""
        for entry in self._entries.values():
            if entry.slot == slot:
                return entry
        return None

    def entries(self) -> List[RegistryEntry]:
        return list(self._entries.values())

    def bench_entries(self) -> List[RegistryEntry]:
        """Bench entries in ascending slot order."""
        return sorted(
            (e for e in self._entries.values() if e.slot.is_bench),
            key=lambda e: e.slot.index,
        )

    def board_entries(self) -> List[RegistryEntry]:
        """Board entries in row-major order (y, then x)."""
        return sorted(
            (e for e in self._entries.values() if e.slot.is_board),
            key=lambda e: (e.slot.y, e.slot.x),
        )

    def dump(self) -> List[dict]:
        """Serializable view of every entry."""
        return [e.model_dump(mode="json") for e in self._entries.values()]
