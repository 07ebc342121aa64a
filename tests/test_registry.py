"""Tests for the Entity Registry."""

import pytest

from board_sync.models.slots import SlotAddress
from board_sync.models.visuals import RegistryEntry
from board_sync.registry.store import (
    DuplicateVisualError,
    EntityRegistry,
    UnknownEntityError,
)


def _entry(entity_id: str, slot: SlotAddress, handle: int = 1) -> RegistryEntry:
    return RegistryEntry(entity_id=entity_id, handle=handle, template_id="knight", slot=slot)


class TestEntityRegistry:
    def setup_method(self):
        self.registry = EntityRegistry()

    def test_insert_and_query(self):
        self.registry.insert(_entry("u1", SlotAddress.bench(0)))
        assert "u1" in self.registry
        assert len(self.registry) == 1
        assert self.registry.get("u1").slot == SlotAddress.bench(0)
        assert self.registry.occupant(SlotAddress.bench(0)).entity_id == "u1"
        assert self.registry.occupant(SlotAddress.bench(1)) is None

    def test_one_visual_per_entity(self):
        self.registry.insert(_entry("u1", SlotAddress.bench(0), handle=1))
        with pytest.raises(DuplicateVisualError):
            self.registry.insert(_entry("u1", SlotAddress.bench(1), handle=2))
        assert self.registry.get("u1").handle == 1

    def test_remove(self):
        self.registry.insert(_entry("u1", SlotAddress.bench(0)))
        removed = self.registry.remove("u1")
        assert removed.entity_id == "u1"
        assert self.registry.remove("u1") is None
        assert len(self.registry) == 0

    def test_move_and_require(self):
        self.registry.insert(_entry("u1", SlotAddress.bench(0)))
        self.registry.move("u1", SlotAddress.board(2, 1))
        assert self.registry.require("u1").slot == SlotAddress.board(2, 1)
        with pytest.raises(UnknownEntityError):
            self.registry.move("ghost", SlotAddress.bench(0))

    def test_rekey(self):
        self.registry.insert(_entry("provisional:1", SlotAddress.bench(3), handle=7))
        entry = self.registry.rekey("provisional:1", "u42")
        assert entry.handle == 7
        assert "provisional:1" not in self.registry
        assert self.registry.get("u42").slot == SlotAddress.bench(3)

    def test_rekey_onto_existing_entity_rejected(self):
        self.registry.insert(_entry("provisional:1", SlotAddress.bench(3), handle=1))
        self.registry.insert(_entry("u42", SlotAddress.bench(4), handle=2))
        with pytest.raises(DuplicateVisualError):
            self.registry.rekey("provisional:1", "u42")

    def test_ordering(self):
        self.registry.insert(_entry("b2", SlotAddress.bench(2), handle=1))
        self.registry.insert(_entry("b0", SlotAddress.bench(0), handle=2))
        self.registry.insert(_entry("r1", SlotAddress.board(0, 1), handle=3))
        self.registry.insert(_entry("r0", SlotAddress.board(5, 0), handle=4))

        assert [e.entity_id for e in self.registry.bench_entries()] == ["b0", "b2"]
        assert [e.entity_id for e in self.registry.board_entries()] == ["r0", "r1"]

    def test_dump(self):
        self.registry.insert(_entry("u1", SlotAddress.board(1, 2)))
        dumped = self.registry.dump()
        assert dumped[0]["entity_id"] == "u1"
        assert dumped[0]["slot"]["kind"] == "board"
