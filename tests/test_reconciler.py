"""Tests for the Reconciliation Engine."""

import pytest

from board_sync.ledger.store import SuppressionLedger
from board_sync.models.config import SyncConfig
from board_sync.models.slots import Ownership, SlotAddress
from board_sync.models.snapshot import BoardPlacement, BoardSnapshot
from board_sync.models.units import UnitSnapshot
from board_sync.models.visuals import RegistryEntry
from board_sync.reconciler.engine import Reconciler
from board_sync.registry.store import EntityRegistry
from board_sync.visuals.sink import RecordingVisualSink


def _unit(entity_id, template_id="knight", star_level=1, items=()):
    return UnitSnapshot(
        entity_id=entity_id,
        template_id=template_id,
        star_level=star_level,
        equipped_item_ids=items,
    )


def _snapshot(board=(), bench=(), revision=1):
    """board: {(x, y): unit}; bench: list of units or None."""
    return BoardSnapshot(
        board=[BoardPlacement(x=x, y=y, unit=u) for (x, y), u in dict(board).items()],
        bench=list(bench),
        revision=revision,
    )


class TestReconciler:
    def setup_method(self):
        self.registry = EntityRegistry()
        self.ledger = SuppressionLedger()
        self.sink = RecordingVisualSink()
        self.reconciler = Reconciler(self.registry, self.ledger, self.sink, SyncConfig())

    def _handle(self, entity_id):
        return self.registry.get(entity_id).handle

    def test_creates_one_visual_per_entity(self):
        report = self.reconciler.reconcile(_snapshot(
            board={(1, 0): _unit("a"), (2, 6): _unit("enemy")},
            bench=[_unit("b"), None],
        ))

        assert sorted(report.created) == ["a", "b", "enemy"]
        assert len(self.registry) == 3
        assert len(self.sink.visuals) == 3
        assert self.registry.get("enemy").ownership == Ownership.OPPONENT
        assert self.registry.get("b").slot == SlotAddress.bench(0)

    def test_identical_snapshot_is_noop(self):
        snapshot = _snapshot(board={(1, 0): _unit("a")}, bench=[_unit("b")])
        self.reconciler.reconcile(snapshot)
        self.sink.reset_calls()

        report = self.reconciler.reconcile(snapshot)

        assert not report.changed
        assert self.sink.calls == []

    def test_moved_entity_keeps_its_visual(self):
        self.reconciler.reconcile(_snapshot(bench=[_unit("a")]))
        handle = self._handle("a")
        self.sink.reset_calls()

        report = self.reconciler.reconcile(_snapshot(board={(3, 2): _unit("a")}))

        assert report.moved == ["a"]
        assert self._handle("a") == handle
        assert self.sink.visuals[handle].slot == SlotAddress.board(3, 2)
        assert self.sink.visuals[handle].animated is True
        assert self.sink.count("create") == 0
        assert self.sink.count("destroy") == 0

    def test_star_and_item_changes_update_in_place(self):
        self.reconciler.reconcile(_snapshot(bench=[_unit("a")]))
        handle = self._handle("a")

        report = self.reconciler.reconcile(_snapshot(bench=[_unit("a", star_level=2, items=("sword",))]))

        assert report.updated == ["a"]
        assert self.sink.visuals[handle].star_level == 2
        assert self.sink.visuals[handle].items == ("sword",)

    def test_absent_entity_destroyed(self):
        self.reconciler.reconcile(_snapshot(bench=[_unit("a"), _unit("b")]))
        handle = self._handle("b")

        report = self.reconciler.reconcile(_snapshot(bench=[_unit("a")]))

        assert report.destroyed == ["b"]
        assert handle not in self.sink.visuals
        assert "b" not in self.registry

    def test_suppressed_entity_left_alone(self):
        self.reconciler.reconcile(_snapshot(bench=[_unit("a")]))
        handle = self._handle("a")
        self.registry.move("a", SlotAddress.board(2, 1))
        self.sink.move_visual(handle, SlotAddress.board(2, 1), animated=False)
        self.ledger.suppress_entity("a")
        self.sink.reset_calls()

        report = self.reconciler.reconcile(_snapshot(bench=[_unit("a")]))

        assert report.skipped == ["a"]
        assert self.sink.calls == []
        assert self.sink.visuals[handle].slot == SlotAddress.board(2, 1)

    def test_entity_on_suppressed_slot_left_alone(self):
        self.ledger.suppress_slot(SlotAddress.bench(0))
        report = self.reconciler.reconcile(_snapshot(bench=[_unit("a")]))
        assert report.skipped == ["a"]
        assert len(self.registry) == 0

    def test_suppressed_absent_entity_not_destroyed(self):
        self.reconciler.reconcile(_snapshot(bench=[_unit("a")]))
        self.ledger.suppress_entity("a")
        report = self.reconciler.reconcile(_snapshot())
        assert report.destroyed == []
        assert "a" in self.registry

    def test_absent_entity_on_suppressed_slot_destroyed(self):
        self.reconciler.reconcile(_snapshot(bench=[_unit("a")]))
        handle = self._handle("a")
        self.ledger.suppress_slot(SlotAddress.bench(0))

        report = self.reconciler.reconcile(_snapshot())

        assert report.destroyed == ["a"]
        assert handle not in self.sink.visuals

    def test_rejected_move_heals_as_position_update(self):
        self.reconciler.reconcile(_snapshot(bench=[_unit("a")]))
        handle = self._handle("a")
        # Speculative move the server will never confirm
        self.registry.move("a", SlotAddress.board(2, 1))
        self.sink.move_visual(handle, SlotAddress.board(2, 1), animated=False)
        self.ledger.suppress_entity("a")

        stale = _snapshot(bench=[_unit("a")])
        self.reconciler.reconcile(stale)
        self.ledger.clear()
        self.sink.reset_calls()
        report = self.reconciler.reconcile(stale)

        assert report.moved == ["a"]
        assert self.sink.calls == [("move", handle)]
        assert self.sink.visuals[handle].slot == SlotAddress.bench(0)

    def test_pending_merge_target_kept_and_not_downgraded(self):
        self.reconciler.reconcile(_snapshot(bench=[_unit("a"), _unit("b")]))
        handle = self._handle("a")
        self.registry.get("a").star_level = 2
        self.sink.update_visual(handle, 2, ())
        self.ledger.mark_pending_merge("a")
        self.sink.reset_calls()

        # Server has not processed the purchase yet
        report = self.reconciler.reconcile(_snapshot(bench=[_unit("a"), _unit("b")]))
        assert report.updated == []
        assert self.sink.visuals[handle].star_level == 2

        # Absent from a snapshot while pending: still kept
        report = self.reconciler.reconcile(_snapshot(bench=[None, _unit("b")]))
        assert "a" not in report.destroyed
        assert "a" in self.registry

    def test_unconfirmed_merge_downgrades_after_clear(self):
        self.reconciler.reconcile(_snapshot(bench=[_unit("a")]))
        handle = self._handle("a")
        self.registry.get("a").star_level = 2
        self.sink.update_visual(handle, 2, ())
        self.ledger.mark_pending_merge("a")
        self.ledger.clear()

        report = self.reconciler.reconcile(_snapshot(bench=[_unit("a")]))

        assert report.updated == ["a"]
        assert self.sink.visuals[handle].star_level == 1

    def test_provisional_visual_adopted(self):
        placeholder = _unit("provisional:1", template_id="archer")
        handle = self.sink.create_visual(placeholder, SlotAddress.bench(2))
        self.registry.insert(RegistryEntry(
            entity_id="provisional:1",
            handle=handle,
            template_id="archer",
            slot=SlotAddress.bench(2),
        ))
        self.sink.reset_calls()

        report = self.reconciler.reconcile(_snapshot(bench=[None, None, _unit("u9", "archer")]))

        assert report.adopted == ["u9"]
        assert report.created == []
        assert self.registry.get("u9").handle == handle
        assert "provisional:1" not in self.registry
        assert self.sink.count("create") == 0
        assert self.sink.count("destroy") == 0

    def test_provisional_with_other_template_not_adopted(self):
        placeholder = _unit("provisional:1", template_id="archer")
        handle = self.sink.create_visual(placeholder, SlotAddress.bench(0))
        self.registry.insert(RegistryEntry(
            entity_id="provisional:1",
            handle=handle,
            template_id="archer",
            slot=SlotAddress.bench(0),
        ))

        report = self.reconciler.reconcile(_snapshot(bench=[_unit("u9", "knight")]))

        assert report.created == ["u9"]
        assert report.destroyed == ["provisional:1"]

    def test_out_of_bounds_placement_ignored(self, caplog):
        report = self.reconciler.reconcile(_snapshot(board={(12, 0): _unit("a")}))
        assert report.created == []
        assert "outside the board" in caplog.text

    @pytest.mark.parametrize("sequence", [
        [[0, 1, 2], [2, 1, 0], [1, None, 0]],
        [[0, None, None], [None, None, 0], [0, None, None]],
    ])
    def test_registry_tracks_snapshot_exactly(self, sequence):
        ids = ["a", "b", "c"]
        for revision, slots in enumerate(sequence, start=1):
            bench = [None] * 7
            for entity_id, index in zip(ids, slots):
                if index is not None:
                    bench[index] = _unit(entity_id)
            snapshot = _snapshot(bench=bench, revision=revision)
            self.reconciler.reconcile(snapshot)

            live = {u.entity_id: s for s, u in snapshot.slots().items()}
            assert {e.entity_id: e.slot for e in self.registry} == live
            assert len(self.sink.visuals) == len(live)
