"""
Reconciliation Engine — reconverges the visual state to each authoritative snapshot.

Runs once per snapshot, between ledger commits and the ledger clear:
  1. Collect the live set from the snapshot (board + bench).
  2. Live, unsuppressed entities: update the existing visual only where the slot,
     stars or items differ; otherwise adopt a provisional visual or create one.
  3. Live, suppressed entities (or entities on suppressed slots): untouched.
  4. Registered entities missing from the live set, and neither pending-merge
     targets nor suppressed entities: destroyed. A suppressed slot does not
     keep an absent entity alive.

A rejected speculative move therefore self-heals one snapshot after its
suppression expires, as a plain position update.
"""

import logging
from typing import Dict, Optional, Tuple

from board_sync.ledger.store import SuppressionLedger
from board_sync.models.config import SyncConfig
from board_sync.models.reports import ReconcileReport
from board_sync.models.slots import EntityId, SlotAddress, is_provisional
from board_sync.models.snapshot import BoardSnapshot
from board_sync.models.units import UnitSnapshot
from board_sync.models.visuals import RegistryEntry
from board_sync.registry.store import EntityRegistry
from board_sync.visuals.sink import VisualSink

logger = logging.getLogger(__name__)


class Reconciler:
    """Minimal-diff snapshot → visual reconciliation."""

    def __init__(
        self,
        registry: EntityRegistry,
        ledger: SuppressionLedger,
        sink: VisualSink,
        config: Optional[SyncConfig] = None,
    ):
        self.registry = registry
        self.ledger = ledger
        self.sink = sink
        self.config = config or SyncConfig()

    def reconcile(self, snapshot: BoardSnapshot) -> ReconcileReport:
        """Run a single reconciliation pass for one snapshot."""
        report = ReconcileReport(revision=snapshot.revision, ledger_cycle=self.ledger.cycle)
        live = self._live_set(snapshot)

        for entity_id, (slot, unit) in live.items():
            if self._is_protected(entity_id, slot):
                report.skipped.append(entity_id)
                continue
            self._sync_entity(unit, slot, report)

        for entry in self.registry.entries():
            if entry.entity_id in live:
                continue
            if self.ledger.is_pending_merge(entry.entity_id):
                continue
            if self.ledger.is_entity_suppressed(entry.entity_id):
                continue
            self.sink.destroy_visual(entry.handle)
            self.registry.remove(entry.entity_id)
            report.destroyed.append(entry.entity_id)

        if report.changed:
            logger.info(
                "Reconciled revision %d: %d created, %d moved, %d updated, "
                "%d adopted, %d destroyed, %d skipped",
                snapshot.revision,
                len(report.created),
                len(report.moved),
                len(report.updated),
                len(report.adopted),
                len(report.destroyed),
                len(report.skipped),
            )
        else:
            logger.debug("Reconciled revision %d: no visual change", snapshot.revision)
        return report

    def _live_set(
        self, snapshot: BoardSnapshot
    ) -> Dict[EntityId, Tuple[SlotAddress, UnitSnapshot]]:
        """entity → (slot, unit), board placements first, then bench."""
        live: Dict[EntityId, Tuple[SlotAddress, UnitSnapshot]] = {}
        board_count = bench_count = 0
        for slot, unit in snapshot.slots().items():
            if not self.config.geometry.contains(slot):
                logger.warning("Snapshot places %s outside the board at %s",
                               unit.entity_id, slot)
                continue
            live[unit.entity_id] = (slot, unit)
            if slot.is_board:
                board_count += 1
            else:
                bench_count += 1
        logger.debug("Live set: %d board, %d bench", board_count, bench_count)
        return live

    def _is_protected(self, entity_id: EntityId, slot: SlotAddress) -> bool:
        return self.ledger.is_entity_suppressed(entity_id) or self.ledger.is_slot_suppressed(slot)

    def _sync_entity(
        self, unit: UnitSnapshot, slot: SlotAddress, report: ReconcileReport
    ) -> None:
        entry = self.registry.get(unit.entity_id)
        if entry is None:
            entry = self._adopt_provisional(unit, slot)
            if entry is None:
                self._create(unit, slot)
                report.created.append(unit.entity_id)
                return
            report.adopted.append(unit.entity_id)

        if entry.slot != slot:
            self.registry.move(entry.entity_id, slot)
            entry.ownership = self.config.geometry.ownership(slot)
            self.sink.move_visual(entry.handle, slot, animated=True)
            report.moved.append(entry.entity_id)

        star_level = unit.star_level
        if self.ledger.is_pending_merge(entry.entity_id) and star_level < entry.star_level:
            # Server has not applied the predicted merge yet; keep the upgrade on screen.
            star_level = entry.star_level
        if star_level != entry.star_level or unit.equipped_item_ids != entry.items:
            entry.star_level = star_level
            entry.items = unit.equipped_item_ids
            self.sink.update_visual(entry.handle, star_level, unit.equipped_item_ids)
            report.updated.append(entry.entity_id)

    def _create(self, unit: UnitSnapshot, slot: SlotAddress) -> RegistryEntry:
        handle = self.sink.create_visual(unit, slot)
        entry = RegistryEntry(
            entity_id=unit.entity_id,
            handle=handle,
            template_id=unit.template_id,
            slot=slot,
            star_level=unit.star_level,
            items=unit.equipped_item_ids,
            ownership=self.config.geometry.ownership(slot),
        )
        self.registry.insert(entry)
        return entry

    def _adopt_provisional(
        self, unit: UnitSnapshot, slot: SlotAddress
    ) -> Optional[RegistryEntry]:
        """Hand a purchased unit's placeholder visual over to its real EntityId."""
        for entry in self.registry.occupants(slot):
            if not is_provisional(entry.entity_id) or entry.template_id != unit.template_id:
                continue
            if self.ledger.is_entity_suppressed(entry.entity_id):
                continue
            logger.debug("Adopting %s as %s at %s", entry.entity_id, unit.entity_id, slot)
            return self.registry.rekey(entry.entity_id, unit.entity_id)
        return None
