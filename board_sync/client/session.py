"""
Sync Client — the single tick thread that owns every board-sync component.

Wires the Suppression Ledger, Entity Registry, Visual Sink, Drag Controller,
Merge Predictor and Reconciliation Engine together by explicit injection.

Per tick:
  1. Poll for a lost pointer-up (if the input layer reports button state).
  2. Drain buffered snapshots in arrival order. For each one:
     phase change → cancel drag; reconcile; clear ledger; re-hold active drag.
  3. Fire expired tick timers.

Network callbacks only ever append to the inbound buffer, so reconciliation
always sees one complete snapshot and never runs mid-gesture.
"""

import logging
from collections import deque
from typing import Deque, List, Optional

from board_sync.authority.channel import AuthorityChannel, IntentOutbox
from board_sync.client.timers import TickTimers
from board_sync.gesture.controller import DragController
from board_sync.ledger.store import SuppressionLedger
from board_sync.merge.predictor import MergePredictor
from board_sync.models.config import SyncConfig
from board_sync.models.gesture import GestureOutcome, Position
from board_sync.models.intents import BuyUnit
from board_sync.models.merge import MergePrediction
from board_sync.models.reports import ReconcileReport
from board_sync.models.slots import PROVISIONAL_PREFIX, EntityId, Ownership, SlotAddress
from board_sync.models.snapshot import ActionResult, BoardSnapshot, GamePhase
from board_sync.models.units import UnitSnapshot
from board_sync.models.visuals import RegistryEntry
from board_sync.reconciler.engine import Reconciler
from board_sync.registry.store import EntityRegistry
from board_sync.visuals.hit_test import GridHitTester, HitTester
from board_sync.visuals.sink import VisualSink

logger = logging.getLogger(__name__)

OUTCOME_HISTORY = 100


class SyncClient:
    """Client-side optimistic board synchronization."""

    def __init__(
        self,
        sink: VisualSink,
        channel: Optional[AuthorityChannel] = None,
        config: Optional[SyncConfig] = None,
        registry: Optional[EntityRegistry] = None,
        hit_tester: Optional[HitTester] = None,
    ):
        self.config = config or SyncConfig()
        self.sink = sink
        self.channel = channel or IntentOutbox()
        self.registry = registry or EntityRegistry()
        self.ledger = SuppressionLedger()
        self.timers = TickTimers()
        self.hit_tester = hit_tester or GridHitTester(self.config.geometry, self.registry)

        self.reconciler = Reconciler(self.registry, self.ledger, sink, self.config)
        self.predictor = MergePredictor(self.registry, self.ledger, sink, self.config)
        self.controller = DragController(
            registry=self.registry,
            ledger=self.ledger,
            sink=sink,
            hit_tester=self.hit_tester,
            channel=self.channel,
            config=self.config,
            timers=self.timers,
        )

        self._inbox: Deque[BoardSnapshot] = deque()
        self._tick = 0
        self._provisional_seq = 0
        self.last_snapshot: Optional[BoardSnapshot] = None
        self.outcomes: Deque[GestureOutcome] = deque(maxlen=OUTCOME_HISTORY)

    @property
    def phase(self) -> GamePhase:
        return self.controller.phase

    @property
    def tick_count(self) -> int:
        return self._tick

    @property
    def pending_snapshots(self) -> int:
        return len(self._inbox)

    # --- Inbound (may be called from the network side) ---

    def receive_snapshot(self, snapshot: BoardSnapshot) -> None:
        """Buffer a snapshot; it is applied at the next tick."""
        self._inbox.append(snapshot)

    def receive_action_result(self, result: ActionResult) -> None:
        """Acknowledgements are informational; rejected intents self-heal."""
        if result.success:
            logger.debug("Server accepted %s", result.action)
        else:
            logger.warning(
                "Server rejected %s: %s (visual will heal on a later snapshot)",
                result.action,
                result.error or "no reason given",
            )

    # --- Tick ---

    def tick(self, button_held: Optional[bool] = None) -> List[ReconcileReport]:
        """Advance one frame. Returns one report per snapshot applied."""
        self._tick += 1

        if button_held is not None:
            self._record(self.controller.poll(button_held))

        reports = []
        while self._inbox:
            reports.append(self._ingest(self._inbox.popleft()))

        self.timers.advance(self._tick)
        return reports

    def _ingest(self, snapshot: BoardSnapshot) -> ReconcileReport:
        if snapshot.phase != self.controller.phase:
            logger.info("Phase %s → %s", self.controller.phase.value, snapshot.phase.value)
            cancelled = self.controller.on_phase_changed(snapshot.phase)
            if cancelled is not None:
                self._record(cancelled)

        report = self.reconciler.reconcile(snapshot)
        self.ledger.clear()
        self.controller.hold_entries()
        self.last_snapshot = snapshot
        return report

    # --- Pointer input ---

    def pointer_down(self, position: Position) -> GestureOutcome:
        return self._record(self.controller.pointer_down(position, tick=self._tick))

    def pointer_move(self, position: Position) -> GestureOutcome:
        return self._record(self.controller.pointer_move(position))

    def pointer_up(self, position: Position) -> GestureOutcome:
        return self._record(self.controller.pointer_up(position))

    def cancel_drag(self, reason: str = "cancelled by client") -> GestureOutcome:
        return self._record(self.controller.cancel(reason))

    def _record(self, outcome: GestureOutcome) -> GestureOutcome:
        if outcome.previous is not None:
            self.outcomes.append(outcome.previous)
        self.outcomes.append(outcome)
        return outcome

    # --- Purchases ---

    def purchase(self, shop_index: int, template_id: str) -> MergePrediction:
        """
        Buy a unit from the shop. The buy intent is sent immediately; a predicted
        merge upgrades an existing visual, otherwise a provisional visual is placed
        on the first free bench slot until the server names the new unit.
        """
        self.channel.send(BuyUnit(shop_index=shop_index))
        prediction = self.predictor.predict(template_id, phase=self.phase)
        if not prediction.merged:
            self._place_provisional(template_id)
        return prediction

    def _place_provisional(self, template_id: str) -> Optional[EntityId]:
        slot = self._first_free_bench_slot()
        if slot is None:
            logger.warning("Bench full; no placeholder shown for %s", template_id)
            return None

        self._provisional_seq += 1
        entity_id = f"{PROVISIONAL_PREFIX}{self._provisional_seq}"
        unit = UnitSnapshot(entity_id=entity_id, template_id=template_id)
        handle = self.sink.create_visual(unit, slot)
        self.registry.insert(RegistryEntry(
            entity_id=entity_id,
            handle=handle,
            template_id=template_id,
            slot=slot,
            ownership=Ownership.LOCAL,
        ))
        self.ledger.suppress_entity(entity_id)
        self.ledger.suppress_slot(slot)
        logger.debug("Placed provisional %s (%s) at %s", entity_id, template_id, slot)
        return entity_id

    def _first_free_bench_slot(self) -> Optional[SlotAddress]:
        for slot in self.config.geometry.bench_slots():
            if self.registry.occupant(slot) is None:
                return slot
        return None
