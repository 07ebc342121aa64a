"""
Gesture / Drag Session Controller — turns raw pointer events into board actions.

States:
  IDLE → PENDING → (ACTIVE → RESOLVED → IDLE) | (IDLE via tap)

Behavioral Contract:
- Only a pointer-down over an owned unit opens a session; board units only while
  the game phase permits placement, bench units always.
- Crossing the pixel threshold is the only way from PENDING to ACTIVE.
- A pointer-up before the threshold is a tap: a select effect, never a mutation.
- A drop resolves its target with fixed precedence:
  direct tile hit > nearest tile > occupant-unit inference > sell zone > revert.
- Every committed drop applies a speculative mutation (registry + sink + ledger)
  and emits its authority intents in the same call.
- Invalid targets revert synchronously; no intent is sent.
- Dragging is exclusive: a pointer-down during an ACTIVE drag is rejected;
  one during a stale PENDING session resolves that session as a tap first.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Set, Tuple
from uuid import uuid4

from board_sync.authority.channel import AuthorityChannel
from board_sync.client.timers import TickTimers
from board_sync.ledger.store import SuppressionLedger
from board_sync.models.config import SyncConfig
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
    MoveBenchUnit,
    PlaceUnit,
    SellUnit,
)
from board_sync.models.slots import EntityId, Ownership, SlotAddress, is_provisional
from board_sync.models.snapshot import GamePhase
from board_sync.models.visuals import RegistryEntry
from board_sync.registry.store import EntityRegistry
from board_sync.visuals.hit_test import HitTester, distance
from board_sync.visuals.sink import VisualSink

logger = logging.getLogger(__name__)

REVERT_FLASH_TIMER = "revert_flash"


def intent_for_move(
    entity_id: EntityId, origin: SlotAddress, target: SlotAddress
) -> AuthorityIntent:
    """The authority intent that moves a unit from `origin` to `target`."""
    if target.is_board:
        return PlaceUnit(entity_id=entity_id, x=target.x, y=target.y)
    if origin.is_bench:
        return MoveBenchUnit(entity_id=entity_id, slot_index=target.index)
    return BenchUnit(entity_id=entity_id, slot_index=target.index)


class DragController:
    """The single owner of the DragSession."""

    def __init__(
        self,
        registry: EntityRegistry,
        ledger: SuppressionLedger,
        sink: VisualSink,
        hit_tester: HitTester,
        channel: AuthorityChannel,
        config: Optional[SyncConfig] = None,
        timers: Optional[TickTimers] = None,
        phase: GamePhase = GamePhase.WAITING,
    ):
        self.registry = registry
        self.ledger = ledger
        self.sink = sink
        self.hit_tester = hit_tester
        self.channel = channel
        self.config = config or SyncConfig()
        self.timers = timers
        self.phase = phase

        self._session: Optional[DragSession] = None
        self.selected: Optional[EntityId] = None

    @property
    def session(self) -> Optional[DragSession]:
        """The in-flight session, if any."""
        return self._session

    @property
    def drag_phase(self) -> DragPhase:
        return self._session.phase if self._session else DragPhase.NONE

    @property
    def geometry(self):
        return self.config.geometry

    # --- Pointer events ---

    def pointer_down(self, position: Position, tick: int = 0) -> GestureOutcome:
        """Open a PENDING session over an owned unit."""
        if self.drag_phase == DragPhase.ACTIVE:
            logger.debug("Pointer-down rejected: drag of %s in progress",
                         self._session.source_entity)
            return GestureOutcome(kind=OutcomeKind.REJECTED, reason="drag in progress")

        stale: Optional[GestureOutcome] = None
        if self.drag_phase == DragPhase.PENDING:
            logger.warning(
                "Stale pending session for %s (pointer-up lost); resolving as tap",
                self._session.source_entity,
            )
            stale = self._resolve_tap()

        entity_id = self.hit_tester.unit_at(position)
        entry = self.registry.get(entity_id) if entity_id else None
        refusal = self._refuse_pickup(entry)
        if refusal:
            return GestureOutcome(kind=OutcomeKind.IGNORED, reason=refusal, previous=stale)

        self._session = DragSession(
            session_id=f"drag_{uuid4().hex[:12]}",
            source_entity=entry.entity_id,
            source_slot=entry.slot,
            origin_slot=entry.slot,
            is_from_bench=entry.slot.is_bench,
            down_position=position,
            last_position=position,
            down_tick=tick,
        )
        logger.debug("Pending drag of %s from %s", entry.entity_id, entry.slot)
        return GestureOutcome(
            kind=OutcomeKind.PENDING,
            entity_id=entry.entity_id,
            origin=entry.slot,
            previous=stale,
        )

    def pointer_move(self, position: Position) -> GestureOutcome:
        """Track the pointer; promote PENDING to ACTIVE past the threshold."""
        session = self._session
        if session is None:
            return GestureOutcome(kind=OutcomeKind.IGNORED)
        session.last_position = position

        if session.phase == DragPhase.ACTIVE:
            return self._outcome(OutcomeKind.DRAGGING, session)

        if not self._past_threshold(session, position):
            return self._outcome(OutcomeKind.PENDING, session)

        self._activate(session)
        return self._outcome(OutcomeKind.ACTIVATED, session)

    def pointer_up(self, position: Position) -> GestureOutcome:
        """Resolve the session: tap if PENDING, drop if ACTIVE."""
        session = self._session
        if session is None:
            return GestureOutcome(kind=OutcomeKind.IGNORED)
        session.last_position = position
        if session.phase == DragPhase.PENDING:
            if not self._past_threshold(session, position):
                return self._resolve_tap()
            # Released far from the press with no move event in between
            self._activate(session)
        return self._resolve_drop(position)

    def poll(self, button_held: bool) -> GestureOutcome:
        """Treat a released button with a live session as a lost pointer-up."""
        if button_held or self._session is None:
            return GestureOutcome(kind=OutcomeKind.IGNORED)
        logger.warning(
            "Pointer-up for %s was lost; resolving at last known position",
            self._session.source_entity,
        )
        return self.pointer_up(self._session.last_position)

    def cancel(self, reason: str = "cancelled") -> GestureOutcome:
        """Force-cancel: snap back to origin and unwind this session's ledger entries."""
        session = self._session
        if session is None:
            return GestureOutcome(kind=OutcomeKind.IGNORED)

        entry = self.registry.get(session.source_entity)
        if entry is not None and session.phase == DragPhase.ACTIVE:
            self.sink.move_visual(entry.handle, session.origin_slot, animated=False)
        self._end_session(session)
        logger.info("Drag of %s cancelled: %s", session.source_entity, reason)
        return self._outcome(OutcomeKind.CANCELLED, session, reason=reason)

    def on_phase_changed(self, phase: GamePhase) -> Optional[GestureOutcome]:
        """Any game-phase transition cancels a live session."""
        previous, self.phase = self.phase, phase
        if previous == phase or self._session is None:
            return None
        return self.cancel(f"phase changed {previous.value} → {phase.value}")

    def hold_entries(self) -> None:
        """Re-protect the dragged unit after the ledger was cleared for a snapshot."""
        session = self._session
        if session is not None and session.phase == DragPhase.ACTIVE:
            self.ledger.suppress_entity(session.source_entity, owner=session.session_id)

    def valid_targets(self, session: DragSession) -> Set[SlotAddress]:
        """Slots a drop would move or swap into."""
        slots: Set[SlotAddress] = set(self.geometry.bench_slots())
        if self.phase.permits_placement:
            slots.update(self.geometry.board_slots())
        for slot in list(slots):
            occupant = self._occupant(slot, session.source_entity)
            if occupant is not None and not self._swappable(occupant):
                slots.discard(slot)
        return slots

    # --- Resolution ---

    def _resolve_tap(self) -> GestureOutcome:
        session = self._session
        self._end_session(session)
        entity_id = session.source_entity
        self.selected = None if self.selected == entity_id else entity_id
        logger.debug("Tap on %s (selected=%s)", entity_id, self.selected)
        return self._outcome(OutcomeKind.SELECT, session)

    def resolve_target(
        self, position: Position, exclude: Optional[EntityId] = None
    ) -> Tuple[Optional[SlotAddress], bool]:
        """
        Drop target under the pointer, and whether the pointer is over the sell zone.
        Precedence: tile > nearest tile > occupant unit > sell zone.
        """
        slot = self.hit_tester.tile_at(position)
        if slot is None:
            slot = self.hit_tester.nearest_tile(position, self.config.snap_radius_px)
        if slot is None:
            occupant_id = self.hit_tester.unit_at(position, exclude=exclude)
            occupant = self.registry.get(occupant_id) if occupant_id else None
            if occupant is not None:
                slot = occupant.slot
        if slot is not None:
            return slot, False
        return None, self.hit_tester.in_sell_zone(position)

    def _resolve_drop(self, position: Position) -> GestureOutcome:
        session = self._session
        entry = self.registry.get(session.source_entity)
        if entry is None:
            self._end_session(session)
            return self._outcome(OutcomeKind.CANCELLED, session, reason="unit vanished")

        target, over_sell = self.resolve_target(position, exclude=session.source_entity)
        if target is None:
            if over_sell:
                return self._commit_sell(session, entry)
            return self._revert(session, entry, "no target under pointer")

        if target == session.source_slot:
            self.sink.move_visual(entry.handle, session.origin_slot, animated=False)
            self._end_session(session)
            return self._outcome(OutcomeKind.NOOP, session, target=target)

        refusal = self._refuse_target(target)
        if refusal:
            return self._revert(session, entry, refusal, target)

        occupant = self._occupant(target, session.source_entity)
        if occupant is None:
            return self._commit_move(session, entry, target)
        if not self._swappable(occupant):
            return self._revert(session, entry, "occupied by a unit you do not own", target)
        return self._commit_swap(session, entry, occupant, target)

    def _commit_move(
        self, session: DragSession, entry: RegistryEntry, target: SlotAddress
    ) -> GestureOutcome:
        origin = session.source_slot
        self.registry.move(entry.entity_id, target)
        self.sink.move_visual(entry.handle, target, animated=False)
        self._suppress(entry.entity_id, origin, target)

        intents = [intent_for_move(entry.entity_id, origin, target)]
        self._send(intents)
        self._end_session(session)
        logger.info("Moved %s %s → %s", entry.entity_id, origin, target)
        return self._outcome(OutcomeKind.MOVE, session, target=target, intents=intents)

    def _commit_swap(
        self,
        session: DragSession,
        entry: RegistryEntry,
        other: RegistryEntry,
        target: SlotAddress,
    ) -> GestureOutcome:
        origin = session.source_slot
        self.registry.move(entry.entity_id, target)
        self.registry.move(other.entity_id, origin)
        self.sink.move_visual(entry.handle, target, animated=False)
        self.sink.move_visual(other.handle, origin, animated=True)
        self._suppress(entry.entity_id, origin, target)
        self.ledger.suppress_entity(other.entity_id)

        intents = [
            intent_for_move(entry.entity_id, origin, target),
            intent_for_move(other.entity_id, target, origin),
        ]
        self._send(intents)
        self._end_session(session)
        logger.info("Swapped %s (%s) with %s (%s)", entry.entity_id, origin,
                    other.entity_id, target)
        return self._outcome(
            OutcomeKind.SWAP, session, target=target, intents=intents,
            displaced_entity=other.entity_id,
        )

    def _commit_sell(self, session: DragSession, entry: RegistryEntry) -> GestureOutcome:
        origin = session.source_slot
        if origin.is_board and not self.phase.permits_placement:
            return self._revert(session, entry, "board units can only be sold while planning")

        self.sink.destroy_visual(entry.handle)
        self.registry.remove(entry.entity_id)
        self._suppress(entry.entity_id, origin)

        intents = [SellUnit(entity_id=entry.entity_id)]
        self._send(intents)
        self._end_session(session)
        if self.selected == entry.entity_id:
            self.selected = None
        logger.info("Sold %s from %s", entry.entity_id, origin)
        return self._outcome(OutcomeKind.SELL, session, intents=intents)

    def _revert(
        self,
        session: DragSession,
        entry: RegistryEntry,
        reason: str,
        target: Optional[SlotAddress] = None,
    ) -> GestureOutcome:
        self.sink.move_visual(entry.handle, session.origin_slot, animated=True)
        self._end_session(session)
        self._flash(session.origin_slot)
        logger.debug("Drop of %s reverted: %s", entry.entity_id, reason)
        return self._outcome(OutcomeKind.REVERT, session, target=target, reason=reason)

    # --- Helpers ---

    def _past_threshold(self, session: DragSession, position: Position) -> bool:
        return distance(session.down_position, position) > self.config.drag_threshold_px

    def _activate(self, session: DragSession) -> None:
        session.phase = DragPhase.ACTIVE
        self.ledger.suppress_entity(session.source_entity, owner=session.session_id)
        self.sink.highlight_slots(self.valid_targets(session))
        logger.debug("Drag of %s active", session.source_entity)

    def _refuse_pickup(self, entry: Optional[RegistryEntry]) -> Optional[str]:
        if entry is None:
            return "no unit under pointer"
        if entry.ownership != Ownership.LOCAL:
            return "unit not owned"
        if is_provisional(entry.entity_id):
            return "unit not confirmed yet"
        if entry.slot.is_board and not self.phase.permits_placement:
            return f"board locked during {self.phase.value}"
        return None

    def _refuse_target(self, target: SlotAddress) -> Optional[str]:
        if not self.geometry.contains(target):
            return "out of bounds"
        if self.geometry.ownership(target) != Ownership.LOCAL:
            return "outside the player's rows"
        if target.is_board and not self.phase.permits_placement:
            return f"board locked during {self.phase.value}"
        return None

    def _occupant(self, slot: SlotAddress, exclude: EntityId) -> Optional[RegistryEntry]:
        for entry in self.registry.occupants(slot):
            if entry.entity_id != exclude:
                return entry
        return None

    def _swappable(self, entry: RegistryEntry) -> bool:
        return entry.ownership == Ownership.LOCAL and not is_provisional(entry.entity_id)

    def _suppress(self, entity_id: EntityId, *slots: SlotAddress) -> None:
        self.ledger.suppress_entity(entity_id)
        for slot in slots:
            self.ledger.suppress_slot(slot)

    def _send(self, intents: List[AuthorityIntent]) -> None:
        for intent in intents:
            self.channel.send(intent)

    def _end_session(self, session: DragSession) -> None:
        self.ledger.release(session.session_id)
        if session.phase == DragPhase.ACTIVE:
            self.sink.highlight_slots(())
        self._session = None

    def _flash(self, slot: SlotAddress) -> None:
        """Briefly highlight the slot a rejected drop snapped back to."""
        if self.timers is None or self.config.revert_flash_ticks == 0:
            return
        self.sink.highlight_slots({slot})
        self.timers.schedule(
            REVERT_FLASH_TIMER,
            self.config.revert_flash_ticks,
            lambda: self.sink.highlight_slots(()),
        )

    def _outcome(
        self, kind: OutcomeKind, session: DragSession, **fields
    ) -> GestureOutcome:
        return GestureOutcome(
            kind=kind,
            entity_id=session.source_entity,
            origin=session.origin_slot,
            **fields,
        )
