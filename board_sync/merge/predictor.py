"""
Merge Predictor — anticipates star-level merges before the server confirms them.

Two units of the same template and star level combine into one unit a star
higher; the result may itself match another unit, cascading into a chain
(two 1★ + a purchased 1★ → 2★, which meets an existing 2★ → 3★).

Behavioral Contract:
- Searches the client's visual registry: bench in ascending slot order, then the
  board (row-major) only while the phase permits placement.
- Upgrades are applied to the visual layer only (registry + sink), never to the
  authoritative snapshot.
- Every upgraded unit is marked as a pending-merge target so reconciliation will
  neither destroy it nor downgrade its stars while the server catches up.
- Recursion stops when nothing matches or the maximum star level is reached.
"""

import logging
from typing import Iterable, List, Optional, Set

from board_sync.ledger.store import SuppressionLedger
from board_sync.models.config import SyncConfig
from board_sync.models.merge import MergePrediction, MergeStep
from board_sync.models.slots import EntityId, Ownership
from board_sync.models.snapshot import GamePhase
from board_sync.models.visuals import RegistryEntry
from board_sync.registry.store import EntityRegistry
from board_sync.visuals.sink import VisualSink

logger = logging.getLogger(__name__)


class MergePredictor:
    """Speculative merge-chain detection over the visual registry."""

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

    def find_match(
        self,
        template_id: str,
        star_level: int,
        phase: GamePhase,
        exclude: Iterable[EntityId] = (),
    ) -> Optional[RegistryEntry]:
        """First owned unit with the same template and star level, bench before board."""
        skip = set(exclude)
        candidates: List[RegistryEntry] = self.registry.bench_entries()
        if phase.permits_placement:
            candidates += self.registry.board_entries()
        for entry in candidates:
            if entry.entity_id in skip or entry.ownership != Ownership.LOCAL:
                continue
            if entry.template_id == template_id and entry.star_level == star_level:
                return entry
        return None

    def predict(
        self,
        template_id: str,
        phase: GamePhase,
        star_level: int = 1,
        exclude: Iterable[EntityId] = (),
    ) -> MergePrediction:
        """
        Predict (and speculatively apply) the merge chain a new unit triggers.
        `exclude` names entities that must not be matched (e.g., the new unit itself).
        """
        prediction = MergePrediction(template_id=template_id, final_star_level=star_level)
        self._merge_into(prediction, star_level, phase, set(exclude), previous=None)

        if prediction.merged:
            logger.info(
                "Predicted %s merge: %s → %d★ at %s (%d step(s))",
                template_id,
                prediction.target_entity,
                prediction.final_star_level,
                prediction.target_slot,
                len(prediction.steps),
            )
        return prediction

    def _merge_into(
        self,
        prediction: MergePrediction,
        star_level: int,
        phase: GamePhase,
        consumed: Set[EntityId],
        previous: Optional[RegistryEntry],
    ) -> None:
        if star_level >= self.config.max_star_level:
            return

        match = self.find_match(prediction.template_id, star_level, phase, consumed)
        if match is None:
            return

        absorbed_id = None
        if previous is not None:
            absorbed_id = previous.entity_id
            self._absorb(previous)

        new_star = star_level + 1
        match.star_level = new_star
        self.sink.update_visual(match.handle, new_star, match.items)
        self.ledger.mark_pending_merge(match.entity_id)
        consumed.add(match.entity_id)

        prediction.steps.append(MergeStep(
            entity_id=match.entity_id,
            slot=match.slot,
            from_star=star_level,
            to_star=new_star,
            absorbed_entity=absorbed_id,
        ))
        prediction.merged = True
        prediction.final_star_level = new_star
        prediction.target_entity = match.entity_id
        prediction.target_slot = match.slot

        self._merge_into(prediction, new_star, phase, consumed, previous=match)

    def _absorb(self, entry: RegistryEntry) -> None:
        """A unit upgraded one level down is folded into the next match."""
        self.sink.destroy_visual(entry.handle)
        self.registry.remove(entry.entity_id)
        self.ledger.suppress_entity(entry.entity_id)
        self.ledger.suppress_slot(entry.slot)
        logger.debug("Absorbed %s at %s into merge chain", entry.entity_id, entry.slot)
