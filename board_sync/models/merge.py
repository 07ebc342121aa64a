"""Merge predictions."""

from typing import List, Optional

from pydantic import BaseModel

from board_sync.models.slots import EntityId, SlotAddress


class MergeStep(BaseModel):
    """One level of a merge chain."""

    entity_id: EntityId                     # Unit that was upgraded at this level
    slot: SlotAddress
    from_star: int
    to_star: int
    absorbed_entity: Optional[EntityId] = None  # Previous level's unit folded into this one


class MergePrediction(BaseModel):
    """
    merged=False: the caller must place the new unit itself.
    merged=True: the caller must not create a visual; an existing one was upgraded.
    """

    template_id: str
    merged: bool = False
    steps: List[MergeStep] = []
    final_star_level: int = 1
    target_entity: Optional[EntityId] = None
    target_slot: Optional[SlotAddress] = None

    @property
    def is_chain(self) -> bool:
        return len(self.steps) > 1
