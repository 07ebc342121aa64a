"""Unit snapshots — one unit instance as the authority last described it."""

from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field

from board_sync.models.slots import EntityId

MAX_ITEMS_PER_UNIT = 3


class UnitSnapshot(BaseModel):
    """Immutable per snapshot; replaced wholesale on each authoritative update."""

    model_config = ConfigDict(frozen=True)

    entity_id: EntityId = Field(min_length=1)
    template_id: str = Field(min_length=1)     # e.g., "knight", "archer"
    star_level: int = Field(ge=1, default=1)
    equipped_item_ids: Tuple[str, ...] = Field(
        default=(), max_length=MAX_ITEMS_PER_UNIT
    )
