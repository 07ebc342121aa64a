"""Entity registry records — what the client currently shows for each entity."""

from typing import Tuple

from pydantic import BaseModel

from board_sync.models.slots import EntityId, Ownership, SlotAddress

VisualHandle = int


class RegistryEntry(BaseModel):
    """Last known visual state of one entity. Mutated only through EntityRegistry."""

    entity_id: EntityId
    handle: VisualHandle
    template_id: str
    slot: SlotAddress
    star_level: int = 1
    items: Tuple[str, ...] = ()
    ownership: Ownership = Ownership.LOCAL
