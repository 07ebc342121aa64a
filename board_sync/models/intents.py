"""Authority intents — requests sent to the server, never facts until a snapshot reflects them."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from board_sync.models.slots import EntityId


class _Intent(BaseModel):
    model_config = ConfigDict(frozen=True)


class PlaceUnit(_Intent):
    type: Literal["placeUnit"] = "placeUnit"
    entity_id: EntityId
    x: int = Field(ge=0)
    y: int = Field(ge=0)


class BenchUnit(_Intent):
    type: Literal["benchUnit"] = "benchUnit"
    entity_id: EntityId
    slot_index: int = Field(ge=0)


class MoveBenchUnit(_Intent):
    type: Literal["moveBenchUnit"] = "moveBenchUnit"
    entity_id: EntityId
    slot_index: int = Field(ge=0)


class SellUnit(_Intent):
    type: Literal["sellUnit"] = "sellUnit"
    entity_id: EntityId


class BuyUnit(_Intent):
    type: Literal["buyUnit"] = "buyUnit"
    shop_index: int = Field(ge=0)


AuthorityIntent = Annotated[
    Union[PlaceUnit, BenchUnit, MoveBenchUnit, SellUnit, BuyUnit],
    Field(discriminator="type"),
]
