"""Slot addressing — where a unit can sit on the local player's side."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

EntityId = str
PROVISIONAL_PREFIX = "provisional:"


def is_provisional(entity_id: EntityId) -> bool:
    """Client-side ids for purchased units the authority has not confirmed yet."""
    return entity_id.startswith(PROVISIONAL_PREFIX)


class SlotKind(str, Enum):
    BOARD = "board"
    BENCH = "bench"


class Ownership(str, Enum):
    LOCAL = "local"         # Bench and the player's own rows
    OPPONENT = "opponent"   # Rows mirrored in from the opposing board


class SlotAddress(BaseModel):
    """Tagged union: Board(x, y) | Bench(index)."""

    model_config = ConfigDict(frozen=True)

    kind: SlotKind
    x: Optional[int] = Field(default=None, ge=0)
    y: Optional[int] = Field(default=None, ge=0)
    index: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_shape(self) -> "SlotAddress":
        if self.kind == SlotKind.BOARD:
            if self.x is None or self.y is None or self.index is not None:
                raise ValueError("board slot needs x and y and no index")
        else:
            if self.index is None or self.x is not None or self.y is not None:
                raise ValueError("bench slot needs an index and no coordinates")
        return self

    @classmethod
    def board(cls, x: int, y: int) -> "SlotAddress":
        return cls(kind=SlotKind.BOARD, x=x, y=y)

    @classmethod
    def bench(cls, index: int) -> "SlotAddress":
        return cls(kind=SlotKind.BENCH, index=index)

    @property
    def is_board(self) -> bool:
        return self.kind == SlotKind.BOARD

    @property
    def is_bench(self) -> bool:
        return self.kind == SlotKind.BENCH

    def __str__(self) -> str:
        if self.is_board:
            return f"board({self.x},{self.y})"
        return f"bench[{self.index}]"
