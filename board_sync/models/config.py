"""Client synchronization configuration."""

from pydantic import BaseModel, Field, model_validator

from board_sync.models.slots import Ownership, SlotAddress


class BoardGeometry(BaseModel):
    """Dimensions of the local board and bench."""

    width: int = Field(gt=0, default=7)
    player_rows: int = Field(gt=0, default=4)   # Rows the local player may place into
    total_rows: int = Field(gt=0, default=8)    # Player rows + mirrored opponent rows
    bench_size: int = Field(gt=0, default=7)

    @model_validator(mode="after")
    def _check_rows(self) -> "BoardGeometry":
        if self.player_rows > self.total_rows:
            raise ValueError("player_rows cannot exceed total_rows")
        return self

    def contains(self, slot: SlotAddress) -> bool:
        """Whether the slot exists at all (either side of the board, or the bench)."""
        if slot.is_bench:
            return slot.index < self.bench_size
        return slot.x < self.width and slot.y < self.total_rows

    def ownership(self, slot: SlotAddress) -> Ownership:
        if slot.is_bench or slot.y < self.player_rows:
            return Ownership.LOCAL
        return Ownership.OPPONENT

    def is_placeable(self, slot: SlotAddress) -> bool:
        """Whether the local player may drop a unit into this slot."""
        return self.contains(slot) and self.ownership(slot) == Ownership.LOCAL

    def board_slots(self, rows: int = 0):
        """Board slots in row-major order (y, then x). Defaults to the player rows."""
        for y in range(rows or self.player_rows):
            for x in range(self.width):
                yield SlotAddress.board(x, y)

    def bench_slots(self):
        for i in range(self.bench_size):
            yield SlotAddress.bench(i)


class SyncConfig(BaseModel):
    """Configuration for the board synchronization client."""

    geometry: BoardGeometry = BoardGeometry()
    drag_threshold_px: float = Field(gt=0, default=10.0)
    snap_radius_px: float = Field(ge=0, default=40.0)
    max_star_level: int = Field(ge=1, default=3)
    revert_flash_ticks: int = Field(ge=0, default=30)
