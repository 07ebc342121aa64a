"""
Hit testing — rendering-owned geometry queries the drag controller resolves drops with.

GridHitTester lays the board out on a flat pixel grid: opponent rows on top,
player rows beneath them, the bench one row below the board and the sell
strip below the bench.
"""

import math
from typing import Optional, Protocol

from board_sync.models.config import BoardGeometry
from board_sync.models.gesture import Position
from board_sync.models.slots import EntityId, SlotAddress
from board_sync.registry.store import EntityRegistry


class HitTester(Protocol):
    """Protocol for pointer → slot/unit queries."""

    def tile_at(self, position: Position) -> Optional[SlotAddress]: ...

    def nearest_tile(self, position: Position, radius: float) -> Optional[SlotAddress]: ...

    def unit_at(
        self, position: Position, exclude: Optional[EntityId] = None
    ) -> Optional[EntityId]: ...

    def in_sell_zone(self, position: Position) -> bool: ...


def distance(a: Position, b: Position) -> float:
    """Euclidean distance between two pointer positions."""
    return math.hypot(b[0] - a[0], b[1] - a[1])


class GridHitTester:
    """Flat planar layout in pixels. Units are discs centred on their slot."""

    def __init__(
        self,
        geometry: BoardGeometry,
        registry: EntityRegistry,
        tile_size: float = 64.0,
        bench_gap: float = 32.0,
        sell_zone_height: float = 64.0,
        unit_radius: Optional[float] = None,
    ):
        self.geometry = geometry
        self.registry = registry
        self.tile_size = tile_size
        self.bench_gap = bench_gap
        self.sell_zone_height = sell_zone_height
        # Models stand taller than their tile, so the hit disc overhangs it.
        self.unit_radius = unit_radius if unit_radius is not None else tile_size * 0.75

    @property
    def _bench_top(self) -> float:
        return self.geometry.total_rows * self.tile_size + self.bench_gap

    @property
    def _sell_top(self) -> float:
        return self._bench_top + self.tile_size + self.bench_gap

    def slot_center(self, slot: SlotAddress) -> Position:
        """Pixel centre of a slot."""
        half = self.tile_size / 2
        if slot.is_bench:
            return (slot.index * self.tile_size + half, self._bench_top + half)
        row_from_top = self.geometry.total_rows - 1 - slot.y
        return (slot.x * self.tile_size + half, row_from_top * self.tile_size + half)

    def tile_at(self, position: Position) -> Optional[SlotAddress]:
        px, py = position
        if px < 0 or py < 0:
            return None
        col = int(px // self.tile_size)
        board_height = self.geometry.total_rows * self.tile_size
        if py < board_height:
            if col >= self.geometry.width:
                return None
            y = self.geometry.total_rows - 1 - int(py // self.tile_size)
            return SlotAddress.board(col, y)
        if self._bench_top <= py < self._bench_top + self.tile_size:
            if col >= self.geometry.bench_size:
                return None
            return SlotAddress.bench(col)
        return None

    def nearest_tile(self, position: Position, radius: float) -> Optional[SlotAddress]:
        best: Optional[SlotAddress] = None
        best_dist = radius
        for slot in self._all_slots():
            d = distance(position, self.slot_center(slot))
            if d <= best_dist:
                best, best_dist = slot, d
        return best

    def unit_at(
        self, position: Position, exclude: Optional[EntityId] = None
    ) -> Optional[EntityId]:
        best: Optional[EntityId] = None
        best_dist = self.unit_radius
        for entry in self.registry:
            if entry.entity_id == exclude:
                continue
            d = distance(position, self.slot_center(entry.slot))
            if d <= best_dist:
                best, best_dist = entry.entity_id, d
        return best

    def in_sell_zone(self, position: Position) -> bool:
        px, py = position
        width = max(self.geometry.width, self.geometry.bench_size) * self.tile_size
        return 0 <= px < width and self._sell_top <= py < self._sell_top + self.sell_zone_height

    def _all_slots(self):
        yield from self.geometry.board_slots(rows=self.geometry.total_rows)
        yield from self.geometry.bench_slots()
