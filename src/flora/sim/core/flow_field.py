from __future__ import annotations

import math
from typing import Callable, Dict, Optional, Tuple

from pygame.math import Vector2

from ..utils.math2d import direction_from_degrees

CellKey = Tuple[int, int]


class FlowField:
    """Grid of direction vectors keyed by (col, row); cells are `resolution` wide."""

    def __init__(self, resolution: float, field: Dict[CellKey, Vector2] | None = None) -> None:
        if resolution <= 0:
            raise ValueError(f"Flow field resolution must be positive, got {resolution}")
        self._resolution = float(resolution)
        self._field: Dict[CellKey, Vector2] = {key: Vector2(vec) for key, vec in (field or {}).items()}

    @classmethod
    def from_function(
        cls,
        columns: int,
        rows: int,
        resolution: float,
        angle_fn: Callable[[int, int], float],
    ) -> "FlowField":
        field = {
            (col, row): direction_from_degrees(angle_fn(col, row))
            for col in range(columns)
            for row in range(rows)
        }
        return cls(resolution, field)

    @classmethod
    def uniform(cls, columns: int, rows: int, resolution: float, angle: float) -> "FlowField":
        return cls.from_function(columns, rows, resolution, lambda _col, _row: angle)

    @property
    def resolution(self) -> float:
        return self._resolution

    def __len__(self) -> int:
        return len(self._field)

    def cell_for(self, location: Vector2) -> CellKey:
        return (int(math.floor(location.x / self._resolution)), int(math.floor(location.y / self._resolution)))

    def sample(self, col: int, row: int) -> Optional[Vector2]:
        vector = self._field.get((col, row))
        return None if vector is None else Vector2(vector)

    def lookup(self, location: Vector2) -> Optional[Vector2]:
        return self.sample(*self.cell_for(location))
