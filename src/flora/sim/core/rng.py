from __future__ import annotations

import math
import random

from pygame.math import Vector2


class DeterministicRng:
    """Seeded source for scene placement; `reset` replays the same sequence."""

    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_unit_circle(self) -> Vector2:
        vector = Vector2()
        vector.from_polar((1, self._random.uniform(0.0, 360.0)))
        return vector

    def next_in_disc(self, radius: float) -> Vector2:
        if radius <= 0.0:
            return Vector2()
        # sqrt keeps samples uniform over the disc area
        distance = radius * math.sqrt(self._random.random())
        return self.next_unit_circle() * distance
