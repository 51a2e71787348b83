from __future__ import annotations

import math

from pygame.math import Vector2


def safe_normalize(vector: Vector2) -> Vector2:
    return safe_normalize_xy(vector.x, vector.y)


def safe_normalize_xy(x: float, y: float) -> Vector2:
    magnitude_sq = x * x + y * y
    if magnitude_sq < 1e-10:
        return Vector2()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector2(x * inv, y * inv)


def clamp_length(vector: Vector2, max_length: float) -> Vector2:
    """Return a copy of `vector` limited to `max_length`."""
    if max_length <= 0:
        return Vector2()
    magnitude_sq = vector.length_squared()
    if magnitude_sq <= max_length * max_length:
        return Vector2(vector)
    inv = max_length / math.sqrt(magnitude_sq)
    return Vector2(vector.x * inv, vector.y * inv)


def heading_degrees(vector: Vector2, fallback: float = 0.0) -> float:
    if vector.length_squared() < 1e-12:
        return fallback
    return math.degrees(math.atan2(vector.y, vector.x))


def direction_from_degrees(angle: float) -> Vector2:
    theta = math.radians(angle)
    return Vector2(math.cos(theta), math.sin(theta))



def clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))
