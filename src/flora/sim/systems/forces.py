from __future__ import annotations

from typing import TYPE_CHECKING

from pygame.math import Vector2

from ..utils.math2d import clamp_value, safe_normalize, safe_normalize_xy

if TYPE_CHECKING:
    from ..core.context import WorldForces
    from ..core.entities import Attractor, Liquid, Repeller
    from ..core.mover import Mover


def apply_world_forces(mover: Mover, world: WorldForces) -> None:
    if mover.is_static:
        return
    gravity = world.gravity
    if gravity.x or gravity.y:
        mover.apply_force(gravity * mover.mass)
    wind = world.wind
    if wind.x or wind.y:
        mover.apply_force(wind)
    if mover.friction > 0.0:
        mover.apply_force(friction(mover, world.normal_force))


def friction(mover: Mover, normal_force: float = 1.0) -> Vector2:
    direction = safe_normalize(mover.velocity)
    return direction * (-mover.friction * normal_force)


def drag(mover: Mover, liquid: Liquid) -> Vector2:
    """Quadratic drag opposing `mover`'s velocity while it is inside `liquid`."""
    velocity = mover.velocity
    speed_sq = velocity.length_squared()
    if speed_sq < 1e-12:
        return Vector2()
    magnitude = liquid.drag_coefficient * speed_sq * mover.drag_area
    direction = safe_normalize_xy(-velocity.x, -velocity.y)
    return direction * magnitude


def attraction(mover: Mover, source: Attractor | Repeller) -> Vector2:
    """
    Inverse-square pull toward `source`. A negative `g` turns the pull into a push.

    The distance is clamped to [min_distance, max_distance] so bodies sitting on
    top of the source never see an unbounded force.
    """
    offset = source.location - mover.location
    distance = clamp_value(offset.length(), source.min_distance, source.max_distance)
    if distance <= 0.0:
        return Vector2()
    strength = (source.g * source.mass * mover.mass) / (distance * distance)
    return safe_normalize(offset) * strength
