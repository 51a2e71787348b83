from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from pygame.math import Vector2

from ..utils.math2d import clamp_length, heading_degrees

MIN_MASS = 1e-6


@dataclass(slots=True)
class Mover:
    """Kinematic state shared by every simulated body."""

    id: int
    location: Vector2 = field(default_factory=Vector2)
    velocity: Vector2 = field(default_factory=Vector2)
    acceleration: Vector2 = field(default_factory=Vector2)
    mass: float = 10.0
    max_speed: float = 10.0
    angle: float = 0.0
    is_static: bool = False
    point_to_direction: bool = True
    width: float = 10.0
    height: float = 10.0
    drag_area: float = 1.0
    friction: float = 0.0
    opacity: float = 1.0
    color: Tuple[int, int, int] = (197, 177, 115)

    def apply_force(self, force: Vector2) -> Vector2:
        inv_mass = 1.0 / max(self.mass, MIN_MASS)
        self.acceleration.x += force.x * inv_mass
        self.acceleration.y += force.y * inv_mass
        return self.acceleration

    def reset_acceleration(self) -> None:
        self.acceleration.update(0.0, 0.0)

    def integrate(self) -> None:
        if not self.is_static:
            self.velocity += self.acceleration
            self.velocity = clamp_length(self.velocity, self.max_speed)
            self.location += self.velocity
            if self.point_to_direction:
                self.angle = heading_degrees(self.velocity, fallback=self.angle)
        self.reset_acceleration()

    def contains(self, point: Vector2) -> bool:
        """True when `point` lies inside this body's axis-aligned bounds (centered on location)."""
        half_w = self.width * 0.5
        half_h = self.height * 0.5
        return (
            self.location.x - half_w <= point.x <= self.location.x + half_w
            and self.location.y - half_h <= point.y <= self.location.y + half_h
        )
