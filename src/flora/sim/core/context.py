from __future__ import annotations

from dataclasses import dataclass, field

from pygame.math import Vector2

from .registry import EntityRegistry


@dataclass(slots=True)
class PointerState:
    location: Vector2 = field(default_factory=Vector2)
    touch_only: bool = False


@dataclass(slots=True)
class WorldForces:
    gravity: Vector2 = field(default_factory=Vector2)
    wind: Vector2 = field(default_factory=Vector2)
    normal_force: float = 1.0


@dataclass(slots=True)
class ForceContext:
    """Read-only view handed to every entity during the force phase."""

    registry: EntityRegistry
    pointer: PointerState = field(default_factory=PointerState)
    world: WorldForces = field(default_factory=WorldForces)
