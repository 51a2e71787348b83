from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from pygame.math import Vector2

from ..systems import forces
from .mover import Mover
from .registry import Category

if TYPE_CHECKING:
    from .context import ForceContext


class Body:
    """Delegating accessors for entities that compose a `Mover`."""

    __slots__ = ()

    category: ClassVar[Category]
    mover: Mover

    @property
    def id(self) -> int:
        return self.mover.id

    @property
    def location(self) -> Vector2:
        return self.mover.location

    @property
    def velocity(self) -> Vector2:
        return self.mover.velocity

    @property
    def acceleration(self) -> Vector2:
        return self.mover.acceleration

    @property
    def angle(self) -> float:
        return self.mover.angle

    @property
    def mass(self) -> float:
        return self.mover.mass

    @property
    def width(self) -> float:
        return self.mover.width

    @property
    def height(self) -> float:
        return self.mover.height

    def apply_force(self, force: Vector2) -> Vector2:
        return self.mover.apply_force(force)

    def compute_forces(self, context: ForceContext) -> Vector2:
        forces.apply_world_forces(self.mover, context.world)
        return self.mover.acceleration

    def integrate(self) -> None:
        self.mover.integrate()


@dataclass(slots=True)
class Particle(Body):
    """A plain mover: only world-level forces act on it."""

    category: ClassVar[Category] = Category.MOVER
    mover: Mover


@dataclass(slots=True)
class Liquid(Body):
    category: ClassVar[Category] = Category.LIQUID
    mover: Mover
    drag_coefficient: float = 1.0


@dataclass(slots=True)
class Attractor(Body):
    category: ClassVar[Category] = Category.ATTRACTOR
    mover: Mover
    g: float = 10.0
    min_distance: float = 5.0
    max_distance: float = 25.0


@dataclass(slots=True)
class Repeller(Body):
    category: ClassVar[Category] = Category.REPELLER
    mover: Mover
    g: float = -10.0
    min_distance: float = 5.0
    max_distance: float = 25.0


@dataclass(slots=True)
class Heat(Body):
    category: ClassVar[Category] = Category.HEAT
    mover: Mover


@dataclass(slots=True)
class Cold(Body):
    category: ClassVar[Category] = Category.COLD
    mover: Mover
