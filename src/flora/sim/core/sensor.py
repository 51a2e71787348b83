from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Protocol

from pygame.math import Vector2

from ..systems.steering import steer_toward
from ..utils.math2d import clamp_length
from .registry import Category, EntityRegistry

if TYPE_CHECKING:
    from .agent import Agent


class SensorBehavior(str, Enum):
    AGGRESSIVE = "Aggressive"
    COWARD = "Coward"
    LIKES = "Likes"
    LOVES = "Loves"

    @classmethod
    def parse(cls, name: "SensorBehavior | str") -> "SensorBehavior":
        if isinstance(name, SensorBehavior):
            return name
        for member in cls:
            if member.value.lower() == str(name).lower():
                return member
        known = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown sensor behavior {name!r} (expected one of: {known})")


class SensorLike(Protocol):
    location: Vector2
    offset_distance: float
    offset_angle: float
    activated: bool

    def sense(self, registry: EntityRegistry) -> bool: ...

    def get_activation_force(self, owner: Agent) -> Vector2: ...


@dataclass(slots=True)
class Sensor:
    """
    A probe rigidly attached to an agent at a polar offset from its heading.

    The owning agent repositions the sensor every frame; `sense` then checks the
    registry for the closest entity of the `stimulus` category within
    `sensitivity` and remembers it as `target`.
    """

    stimulus: Category = Category.HEAT
    behavior: SensorBehavior = SensorBehavior.AGGRESSIVE
    sensitivity: float = 40.0
    offset_distance: float = 30.0
    offset_angle: float = 0.0
    location: Vector2 = field(default_factory=Vector2)
    activated: bool = False
    target: Optional[Any] = None

    def __post_init__(self) -> None:
        self.stimulus = Category.parse(self.stimulus)
        self.behavior = SensorBehavior.parse(self.behavior)

    def sense(self, registry: EntityRegistry) -> bool:
        closest = None
        closest_dist = self.sensitivity
        for candidate in registry.list_by_category(self.stimulus):
            distance = self.location.distance_to(candidate.location)
            if distance < closest_dist:
                closest = candidate
                closest_dist = distance
        self.target = closest
        self.activated = closest is not None
        return self.activated

    def get_activation_force(self, owner: Agent) -> Vector2:
        if not self.activated or self.target is None:
            return Vector2()
        max_force = owner.settings.max_steering_force
        to_target = self.target.location - owner.location
        if self.behavior is SensorBehavior.AGGRESSIVE:
            return steer_toward(to_target, owner.velocity, owner.max_speed, max_force)
        if self.behavior is SensorBehavior.COWARD:
            return steer_toward(-to_target, owner.velocity, owner.max_speed, max_force)
        if self.behavior is SensorBehavior.LIKES:
            scale = min(1.0, to_target.length() / self.sensitivity) if self.sensitivity > 0 else 0.0
            return steer_toward(to_target, owner.velocity, owner.max_speed * scale, max_force)
        # LOVES: come to rest next to the stimulus.
        return clamp_length(-owner.velocity, max_force)
