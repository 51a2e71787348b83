from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, List, Optional

from pygame.math import Vector2

from ..systems import forces, steering
from ..utils.math2d import direction_from_degrees, safe_normalize
from .context import ForceContext
from .entities import Body
from .flow_field import FlowField
from .mover import Mover
from .registry import Category
from .sensor import SensorLike


@dataclass(slots=True)
class AgentSettings:
    follow_mouse: bool = False
    max_steering_force: float = 10.0
    flocking: bool = False
    desired_separation: Optional[float] = None
    separate_strength: float = 0.3
    align_strength: float = 0.2
    cohesion_strength: float = 0.1
    align_radius: Optional[float] = None
    cohesion_radius: float = 10.0
    motor_speed: float = 0.0


@dataclass(slots=True)
class Agent(Body):
    """
    A mover that steers.

    `compute_forces` accumulates, in order: liquid drag, attractor/repeller
    pulls, sensor forces, motor maintenance, pointer seeking, target seeking,
    flow-field following and flocking. Each contribution is applied on its own
    and none overrides another.
    """

    category: ClassVar[Category] = Category.AGENT
    mover: Mover
    kind: str = "Agent"
    settings: AgentSettings = field(default_factory=AgentSettings)
    seek_target: Optional[Any] = None
    flow_field: Optional[FlowField] = None
    sensors: List[SensorLike] = field(default_factory=list)
    sensor_fired: bool = field(default=False, init=False, compare=False)
    _separate_sum: Vector2 = field(default_factory=Vector2, init=False, repr=False, compare=False)
    _align_sum: Vector2 = field(default_factory=Vector2, init=False, repr=False, compare=False)
    _cohesion_sum: Vector2 = field(default_factory=Vector2, init=False, repr=False, compare=False)

    @property
    def max_speed(self) -> float:
        return self.mover.max_speed

    @property
    def desired_separation(self) -> float:
        value = self.settings.desired_separation
        return self.mover.width * 2.0 if value is None else value

    @property
    def align_radius(self) -> float:
        value = self.settings.align_radius
        return self.mover.width * 2.0 if value is None else value

    def compute_forces(self, context: ForceContext) -> Vector2:
        mover = self.mover
        registry = context.registry
        forces.apply_world_forces(mover, context.world)

        for liquid in registry.list_by_category(Category.LIQUID):
            if liquid is not self and liquid.mover.contains(mover.location):
                mover.apply_force(forces.drag(mover, liquid))

        for source in registry.list_by_category(Category.ATTRACTOR):
            if source is not self:
                mover.apply_force(forces.attraction(mover, source))
        for source in registry.list_by_category(Category.REPELLER):
            if source is not self:
                mover.apply_force(forces.attraction(mover, source))

        self.sensor_fired = self._apply_sensors(context)

        motor_speed = self.settings.motor_speed
        if not self.sensor_fired and motor_speed:
            mover.apply_force(self.motor_force())

        if self.settings.follow_mouse and not context.pointer.touch_only:
            mover.apply_force(self.seek(context.pointer.location))

        if self.seek_target is not None:
            mover.apply_force(self.seek(self.seek_target.location))

        if self.flow_field is not None:
            direction = self.flow_field.lookup(mover.location)
            if direction is not None:
                mover.apply_force(self.follow(direction))

        if self.settings.flocking:
            self.flock(registry.list_by_category(Category.AGENT))

        return mover.acceleration

    def _apply_sensors(self, context: ForceContext) -> bool:
        fired = False
        location = self.mover.location
        angle = self.mover.angle
        for sensor in self.sensors:
            offset = direction_from_degrees(angle + sensor.offset_angle) * sensor.offset_distance
            sensor.location.update(location.x + offset.x, location.y + offset.y)
            sensor.sense(context.registry)
            if sensor.activated:
                self.mover.apply_force(sensor.get_activation_force(self))
                fired = True
        return fired

    def motor_force(self) -> Vector2:
        """
        Force that holds speed near `motor_speed` along the current heading.

        A still agent has no velocity direction; it is pushed along its
        `angle` instead (angle 0 points along +x).
        """
        motor_speed = self.settings.motor_speed
        velocity = self.mover.velocity
        if velocity.length_squared() < 1e-10:
            direction = direction_from_degrees(self.mover.angle)
        else:
            direction = safe_normalize(velocity)
        if velocity.length() > motor_speed:
            return direction * -motor_speed
        return direction * motor_speed

    def seek(self, target_location: Vector2) -> Vector2:
        return steering.seek(self, target_location)

    def follow(self, direction: Vector2) -> Vector2:
        return steering.follow(self, direction)

    def separate(self, elements: List[Any]) -> Vector2:
        return steering.separate(self, elements)

    def align(self, elements: List[Any]) -> Vector2:
        return steering.align(self, elements)

    def cohesion(self, elements: List[Any]) -> Vector2:
        return steering.cohesion(self, elements)

    def flock(self, elements: List[Any]) -> Vector2:
        return steering.flock(self, elements)
