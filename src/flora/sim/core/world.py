from __future__ import annotations

import logging
import math
from time import perf_counter
from typing import Any, Dict, List, Optional

from pygame.math import Vector2

from ..systems import metrics as metrics_system
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld
from ..utils.math2d import direction_from_degrees
from .agent import Agent, AgentSettings
from .config import AgentConfig, FlowFieldConfig, MoverConfig, SimulationConfig
from .context import ForceContext, PointerState, WorldForces
from .entities import Attractor, Cold, Heat, Liquid, Particle, Repeller
from .flow_field import FlowField
from .mover import Mover
from .registry import Category, EntityRegistry
from .rng import DeterministicRng
from .sensor import Sensor

logger = logging.getLogger(__name__)

EDGE_MODES = ("none", "wrap", "bounce")


def _reflect(value: float, size: float) -> tuple[float, bool]:
    """Fold `value` back into [0, size]; the flag is set when an odd number of walls was hit."""
    if 0.0 <= value <= size:
        return value, False
    overshoot = value - size if value > size else -value
    crossings = math.ceil(overshoot / size)
    folded = value % (2.0 * size)
    if folded > size:
        folded = 2.0 * size - folded
    return folded, crossings % 2 == 1


class World:
    """
    Owns the entity registry and drives the two-phase frame.

    Phase 1 asks every entity for its forces while all peers still hold last
    frame's state; phase 2 integrates every entity. Spawns and removals queued
    with `spawn`/`despawn` land at the start of the next `step`.
    """

    def __init__(self, config: SimulationConfig):
        if config.world.edge_mode not in EDGE_MODES:
            raise ValueError(f"Unknown edge mode {config.world.edge_mode!r} (expected one of: {', '.join(EDGE_MODES)})")
        if config.world.edge_mode != "none" and (config.world.width <= 0 or config.world.height <= 0):
            raise ValueError("Edge handling needs a positive world width and height")
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._registry = EntityRegistry()
        self._context = ForceContext(
            registry=self._registry,
            pointer=PointerState(location=Vector2(config.world.width * 0.5, config.world.height * 0.5)),
            world=WorldForces(
                gravity=Vector2(config.world.gravity),
                wind=Vector2(config.world.wind),
                normal_force=config.world.normal_force,
            ),
        )
        self._named: Dict[str, Any] = {}
        self._next_id = 0
        self._metrics: TickMetrics | None = None
        self._flow_field = self._build_flow_field(config.flow_field)
        self._build_scene()

    @property
    def registry(self) -> EntityRegistry:
        return self._registry

    @property
    def context(self) -> ForceContext:
        return self._context

    @property
    def agents(self) -> List[Agent]:
        return self._registry.list_by_category(Category.AGENT)

    @property
    def flow_field(self) -> Optional[FlowField]:
        return self._flow_field

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def entity(self, name: str) -> Any:
        try:
            return self._named[name]
        except KeyError:
            raise KeyError(f"No entity named {name!r}") from None

    def next_id(self) -> int:
        entity_id = self._next_id
        self._next_id += 1
        return entity_id

    def reset(self) -> None:
        self._registry.clear()
        self._named.clear()
        self._rng.reset()
        self._next_id = 0
        self._metrics = None
        self._build_scene()

    def set_pointer(self, x: float, y: float, touch_only: bool = False) -> None:
        self._context.pointer.location.update(x, y)
        self._context.pointer.touch_only = touch_only

    def set_gravity(self, x: float, y: float) -> None:
        self._context.world.gravity.update(x, y)

    def spawn(self, entity: Any) -> None:
        self._registry.defer_add(entity, entity.category)

    def despawn(self, entity: Any) -> None:
        self._registry.defer_remove(entity)

    def step(self, tick: int) -> TickMetrics:
        start = perf_counter()
        added, removed = self._registry.flush()
        entities = list(self._registry.entities())
        context = self._context

        with self._registry.frozen():
            for entity in entities:
                entity.mover.reset_acceleration()
            for entity in entities:
                entity.compute_forces(context)

            accel_sum = 0.0
            sensors_fired = 0
            for entity in entities:
                accel_sum += entity.mover.acceleration.length()
                if getattr(entity, "sensor_fired", False):
                    sensors_fired += 1

            for entity in entities:
                entity.integrate()
                self._apply_edges(entity.mover)

        population = len(entities)
        speed_sum = 0.0
        max_speed = 0.0
        for entity in entities:
            speed = entity.mover.velocity.length()
            speed_sum += speed
            if speed > max_speed:
                max_speed = speed
        avg_speed = speed_sum / population if population else 0.0
        avg_accel = accel_sum / population if population else 0.0
        agent_count = len(self._registry.list_by_category(Category.AGENT))

        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            tick,
            added,
            removed,
            elapsed_ms,
            (population, agent_count, sensors_fired, avg_speed, max_speed, avg_accel),
        )
        self._metrics = metrics
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "tick=%d population=%d avg_speed=%.3f avg_accel=%.3f %.2fms",
                tick,
                population,
                avg_speed,
                avg_accel,
                elapsed_ms,
            )
        return metrics

    def snapshot(self, tick: int) -> Snapshot:
        metrics = self._metrics if self._metrics is not None else self._empty_metrics(tick)
        pointer = self._context.pointer.location
        return Snapshot(
            tick=tick,
            metrics=metrics,
            entities=[self._entity_snapshot(entity) for entity in self._registry.entities()],
            world=SnapshotWorld(
                width=self._config.world.width,
                height=self._config.world.height,
                pointer_x=pointer.x,
                pointer_y=pointer.y,
            ),
            metadata=SnapshotMetadata(
                seed=self._config.seed,
                config_version=self._config.config_version,
                edge_mode=self._config.world.edge_mode,
            ),
        )

    def _empty_metrics(self, tick: int) -> TickMetrics:
        population = len(self._registry)
        agents = len(self._registry.list_by_category(Category.AGENT))
        return metrics_system.create_metrics(tick, 0, 0, 0.0, (population, agents, 0, 0.0, 0.0, 0.0))

    def _entity_snapshot(self, entity: Any) -> Dict[str, Any]:
        mover = entity.mover
        payload: Dict[str, Any] = {
            "id": mover.id,
            "category": entity.category.value,
            "x": mover.location.x,
            "y": mover.location.y,
            "vx": mover.velocity.x,
            "vy": mover.velocity.y,
            "speed": mover.velocity.length(),
            "angle": mover.angle,
            "width": mover.width,
            "height": mover.height,
            "opacity": mover.opacity,
            "color": list(mover.color),
        }
        if isinstance(entity, Agent):
            payload["kind"] = entity.kind
            payload["sensors"] = [
                {"x": sensor.location.x, "y": sensor.location.y, "activated": sensor.activated}
                for sensor in entity.sensors
            ]
        return payload

    def _apply_edges(self, mover: Mover) -> None:
        mode = self._config.world.edge_mode
        if mode == "none" or mover.is_static:
            return
        width = self._config.world.width
        height = self._config.world.height
        if mode == "wrap":
            mover.location.update(mover.location.x % width, mover.location.y % height)
            return
        if not (math.isfinite(mover.location.x) and math.isfinite(mover.location.y)):
            raise ValueError(f"Mover {mover.id} has a non-finite location {tuple(mover.location)}")
        x, flip_x = _reflect(mover.location.x, width)
        y, flip_y = _reflect(mover.location.y, height)
        mover.location.update(x, y)
        if flip_x:
            mover.velocity.x = -mover.velocity.x
        if flip_y:
            mover.velocity.y = -mover.velocity.y

    @staticmethod
    def _build_flow_field(config: FlowFieldConfig | None) -> Optional[FlowField]:
        if config is None:
            return None
        if config.angles is not None:
            field = {
                (col, row): direction_from_degrees(angle)
                for row, values in enumerate(config.angles)
                for col, angle in enumerate(values)
            }
            return FlowField(config.resolution, field)
        return FlowField.uniform(config.columns, config.rows, config.resolution, config.angle)

    def _make_mover(self, config: MoverConfig, location: Vector2 | None = None) -> Mover:
        return Mover(
            id=self.next_id(),
            location=Vector2(config.location) if location is None else location,
            velocity=Vector2(config.velocity),
            mass=config.mass,
            max_speed=config.max_speed,
            angle=config.angle,
            is_static=config.is_static,
            point_to_direction=config.point_to_direction,
            width=config.width,
            height=config.height,
            drag_area=config.drag_area,
            friction=config.friction,
            opacity=config.opacity,
            color=tuple(config.color),
        )

    def _register(self, entity: Any, name: str | None) -> Any:
        self._registry.add(entity, entity.category)
        if name:
            if name in self._named:
                raise ValueError(f"Duplicate entity name {name!r}")
            self._named[name] = entity
        return entity

    def _build_scene(self) -> None:
        config = self._config
        for item in config.particles:
            self._register(Particle(mover=self._make_mover(item.mover)), item.name)
        for item in config.liquids:
            self._register(Liquid(mover=self._make_mover(item.mover), drag_coefficient=item.drag_coefficient), item.name)
        for item in config.attractors:
            attractor = Attractor(
                mover=self._make_mover(item.mover),
                g=abs(item.g),
                min_distance=item.min_distance,
                max_distance=item.max_distance,
            )
            self._register(attractor, item.name)
        for item in config.repellers:
            repeller = Repeller(
                mover=self._make_mover(item.mover),
                g=-abs(item.g),
                min_distance=item.min_distance,
                max_distance=item.max_distance,
            )
            self._register(repeller, item.name)
        for item in config.heat:
            self._register(Heat(mover=self._make_mover(item.mover)), item.name)
        for item in config.cold:
            self._register(Cold(mover=self._make_mover(item.mover)), item.name)

        pending_targets: List[tuple[Agent, str]] = []
        for item in config.agents:
            for index in range(max(0, item.count)):
                agent = self._make_agent(item)
                name = item.name if index == 0 else (f"{item.name}-{index}" if item.name else None)
                self._register(agent, name)
                if item.seek_target:
                    pending_targets.append((agent, item.seek_target))
        for agent, target_name in pending_targets:
            agent.seek_target = self.entity(target_name)

        logger.info(
            "Built scene: %d entities (%d agents), seed=%d",
            len(self._registry),
            len(self._registry.list_by_category(Category.AGENT)),
            config.seed,
        )

    def _make_agent(self, item: AgentConfig) -> Agent:
        location = Vector2(item.mover.location) + self._rng.next_in_disc(item.spread)
        mover = self._make_mover(item.mover, location=location)
        if item.initial_speed > 0.0:
            mover.velocity = self._rng.next_unit_circle() * item.initial_speed
        if item.use_flow_field and self._flow_field is None:
            raise ValueError("Agent config requests a flow field but the scene defines none")
        settings = AgentSettings(
            follow_mouse=item.follow_mouse,
            max_steering_force=item.max_steering_force,
            flocking=item.flocking,
            desired_separation=item.desired_separation,
            separate_strength=item.separate_strength,
            align_strength=item.align_strength,
            cohesion_strength=item.cohesion_strength,
            align_radius=item.align_radius,
            cohesion_radius=item.cohesion_radius,
            motor_speed=item.motor_speed,
        )
        sensors = [
            Sensor(
                stimulus=Category.parse(sensor.stimulus),
                behavior=sensor.behavior,
                sensitivity=sensor.sensitivity,
                offset_distance=sensor.offset_distance,
                offset_angle=sensor.offset_angle,
            )
            for sensor in item.sensors
        ]
        return Agent(
            mover=mover,
            kind=item.kind,
            settings=settings,
            flow_field=self._flow_field if item.use_flow_field else None,
            sensors=sensors,
        )
