from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml


@dataclass
class MoverConfig:
    location: tuple[float, float] = (0.0, 0.0)
    velocity: tuple[float, float] = (0.0, 0.0)
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
    color: tuple[int, int, int] = (197, 177, 115)


@dataclass
class SensorConfig:
    stimulus: str = "Heat"
    behavior: str = "Aggressive"
    sensitivity: float = 40.0
    offset_distance: float = 30.0
    offset_angle: float = 0.0


@dataclass
class AgentConfig:
    name: Optional[str] = None
    kind: str = "Agent"
    count: int = 1
    spread: float = 0.0
    initial_speed: float = 0.0
    mover: MoverConfig = field(default_factory=MoverConfig)
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
    seek_target: Optional[str] = None
    use_flow_field: bool = False
    sensors: List[SensorConfig] = field(default_factory=list)


@dataclass
class LiquidConfig:
    name: Optional[str] = None
    mover: MoverConfig = field(default_factory=lambda: MoverConfig(is_static=True, width=100.0, height=100.0))
    drag_coefficient: float = 1.0


@dataclass
class PointSourceConfig:
    name: Optional[str] = None
    mover: MoverConfig = field(default_factory=lambda: MoverConfig(is_static=True, mass=100.0, width=20.0, height=20.0))
    g: float = 10.0
    min_distance: float = 5.0
    max_distance: float = 25.0


@dataclass
class ThermalConfig:
    name: Optional[str] = None
    mover: MoverConfig = field(
        default_factory=lambda: MoverConfig(is_static=True, mass=50.0, width=20.0, height=20.0, opacity=0.5)
    )


@dataclass
class ParticleConfig:
    name: Optional[str] = None
    mover: MoverConfig = field(default_factory=MoverConfig)


@dataclass
class FlowFieldConfig:
    resolution: float = 20.0
    columns: int = 0
    rows: int = 0
    angle: float = 0.0
    angles: Optional[List[List[float]]] = None


@dataclass
class WorldConfig:
    width: float = 800.0
    height: float = 600.0
    gravity: tuple[float, float] = (0.0, 0.0)
    wind: tuple[float, float] = (0.0, 0.0)
    normal_force: float = 1.0
    edge_mode: str = "none"


@dataclass
class SimulationConfig:
    seed: int = 42
    config_version: str = "v1"
    world: WorldConfig = field(default_factory=WorldConfig)
    flow_field: Optional[FlowFieldConfig] = None
    particles: List[ParticleConfig] = field(default_factory=list)
    agents: List[AgentConfig] = field(default_factory=list)
    liquids: List[LiquidConfig] = field(default_factory=list)
    attractors: List[PointSourceConfig] = field(default_factory=list)
    repellers: List[PointSourceConfig] = field(default_factory=list)
    heat: List[ThermalConfig] = field(default_factory=list)
    cold: List[ThermalConfig] = field(default_factory=list)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2
    time_step: float = 1.0 / 60.0


_SCENE_KEYS = {"world", "flow_field", "particles", "agents", "liquids", "attractors", "repellers", "heat", "cold"}


def _pair(value: tuple[float, float] | list[float] | None, default: tuple[float, float]) -> tuple[float, float]:
    if value is None:
        return default
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return (float(value[0]), float(value[1]))
    raise ValueError(f"Expected an [x, y] pair, got {value!r}")


def _mover(raw: dict | None, default: MoverConfig) -> MoverConfig:
    raw = dict(raw or {})
    if "location" in raw:
        raw["location"] = _pair(raw["location"], default.location)
    if "velocity" in raw:
        raw["velocity"] = _pair(raw["velocity"], default.velocity)
    if "color" in raw:
        raw["color"] = tuple(int(c) for c in raw["color"])
    base = {name: getattr(default, name) for name in MoverConfig.__dataclass_fields__}
    base.update(raw)
    return MoverConfig(**base)


def _entity(raw: dict, cls: type, default_mover: MoverConfig):
    values = {k: v for k, v in raw.items() if k != "mover"}
    return cls(mover=_mover(raw.get("mover"), default_mover), **values)


def _agent(raw: dict) -> AgentConfig:
    values = {k: v for k, v in raw.items() if k not in {"mover", "sensors"}}
    sensors = [SensorConfig(**sensor) for sensor in raw.get("sensors", [])]
    return AgentConfig(mover=_mover(raw.get("mover"), MoverConfig()), sensors=sensors, **values)


def load_config(raw: dict) -> SimulationConfig:
    world_raw = dict(raw.get("world", {}))
    default_world = WorldConfig()
    world_raw["gravity"] = _pair(world_raw.get("gravity"), default_world.gravity)
    world_raw["wind"] = _pair(world_raw.get("wind"), default_world.wind)
    world = WorldConfig(**world_raw)

    flow_raw = raw.get("flow_field")
    flow_field = FlowFieldConfig(**flow_raw) if flow_raw else None

    liquid_default = LiquidConfig().mover
    source_default = PointSourceConfig().mover
    thermal_default = ThermalConfig().mover
    sim_values = {k: v for k, v in raw.items() if k not in _SCENE_KEYS}
    return SimulationConfig(
        world=world,
        flow_field=flow_field,
        particles=[_entity(item, ParticleConfig, MoverConfig()) for item in raw.get("particles", [])],
        agents=[_agent(item) for item in raw.get("agents", [])],
        liquids=[_entity(item, LiquidConfig, liquid_default) for item in raw.get("liquids", [])],
        attractors=[_entity(item, PointSourceConfig, source_default) for item in raw.get("attractors", [])],
        repellers=[_entity(item, PointSourceConfig, source_default) for item in raw.get("repellers", [])],
        heat=[_entity(item, ThermalConfig, thermal_default) for item in raw.get("heat", [])],
        cold=[_entity(item, ThermalConfig, thermal_default) for item in raw.get("cold", [])],
        **sim_values,
    )


def default_scene() -> SimulationConfig:
    """A flock crossing a pool of liquid between an attractor and a repeller."""
    return SimulationConfig(
        world=WorldConfig(edge_mode="wrap"),
        agents=[
            AgentConfig(
                name="flock",
                count=40,
                spread=120.0,
                initial_speed=3.0,
                mover=MoverConfig(location=(400.0, 300.0), max_speed=4.0, mass=10.0),
                flocking=True,
                max_steering_force=0.5,
                separate_strength=1.5,
                align_strength=1.0,
                cohesion_strength=1.0,
                cohesion_radius=50.0,
            )
        ],
        liquids=[
            LiquidConfig(
                mover=MoverConfig(location=(400.0, 450.0), is_static=True, width=300.0, height=120.0, opacity=0.4),
                drag_coefficient=0.05,
            )
        ],
        attractors=[PointSourceConfig(mover=MoverConfig(location=(150.0, 150.0), is_static=True, mass=100.0))],
        repellers=[PointSourceConfig(mover=MoverConfig(location=(650.0, 150.0), is_static=True, mass=100.0))],
    )
