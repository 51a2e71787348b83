from __future__ import annotations

import math

import pytest
from pygame.math import Vector2
from pytest import approx

from flora.sim.core.config import (
    AgentConfig,
    FlowFieldConfig,
    MoverConfig,
    ParticleConfig,
    PointSourceConfig,
    SimulationConfig,
    WorldConfig,
    default_scene,
    load_config,
)
from flora.sim.core.entities import Particle
from flora.sim.core.mover import Mover
from flora.sim.core.registry import Category
from flora.sim.core.world import World


def run_steps(config: SimulationConfig, steps: int):
    world = World(config)
    for tick in range(steps):
        world.step(tick)
    return [(round(e["x"], 6), round(e["y"], 6), round(e["vx"], 6), round(e["vy"], 6)) for e in world.snapshot(steps).entities]


def _chase_config(reverse: bool = False) -> SimulationConfig:
    leader = AgentConfig(name="leader", mover=MoverConfig(location=(0.0, 0.0), mass=1.0, max_speed=5.0), seek_target="beacon")
    chaser = AgentConfig(name="chaser", mover=MoverConfig(location=(10.0, 0.0), mass=1.0, max_speed=5.0), seek_target="leader")
    return SimulationConfig(
        particles=[ParticleConfig(name="beacon", mover=MoverConfig(location=(0.0, 10.0), is_static=True))],
        agents=[chaser, leader] if reverse else [leader, chaser],
    )


def test_deterministic_steps():
    result_a = run_steps(default_scene(), 30)
    result_b = run_steps(default_scene(), 30)
    assert result_a == result_b


def test_different_seed_changes_layout():
    config = default_scene()
    config.seed = 99
    assert run_steps(config, 1) != run_steps(default_scene(), 1)


def test_forces_read_previous_frame_state():
    world = World(_chase_config())
    world.step(0)

    leader = world.entity("leader")
    chaser = world.entity("chaser")
    assert leader.location.y == approx(5.0)
    # The chaser steered at the leader's start position, not where it ended up.
    assert chaser.velocity.x == approx(-5.0)
    assert chaser.velocity.y == approx(0.0)


def test_results_do_not_depend_on_registration_order():
    forward = World(_chase_config())
    backward = World(_chase_config(reverse=True))
    for tick in range(5):
        forward.step(tick)
        backward.step(tick)

    for name in ("leader", "chaser"):
        a = forward.entity(name)
        b = backward.entity(name)
        assert a.location.x == approx(b.location.x)
        assert a.location.y == approx(b.location.y)
        assert a.velocity.x == approx(b.velocity.x)
        assert a.velocity.y == approx(b.velocity.y)


def test_spawn_and_despawn_land_on_next_tick():
    world = World(_chase_config())
    beacon = world.entity("beacon")
    extra = Particle(mover=Mover(id=world.next_id(), location=Vector2(50.0, 50.0)))

    world.spawn(extra)
    world.despawn(beacon)
    assert extra not in world.registry
    assert beacon in world.registry

    metrics = world.step(0)
    assert metrics.added == 1
    assert metrics.removed == 1
    assert extra in world.registry
    assert beacon not in world.registry
    assert metrics.population == 3


def test_despawn_cancels_pending_spawn():
    world = World(_chase_config())
    extra = Particle(mover=Mover(id=world.next_id(), location=Vector2(50.0, 50.0)))

    world.spawn(extra)
    world.despawn(extra)
    metrics = world.step(0)

    assert extra not in world.registry
    assert metrics.added == 0
    assert metrics.removed == 0
    assert metrics.population == 3

    world.spawn(extra)
    world.step(1)
    world.despawn(extra)
    world.spawn(extra)
    world.despawn(extra)
    metrics = world.step(2)
    assert extra not in world.registry
    assert metrics.removed == 1


class _Meddler(Particle):
    def compute_forces(self, context):
        context.registry.add(Particle(mover=Mover(id=999)), Category.MOVER)
        return self.mover.acceleration


def test_registry_is_frozen_during_step():
    world = World(SimulationConfig())
    world.spawn(_Meddler(mover=Mover(id=world.next_id())))

    with pytest.raises(RuntimeError):
        world.step(0)
    assert not world.registry.is_frozen


def test_snapshot_lists_entities_and_metadata():
    config = _chase_config()
    config.seed = 3
    world = World(config)
    world.set_pointer(12.0, 34.0)
    world.step(0)
    snapshot = world.snapshot(1)

    assert snapshot.metadata.seed == 3
    assert snapshot.metadata.edge_mode == "none"
    assert snapshot.world.pointer_x == approx(12.0)
    assert snapshot.world.pointer_y == approx(34.0)
    assert snapshot.metrics.population == 3
    assert snapshot.metrics.agents == 2

    categories = sorted(entity["category"] for entity in snapshot.entities)
    assert categories == ["Agent", "Agent", "Mover"]
    agent_payload = next(entity for entity in snapshot.entities if entity["category"] == "Agent")
    for key in ["id", "x", "y", "vx", "vy", "speed", "angle", "kind", "sensors"]:
        assert key in agent_payload


def test_metrics_report_speed_and_acceleration():
    world = World(_chase_config())
    metrics = world.step(0)
    assert metrics.tick == 0
    assert metrics.max_speed == approx(5.0)
    # Two agents at 5 and one static beacon.
    assert metrics.average_speed == approx(10.0 / 3.0)
    assert metrics.average_acceleration == approx(10.0 / 3.0)
    assert world.metrics is metrics


def test_wrap_edges():
    config = SimulationConfig(
        world=WorldConfig(width=100.0, height=100.0, edge_mode="wrap"),
        particles=[ParticleConfig(name="p", mover=MoverConfig(location=(99.0, 50.0), velocity=(3.0, 0.0)))],
    )
    world = World(config)
    world.step(0)
    particle = world.entity("p")
    assert particle.location.x == approx(2.0)
    assert particle.velocity.x == approx(3.0)


def test_bounce_edges():
    config = SimulationConfig(
        world=WorldConfig(width=100.0, height=100.0, edge_mode="bounce"),
        particles=[ParticleConfig(name="p", mover=MoverConfig(location=(50.0, 1.0), velocity=(0.0, -3.0)))],
    )
    world = World(config)
    world.step(0)
    particle = world.entity("p")
    assert particle.location.y == approx(2.0)
    assert particle.velocity.y == approx(3.0)


def test_bounce_folds_large_overshoot_in_one_pass():
    config = SimulationConfig(
        world=WorldConfig(width=100.0, height=100.0, edge_mode="bounce"),
        particles=[
            ParticleConfig(name="p", mover=MoverConfig(location=(50.0, 50.0), velocity=(230.0, 0.0), max_speed=1000.0))
        ],
    )
    world = World(config)
    world.step(0)
    particle = world.entity("p")
    # 280 hits the right wall, then the left one.
    assert particle.location.x == approx(80.0)
    assert particle.velocity.x == approx(230.0)


def test_bounce_rejects_non_finite_location():
    config = SimulationConfig(
        world=WorldConfig(width=100.0, height=100.0, edge_mode="bounce"),
        particles=[
            ParticleConfig(name="p", mover=MoverConfig(location=(50.0, 50.0), velocity=(math.inf, 0.0), max_speed=math.inf))
        ],
    )
    world = World(config)
    with pytest.raises(ValueError, match="non-finite"):
        world.step(0)
    assert not world.registry.is_frozen


def test_world_gravity_scales_with_mass():
    config = SimulationConfig(
        particles=[ParticleConfig(name="p", mover=MoverConfig(mass=4.0))],
    )
    world = World(config)
    world.set_gravity(0.0, 0.5)
    world.step(0)
    assert world.entity("p").velocity.y == approx(0.5)


def test_reset_rebuilds_scene():
    world = World(default_scene())
    before = run_steps(default_scene(), 0)
    for tick in range(10):
        world.step(tick)
    world.reset()
    assert world.metrics is None
    after = [(round(e["x"], 6), round(e["y"], 6), round(e["vx"], 6), round(e["vy"], 6)) for e in world.snapshot(0).entities]
    assert after == before


def test_repeller_sign_is_enforced():
    config = SimulationConfig(
        repellers=[PointSourceConfig(name="r", mover=MoverConfig(location=(10.0, 0.0), is_static=True, mass=100.0))],
        agents=[AgentConfig(name="a", mover=MoverConfig(mass=1.0, max_speed=50.0))],
    )
    world = World(config)
    assert world.entity("r").g < 0
    world.step(0)
    assert world.entity("a").velocity.x < 0.0


def test_agent_copies_get_suffixed_names():
    config = SimulationConfig(agents=[AgentConfig(name="boid", count=3, spread=5.0)])
    world = World(config)
    assert len(world.agents) == 3
    assert world.entity("boid-2") in world.agents
    with pytest.raises(KeyError):
        world.entity("boid-3")


def test_flow_field_agents_need_a_field():
    config = SimulationConfig(agents=[AgentConfig(use_flow_field=True)])
    with pytest.raises(ValueError, match="flow field"):
        World(config)

    config.flow_field = FlowFieldConfig(resolution=10.0, columns=2, rows=2, angle=90.0)
    world = World(config)
    assert world.flow_field is not None
    assert world.agents[0].flow_field is world.flow_field


def test_invalid_world_settings_fail_fast():
    with pytest.raises(ValueError, match="edge mode"):
        World(SimulationConfig(world=WorldConfig(edge_mode="teleport")))
    with pytest.raises(ValueError):
        World(SimulationConfig(world=WorldConfig(width=0.0, edge_mode="wrap")))
    with pytest.raises(KeyError):
        World(SimulationConfig(agents=[AgentConfig(seek_target="nowhere")]))


def test_yaml_scene_loads_nested_settings(tmp_path):
    path = tmp_path / "scene.yaml"
    path.write_text(
        "seed: 5\n"
        "world: {width: 300, height: 200, gravity: [0, 0.1], edge_mode: bounce}\n"
        "attractors:\n"
        "  - name: well\n"
        "    g: 4\n"
        "    mover: {location: [10, 20]}\n"
        "agents:\n"
        "  - kind: Moth\n"
        "    count: 2\n"
        "    flocking: true\n"
        "    sensors: [{stimulus: Cold, behavior: Coward}]\n"
    )
    config = SimulationConfig.from_yaml(path)
    assert config.seed == 5
    assert config.world.gravity == (0.0, 0.1)
    assert config.attractors[0].mover.is_static
    assert config.attractors[0].mover.location == (10.0, 20.0)
    assert config.agents[0].sensors[0].behavior == "Coward"

    world = World(config)
    assert world.entity("well").g == approx(4.0)
    assert [agent.kind for agent in world.agents] == ["Moth", "Moth"]
    assert world.agents[0].sensors[0].stimulus is Category.COLD


def test_unknown_config_keys_are_rejected():
    with pytest.raises(TypeError):
        load_config({"world": {"colour": "blue"}})
    with pytest.raises(ValueError):
        load_config({"world": {"gravity": [1, 2, 3]}})
