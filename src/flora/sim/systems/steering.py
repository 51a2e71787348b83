from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

from pygame.math import Vector2

from ..utils.math2d import clamp_length, safe_normalize

if TYPE_CHECKING:
    from ..core.agent import Agent


def steer_toward(direction: Vector2, velocity: Vector2, max_speed: float, max_force: float) -> Vector2:
    """Desired velocity along `direction` at `max_speed`, minus `velocity`, limited to `max_force`."""
    desired = safe_normalize(direction) * max_speed
    return clamp_length(desired - velocity, max_force)


def seek(agent: Agent, target_location: Vector2) -> Vector2:
    return steer_toward(
        target_location - agent.location,
        agent.velocity,
        agent.max_speed,
        agent.settings.max_steering_force,
    )


def follow(agent: Agent, direction: Vector2) -> Vector2:
    """Like `seek`, but `direction` is already a heading rather than a point to reach."""
    return steer_toward(direction, agent.velocity, agent.max_speed, agent.settings.max_steering_force)


def _is_peer(agent: Agent, other: Any) -> bool:
    return other is not agent and getattr(other, "kind", None) == agent.kind


def separate(agent: Agent, elements: Iterable[Any]) -> Vector2:
    desired_separation = agent.desired_separation
    total = agent._separate_sum
    total.update(0.0, 0.0)
    count = 0
    location = agent.location
    for other in elements:
        if not _is_peer(agent, other):
            continue
        distance = location.distance_to(other.location)
        if 0.0 < distance < desired_separation:
            away = safe_normalize(location - other.location)
            total.x += away.x / distance
            total.y += away.y / distance
            count += 1
    if count == 0:
        return Vector2()
    return steer_toward(total / count, agent.velocity, agent.max_speed, agent.settings.max_steering_force)


def align(agent: Agent, elements: Iterable[Any]) -> Vector2:
    radius = agent.align_radius
    total = agent._align_sum
    total.update(0.0, 0.0)
    count = 0
    location = agent.location
    for other in elements:
        if not _is_peer(agent, other):
            continue
        distance = location.distance_to(other.location)
        if 0.0 < distance < radius:
            total += other.velocity
            count += 1
    if count == 0:
        return Vector2()
    return steer_toward(total / count, agent.velocity, agent.max_speed, agent.settings.max_steering_force)


def cohesion(agent: Agent, elements: Iterable[Any]) -> Vector2:
    radius = agent.settings.cohesion_radius
    total = agent._cohesion_sum
    total.update(0.0, 0.0)
    count = 0
    location = agent.location
    for other in elements:
        if not _is_peer(agent, other):
            continue
        distance = location.distance_to(other.location)
        if 0.0 < distance < radius:
            total += other.location
            count += 1
    if count == 0:
        return Vector2()
    centroid = total / count
    return steer_toward(centroid - location, agent.velocity, agent.max_speed, agent.settings.max_steering_force)


def flock(agent: Agent, elements: Iterable[Any]) -> Vector2:
    peers = list(elements)
    settings = agent.settings
    agent.apply_force(separate(agent, peers) * settings.separate_strength)
    agent.apply_force(align(agent, peers) * settings.align_strength)
    agent.apply_force(cohesion(agent, peers) * settings.cohesion_strength)
    return agent.acceleration
