from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    agents: int
    added: int
    removed: int
    sensors_fired: int
    average_speed: float
    max_speed: float
    average_acceleration: float
    tick_duration_ms: float = 0.0
