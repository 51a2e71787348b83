from __future__ import annotations

from typing import Tuple

from ..types.metrics import TickMetrics


def create_metrics(
    tick: int,
    added: int,
    removed: int,
    duration_ms: float,
    stats: Tuple[int, int, int, float, float, float],
) -> TickMetrics:
    population, agents, sensors_fired, avg_speed, max_speed, avg_accel = stats
    return TickMetrics(
        tick=tick,
        population=population,
        agents=agents,
        added=added,
        removed=removed,
        sensors_fired=sensors_fired,
        average_speed=avg_speed,
        max_speed=max_speed,
        average_acceleration=avg_accel,
        tick_duration_ms=duration_ms,
    )
