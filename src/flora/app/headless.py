from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..sim.core.config import SimulationConfig, default_scene
from ..sim.core.world import World

logger = logging.getLogger(__name__)

_OCCUPANCY_CELL_SIZE = 50.0

_BASIC_HEADER = [
    "tick",
    "population",
    "agents",
    "added",
    "removed",
    "avg_speed",
    "max_speed",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "population",
    "agents",
    "added",
    "removed",
    "avg_speed",
    "max_speed",
    "avg_accel",
    "sensors_fired",
    "tick_ms",
    "tick_ms_per_entity",
    "agent_centroid_x",
    "agent_centroid_y",
    "agent_dispersion",
    "polarization",
    "occupied_cells",
    "max_cell_occupancy",
]


def _format_basic_row(metrics: object, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.agents,
        metrics.added,
        metrics.removed,
        f"{metrics.average_speed:.4f}",
        f"{metrics.max_speed:.4f}",
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(world: World, metrics: object, tick_ms: float) -> list[object]:
    population = metrics.population
    tick_ms_per_entity = tick_ms / population if population > 0 else 0.0

    agents = world.agents
    count = len(agents)
    centroid_x = 0.0
    centroid_y = 0.0
    dispersion = 0.0
    polarization = 0.0
    cell_counts: dict[tuple[int, int], int] = {}
    if count:
        heading_x = 0.0
        heading_y = 0.0
        for agent in agents:
            location = agent.location
            centroid_x += location.x
            centroid_y += location.y
            velocity = agent.velocity
            speed = math.hypot(velocity.x, velocity.y)
            if speed > 1e-12:
                heading_x += velocity.x / speed
                heading_y += velocity.y / speed
            cell_key = (int(location.x // _OCCUPANCY_CELL_SIZE), int(location.y // _OCCUPANCY_CELL_SIZE))
            cell_counts[cell_key] = cell_counts.get(cell_key, 0) + 1
        centroid_x /= count
        centroid_y /= count
        dispersion = sum(math.hypot(a.location.x - centroid_x, a.location.y - centroid_y) for a in agents) / count
        polarization = math.hypot(heading_x, heading_y) / count

    occupied_cells = len(cell_counts)
    max_cell_occupancy = max(cell_counts.values()) if cell_counts else 0

    return [
        metrics.tick,
        population,
        metrics.agents,
        metrics.added,
        metrics.removed,
        f"{metrics.average_speed:.4f}",
        f"{metrics.max_speed:.4f}",
        f"{metrics.average_acceleration:.4f}",
        metrics.sensors_fired,
        f"{tick_ms:.3f}",
        f"{tick_ms_per_entity:.4f}",
        f"{centroid_x:.4f}",
        f"{centroid_y:.4f}",
        f"{dispersion:.4f}",
        f"{polarization:.4f}",
        occupied_cells,
        max_cell_occupancy,
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 500,
    config_path: Optional[Path] = None,
) -> World:
    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    config = SimulationConfig.from_yaml(config_path) if config_path else default_scene()
    if seed is not None:
        config.seed = seed
    world = World(config)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    speed_series: list[float] = []
    accel_series: list[float] = []

    try:
        for tick in range(steps):
            metrics = world.step(tick)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms

            if summary_path:
                tick_ms_series.append(tick_ms)
                speed_series.append(metrics.average_speed)
                accel_series.append(metrics.average_acceleration)

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "population": len(world.registry),
            "agents": len(world.agents),
            "tick_ms": _summary_stats(tick_ms_series),
            "average_speed": _summary_stats(speed_series),
            "average_acceleration": _summary_stats(accel_series),
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "average_speed": _summary_stats(speed_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))

    logger.info("Headless run finished: %d steps, %d entities", steps, len(world.registry))
    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless flora steering simulation")
    parser.add_argument("--steps", type=int, default=600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML scene file")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=500,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level, format="[%(levelname)s] %(name)s: %(message)s")
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config_path=args.config,
    )


if __name__ == "__main__":
    main()
