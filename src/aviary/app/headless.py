from __future__ import annotations

import argparse
import csv
import dataclasses
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..config import SimulationConfig
from ..rng import DeterministicRng
from ..sim.core.world import World
from ..sim.systems.formation import sphere_targets
from ..sim.types.bounds import Bounds
from ..sim.types.metrics import TickMetrics
from ..sim.types.tick_input import TickInput

logger = logging.getLogger(__name__)

_BASIC_HEADER = [
    "tick",
    "population",
    "mode",
    "attraction",
    "neighbor_checks",
    "breedings",
    "reached_targets",
    "evading",
    "batch_index",
    "avg_speed",
    "tick_ms",
]

_DETAILED_HEADER = _BASIC_HEADER + [
    "neighbor_checks_per_agent",
    "tick_ms_per_agent",
    "avg_max_speed",
    "avg_max_force",
    "avg_perception_radius",
    "avg_fitness",
    "occupied_cells",
    "avg_agents_per_cell",
    "max_cell_occupancy",
]

_FORMATION_SEED_SALT = 0xF0E3A710


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.mode,
        int(metrics.attraction_mode),
        metrics.neighbor_checks,
        metrics.breedings,
        metrics.reached_targets,
        metrics.evading,
        metrics.batch_index,
        f"{metrics.average_speed:.4f}",
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(world: World, metrics: TickMetrics, tick_ms: float) -> list[object]:
    population = metrics.population
    if population <= 0:
        neighbor_checks_per_agent = 0.0
        tick_ms_per_agent = 0.0
        avg_max_speed = 0.0
        avg_max_force = 0.0
        avg_perception = 0.0
        avg_fitness = 0.0
        occupied_cells = 0
        avg_agents_per_cell = 0.0
        max_cell_occupancy = 0
    else:
        neighbor_checks_per_agent = metrics.neighbor_checks / population
        tick_ms_per_agent = tick_ms / population
        speed_sum = 0.0
        force_sum = 0.0
        perception_sum = 0.0
        fitness_sum = 0.0
        for agent in world.agents:
            genetics = agent.genetics
            speed_sum += genetics.max_speed
            force_sum += genetics.max_force
            perception_sum += genetics.perception_radius
            fitness_sum += genetics.fitness()
        avg_max_speed = speed_sum / population
        avg_max_force = force_sum / population
        avg_perception = perception_sum / population
        avg_fitness = fitness_sum / population

        cell_counts = world.grid.occupancy()
        occupied_cells = len(cell_counts)
        if occupied_cells > 0:
            avg_agents_per_cell = population / occupied_cells
            max_cell_occupancy = max(cell_counts.values())
        else:
            avg_agents_per_cell = 0.0
            max_cell_occupancy = 0

    return _format_basic_row(metrics, tick_ms) + [
        f"{neighbor_checks_per_agent:.4f}",
        f"{tick_ms_per_agent:.4f}",
        f"{avg_max_speed:.4f}",
        f"{avg_max_force:.4f}",
        f"{avg_perception:.4f}",
        f"{avg_fitness:.4f}",
        occupied_cells,
        f"{avg_agents_per_cell:.4f}",
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


def build_world(config: SimulationConfig, formation: Optional[str] = None) -> World:
    if formation is None or formation == "none":
        return World(config)
    if formation != "sphere":
        raise ValueError(f"Unknown formation: {formation}")
    rng = DeterministicRng(config.seed ^ _FORMATION_SEED_SALT)
    half = config.boundary.half_extent
    spawns = sphere_targets(config.initial_population, half * 0.6, rng, Bounds.cube(half * 0.5))
    return World(config, spawns=spawns)


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 500,
    config: Optional[SimulationConfig] = None,
    formation: Optional[str] = None,
    seek_from: Optional[int] = None,
) -> World:
    config = SimulationConfig() if config is None else config
    if seed is not None:
        config = dataclasses.replace(config, seed=seed)

    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    world = build_world(config, formation)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    neighbor_series: list[float] = []
    speed_series: list[float] = []
    attraction_ticks = 0
    breedings = 0

    try:
        for tick in range(steps):
            seeking = seek_from is not None and tick >= seek_from
            metrics = world.step(tick, TickInput(seeking=seeking))
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            tick_ms_series.append(tick_ms)
            neighbor_series.append(float(metrics.neighbor_checks))
            speed_series.append(metrics.average_speed)
            attraction_ticks += int(metrics.attraction_mode)
            breedings += metrics.breedings
            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    logger.info("ran %d ticks, %d agents, %d breedings", steps, len(world.agents), breedings)

    if summary_path:
        window = max(1, int(summary_window))
        tail = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "population": len(world.agents),
            "attraction_ticks": attraction_ticks,
            "breedings": breedings,
            "tick_ms": _summary_stats(tick_ms_series),
            "neighbor_checks": _summary_stats(neighbor_series),
            "average_speed": _summary_stats(speed_series),
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail]),
                "neighbor_checks": _summary_stats(neighbor_series[tail]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless flocking simulation")
    parser.add_argument("--steps", type=int, default=1000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML file overriding the default config")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON file with run summary stats.")
    parser.add_argument("--summary-window", type=int, default=500, help="Tail window size (ticks) for summary stats.")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--formation", choices=["none", "sphere"], default="none")
    parser.add_argument(
        "--seek-from",
        type=int,
        default=None,
        help="Tick from which agents switch to batched seek mode towards their targets.",
    )
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(name)s %(levelname)s %(message)s")
    config = SimulationConfig.from_yaml(args.config) if args.config else None
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config=config,
        formation=args.formation,
        seek_from=args.seek_from,
    )


if __name__ == "__main__":
    main()
