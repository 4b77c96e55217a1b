from __future__ import annotations

from ..types.metrics import TickMetrics


def create_metrics(
    tick: int,
    mode: str,
    attraction_mode: bool,
    neighbor_checks: int,
    breedings: int,
    duration_ms: float,
    stats: tuple[int, float, int, int],
    batch_index: int,
) -> TickMetrics:
    population, average_speed, reached_targets, evading = stats
    return TickMetrics(
        tick=tick,
        population=population,
        mode=mode,
        attraction_mode=attraction_mode,
        neighbor_checks=neighbor_checks,
        breedings=breedings,
        reached_targets=reached_targets,
        evading=evading,
        batch_index=batch_index,
        average_speed=average_speed,
        tick_duration_ms=duration_ms,
    )
