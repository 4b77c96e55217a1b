from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    mode: str
    attraction_mode: bool
    neighbor_checks: int
    breedings: int
    reached_targets: int
    evading: int
    batch_index: int
    average_speed: float
    tick_duration_ms: float = 0.0
