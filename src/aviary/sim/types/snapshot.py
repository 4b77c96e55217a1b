from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(frozen=True, slots=True)
class AgentPose:
    id: int
    position: tuple[float, float, float]
    forward: tuple[float, float, float]
    color: tuple[float, float, float]


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    agents: List[Dict[str, Any]]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotWorld:
    min: tuple[float, float, float]
    max: tuple[float, float, float]
    wrap_around: bool


@dataclass(slots=True)
class SnapshotMetadata:
    sim_dt: float
    tick_rate: float
    seed: int
    config_version: str
    attraction_timer: float
