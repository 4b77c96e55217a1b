from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class GeneticsConfig:
    size: tuple[float, float] = (0.5, 1.5)
    max_speed: tuple[float, float] = (1.0, 5.0)
    max_force: tuple[float, float] = (0.1, 0.5)
    perception_radius: tuple[float, float] = (10.0, 50.0)
    reproduction_probability: tuple[float, float] = (0.05, 0.5)
    saturation: float = 1.0
    lightness: float = 0.5


@dataclass
class FlockingConfig:
    separation_weight: float = 1.5
    alignment_weight: float = 1.0
    cohesion_weight: float = 1.0
    desired_separation: float = 2.0
    alignment_distance: float = 5.0
    cohesion_distance: float = 1.0
    # Neighbours closer than genetics.size push back unscaled.
    collision_repulsion: bool = True


@dataclass
class AttractionConfig:
    enabled: bool = True
    force: float = 0.35
    damping: float = 0.95
    breeding_probability: float = 0.1
    cooldown: float = 20.0
    duration: float = 10.0
    time_scale: float = 1.0


@dataclass
class BoundaryConfig:
    half_extent: float = 50.0
    margin: float = 2.0
    force: float = 0.5
    wrap_around: bool = True


@dataclass
class SeekConfig:
    deceleration_distance: float = 5.0
    min_deceleration_distance: float = 0.5
    min_arrival_speed: float = 0.05
    batch_size: int = 100


@dataclass
class EvasionConfig:
    radius: float = 10.0
    duration: float = 1.5
    weight: float = 2.0


@dataclass
class SimulationConfig:
    time_step: float = 1.0
    initial_population: int = 300
    max_population: int = 3000
    cell_size: float = 10.0
    acceleration_magnitude: float = 0.5
    jitter: float = 0.0
    seed: int = 42
    config_version: str = "v1"
    genetics: GeneticsConfig = field(default_factory=GeneticsConfig)
    flocking: FlockingConfig = field(default_factory=FlockingConfig)
    attraction: AttractionConfig = field(default_factory=AttractionConfig)
    boundary: BoundaryConfig = field(default_factory=BoundaryConfig)
    seek: SeekConfig = field(default_factory=SeekConfig)
    evasion: EvasionConfig = field(default_factory=EvasionConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)

    def validate(self) -> "SimulationConfig":
        if not (math.isfinite(self.cell_size) and self.cell_size > 0.0):
            raise ValueError(f"cell_size must be positive and finite, got {self.cell_size}")
        if self.time_step < 0.0:
            raise ValueError(f"time_step must not be negative, got {self.time_step}")
        if self.initial_population < 0 or self.max_population < 0:
            raise ValueError("population sizes must not be negative")
        if self.seek.batch_size < 1:
            raise ValueError(f"seek.batch_size must be at least 1, got {self.seek.batch_size}")
        if self.boundary.half_extent <= 0.0:
            raise ValueError(f"boundary.half_extent must be positive, got {self.boundary.half_extent}")
        if self.attraction.cooldown < 0.0 or self.attraction.duration < 0.0:
            raise ValueError("attraction cooldown and duration must not be negative")
        genetics = self.genetics
        for name in ("size", "max_speed", "max_force", "perception_radius"):
            low, high = getattr(genetics, name)
            if not (math.isfinite(low) and math.isfinite(high)) or min(low, high) <= 0.0:
                raise ValueError(f"genetics.{name} range must be strictly positive, got {(low, high)}")
        low, high = genetics.reproduction_probability
        if min(low, high) < 0.0 or max(low, high) > 1.0:
            raise ValueError(f"genetics.reproduction_probability must lie in [0, 1], got {(low, high)}")
        return self


def load_config(raw: dict) -> SimulationConfig:
    default_genetics = GeneticsConfig()
    genetics_raw = dict(raw.get("genetics", {}))

    def _pair(value: tuple[float, float] | list[float] | None, default: tuple[float, float]) -> tuple[float, float]:
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return (float(value[0]), float(value[1]))
        return default

    genetics = GeneticsConfig(
        size=_pair(genetics_raw.pop("size", None), default_genetics.size),
        max_speed=_pair(genetics_raw.pop("max_speed", None), default_genetics.max_speed),
        max_force=_pair(genetics_raw.pop("max_force", None), default_genetics.max_force),
        perception_radius=_pair(genetics_raw.pop("perception_radius", None), default_genetics.perception_radius),
        reproduction_probability=_pair(
            genetics_raw.pop("reproduction_probability", None), default_genetics.reproduction_probability
        ),
        **genetics_raw,
    )
    flocking = FlockingConfig(**raw.get("flocking", {}))
    attraction = AttractionConfig(**raw.get("attraction", {}))
    boundary = BoundaryConfig(**raw.get("boundary", {}))
    seek = SeekConfig(**raw.get("seek", {}))
    evasion = EvasionConfig(**raw.get("evasion", {}))
    sim_values = {
        k: v
        for k, v in raw.items()
        if k not in {"genetics", "flocking", "attraction", "boundary", "seek", "evasion"}
    }
    return SimulationConfig(
        genetics=genetics,
        flocking=flocking,
        attraction=attraction,
        boundary=boundary,
        seek=seek,
        evasion=evasion,
        **sim_values,
    )
