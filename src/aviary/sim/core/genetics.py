from __future__ import annotations

import colorsys
import math
from dataclasses import dataclass

from ...config import GeneticsConfig
from ...rng import DeterministicRng


@dataclass(frozen=True, slots=True)
class Genetics:
    """Heritable traits of one agent.

    Instances are immutable; breeding swaps a new value onto the child instead
    of editing a parent's bundle.
    """

    size: float
    max_speed: float
    max_force: float
    perception_radius: float
    hue: float
    reproduction_probability: float
    saturation: float = 1.0
    lightness: float = 0.5

    def __post_init__(self) -> None:
        for name in ("size", "max_speed", "max_force", "perception_radius"):
            value = getattr(self, name)
            if not (math.isfinite(value) and value > 0.0):
                raise ValueError(f"Genetics.{name} must be strictly positive, got {value}")
        if not 0.0 <= self.reproduction_probability <= 1.0:
            raise ValueError(
                f"Genetics.reproduction_probability must lie in [0, 1], got {self.reproduction_probability}"
            )
        if not 0.0 <= self.hue < 1.0:
            object.__setattr__(self, "hue", self.hue % 1.0)

    @property
    def color(self) -> tuple[float, float, float]:
        return colorsys.hls_to_rgb(self.hue, self.lightness, self.saturation)

    def fitness(self) -> float:
        return (self.max_speed + self.max_force) * 0.5


def random_genetics(rng: DeterministicRng, config: GeneticsConfig) -> Genetics:
    return Genetics(
        size=_sample(rng, config.size),
        max_speed=_sample(rng, config.max_speed),
        max_force=_sample(rng, config.max_force),
        perception_radius=_sample(rng, config.perception_radius),
        hue=rng.next_float(),
        reproduction_probability=_sample(rng, config.reproduction_probability),
        saturation=config.saturation,
        lightness=config.lightness,
    )


def breed(first: Genetics, second: Genetics) -> Genetics:
    """Average two parents into a fresh bundle; neither parent is touched."""
    return Genetics(
        size=(first.size + second.size) / 2,
        max_speed=(first.max_speed + second.max_speed) / 2,
        max_force=(first.max_force + second.max_force) / 2,
        perception_radius=(first.perception_radius + second.perception_radius) / 2,
        hue=_circular_mean_unit(first.hue, second.hue),
        reproduction_probability=(first.reproduction_probability + second.reproduction_probability) / 2,
        saturation=(first.saturation + second.saturation) / 2,
        lightness=(first.lightness + second.lightness) / 2,
    )


def _sample(rng: DeterministicRng, bounds: tuple[float, float]) -> float:
    low, high = bounds
    if high < low:
        low, high = high, low
    return rng.next_range(low, high)


def _circular_mean_unit(first: float, second: float) -> float:
    if first == second:
        return first
    rad_first = first * 2.0 * math.pi
    rad_second = second * 2.0 * math.pi
    x = math.cos(rad_first) + math.cos(rad_second)
    y = math.sin(rad_first) + math.sin(rad_second)
    if abs(x) < 1e-8 and abs(y) < 1e-8:
        return (first + second) * 0.5 % 1.0
    return (math.atan2(y, x) / (2.0 * math.pi)) % 1.0
