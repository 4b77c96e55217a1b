from __future__ import annotations

import math
import random
from typing import Optional, Sequence, TypeVar

from pygame.math import Vector3

T = TypeVar("T")


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_float(self) -> float:
        return self._random.random()

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def next_int(self, max_value: int) -> int:
        return self._random.randrange(max_value)

    def next_unit_sphere(self) -> Vector3:
        # Uniform direction: uniform z and azimuth on the cylinder projection.
        z = self._random.uniform(-1.0, 1.0)
        angle = self._random.uniform(0.0, 2.0 * math.pi)
        ring = math.sqrt(max(0.0, 1.0 - z * z))
        return Vector3(ring * math.cos(angle), ring * math.sin(angle), z)

    def next_in_box(self, low: Vector3, high: Vector3) -> Vector3:
        return Vector3(
            self._random.uniform(low.x, high.x),
            self._random.uniform(low.y, high.y),
            self._random.uniform(low.z, high.z),
        )

    def sample_choice(self, items: Sequence[T]) -> Optional[T]:
        if not items:
            return None
        return self._random.choice(items)


def derive_stream_seed(seed: int, salt: int) -> int:
    return (int(seed) ^ int(salt)) & 0xFFFFFFFFFFFFFFFF
