from __future__ import annotations

from dataclasses import dataclass

from pygame.math import Vector3


@dataclass(slots=True)
class Bounds:
    min: Vector3
    max: Vector3

    def __post_init__(self) -> None:
        for axis in range(3):
            if self.min[axis] >= self.max[axis]:
                raise ValueError(f"Bounds min must be below max on every axis, got {self.min} / {self.max}")

    @classmethod
    def cube(cls, half_extent: float) -> "Bounds":
        return cls(
            Vector3(-half_extent, -half_extent, -half_extent),
            Vector3(half_extent, half_extent, half_extent),
        )

    @property
    def center(self) -> Vector3:
        return (self.min + self.max) * 0.5

    @property
    def size(self) -> Vector3:
        return self.max - self.min

    def contains(self, point: Vector3) -> bool:
        return all(self.min[axis] <= point[axis] <= self.max[axis] for axis in range(3))
