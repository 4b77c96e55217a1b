from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from pygame.math import Vector3

Point = Union[Vector3, Tuple[float, float], Tuple[float, float, float]]


@dataclass(frozen=True, slots=True)
class SpawnSpec:
    position: Point
    target: Point | None = None
    target_color: tuple[float, float, float] | None = None
