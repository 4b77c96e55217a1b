from __future__ import annotations

import math
from typing import List, Sequence

from pygame.math import Vector3

from ...rng import DeterministicRng
from ..types.bounds import Bounds
from ..types.spawn import SpawnSpec

Color = tuple[float, float, float]


def plane_targets(
    colors: Sequence[Color | None],
    columns: int,
    spacing: float,
    rng: DeterministicRng,
    spawn_bounds: Bounds,
    depth: float = 0.0,
) -> List[SpawnSpec]:
    """Map a decoded row-major pixel array onto a centred grid of targets.

    ``None`` entries are transparent pixels and get no agent. Rows grow
    downwards in the image, so they run towards -y here.
    """
    if columns < 1:
        raise ValueError(f"columns must be at least 1, got {columns}")
    rows = math.ceil(len(colors) / columns)
    offset_x = (columns - 1) * spacing * 0.5
    offset_y = (rows - 1) * spacing * 0.5
    specs: List[SpawnSpec] = []
    for index, color in enumerate(colors):
        if color is None:
            continue
        row, column = divmod(index, columns)
        target = Vector3(column * spacing - offset_x, offset_y - row * spacing, depth)
        specs.append(
            SpawnSpec(
                position=rng.next_in_box(spawn_bounds.min, spawn_bounds.max),
                target=target,
                target_color=color,
            )
        )
    return specs


def sphere_targets(count: int, radius: float, rng: DeterministicRng, spawn_bounds: Bounds) -> List[SpawnSpec]:
    # Fibonacci lattice: near-uniform points on the sphere surface.
    golden_angle = math.pi * (3.0 - math.sqrt(5.0))
    specs: List[SpawnSpec] = []
    for index in range(count):
        z = 1.0 - 2.0 * (index + 0.5) / count
        ring = math.sqrt(max(0.0, 1.0 - z * z))
        theta = golden_angle * index
        target = Vector3(ring * math.cos(theta), ring * math.sin(theta), z) * radius
        specs.append(SpawnSpec(position=rng.next_in_box(spawn_bounds.min, spawn_bounds.max), target=target))
    return specs
