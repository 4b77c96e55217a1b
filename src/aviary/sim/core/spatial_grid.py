from __future__ import annotations

import math
from typing import TYPE_CHECKING, Dict, List, Tuple

from pygame.math import Vector3

if TYPE_CHECKING:
    from .agent import Agent

CellKey = Tuple[int, int, int]


class SpatialGrid:
    """Uniform grid over agent positions for radius queries.

    Each agent lives in the cell ``floor(coordinate / cell_size)`` on every axis.
    Queries scan the conservative block of cells overlapping the query sphere and
    then filter by exact distance.
    """

    def __init__(self, cell_size: float) -> None:
        if not (math.isfinite(cell_size) and cell_size > 0.0):
            raise ValueError(f"cell_size must be positive and finite, got {cell_size}")
        self._cell_size = float(cell_size)
        self._cells: Dict[CellKey, List["Agent"]] = {}
        self._active_keys: List[CellKey] = []
        self._count = 0

    @property
    def cell_size(self) -> float:
        return self._cell_size

    def __len__(self) -> int:
        return self._count

    def clear(self) -> None:
        for key in self._active_keys:
            bucket = self._cells.get(key)
            if bucket:
                bucket.clear()
        self._active_keys.clear()
        self._count = 0

    def insert(self, agent: "Agent") -> None:
        key = self.cell_key(agent.position)
        bucket = self._cells.get(key)
        if bucket is None:
            bucket = []
            self._cells[key] = bucket
            self._active_keys.append(key)
        elif not bucket:
            # Bucket exists but was emptied earlier; mark it active again.
            self._active_keys.append(key)
        bucket.append(agent)
        self._count += 1

    def remove(self, agent: "Agent") -> bool:
        bucket = self._cells.get(self.cell_key(agent.position))
        if not bucket:
            return False
        for index, occupant in enumerate(bucket):
            if occupant is agent:
                # Order inside a bucket carries no meaning, so swap-pop.
                bucket[index] = bucket[-1]
                bucket.pop()
                self._count -= 1
                return True
        return False

    def query(self, center: Vector3, radius: float) -> List["Agent"]:
        found: List["Agent"] = []
        if radius < 0.0:
            return found
        cell_size = self._cell_size
        min_x = math.floor((center.x - radius) / cell_size)
        max_x = math.floor((center.x + radius) / cell_size)
        min_y = math.floor((center.y - radius) / cell_size)
        max_y = math.floor((center.y + radius) / cell_size)
        min_z = math.floor((center.z - radius) / cell_size)
        max_z = math.floor((center.z + radius) / cell_size)
        radius_sq = radius * radius
        cx = center.x
        cy = center.y
        cz = center.z
        cells = self._cells
        append = found.append

        block = (max_x - min_x + 1) * (max_y - min_y + 1) * (max_z - min_z + 1)
        if block > len(cells):
            # Sphere spans more cells than exist; walk the occupied ones instead.
            for (x, y, z), bucket in cells.items():
                if not bucket:
                    continue
                if not (min_x <= x <= max_x and min_y <= y <= max_y and min_z <= z <= max_z):
                    continue
                for agent in bucket:
                    pos = agent.position
                    dx = pos.x - cx
                    dy = pos.y - cy
                    dz = pos.z - cz
                    if dx * dx + dy * dy + dz * dz <= radius_sq:
                        append(agent)
            return found

        for x in range(min_x, max_x + 1):
            for y in range(min_y, max_y + 1):
                for z in range(min_z, max_z + 1):
                    bucket = cells.get((x, y, z))
                    if not bucket:
                        continue
                    for agent in bucket:
                        pos = agent.position
                        dx = pos.x - cx
                        dy = pos.y - cy
                        dz = pos.z - cz
                        if dx * dx + dy * dy + dz * dz <= radius_sq:
                            append(agent)
        return found

    def occupancy(self) -> Dict[CellKey, int]:
        return {key: len(bucket) for key, bucket in self._cells.items() if bucket}

    def cell_key(self, position: Vector3) -> CellKey:
        size = self._cell_size
        return (
            math.floor(position.x / size),
            math.floor(position.y / size),
            math.floor(position.z / size),
        )
