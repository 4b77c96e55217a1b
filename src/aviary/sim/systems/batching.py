from __future__ import annotations

import math


class BatchCursor:
    """Sliding window over the population for amortised seek updates."""

    def __init__(self, batch_size: int) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.batch_size = batch_size
        self.index = 0

    def batch_count(self, population: int) -> int:
        if population <= 0:
            return 0
        return math.ceil(population / self.batch_size)

    def window(self, population: int) -> range:
        count = self.batch_count(population)
        if count == 0:
            return range(0)
        if self.index >= count:
            self.index %= count
        start = self.index * self.batch_size
        return range(start, min(start + self.batch_size, population))

    def advance(self, population: int) -> int:
        count = self.batch_count(population)
        if count == 0:
            self.index = 0
        else:
            self.index = (self.index + 1) % count
        return self.index

    def reset(self) -> None:
        self.index = 0
