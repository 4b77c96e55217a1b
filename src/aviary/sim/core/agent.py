from __future__ import annotations

from dataclasses import dataclass, field

from pygame.math import Vector3

from .genetics import Genetics


@dataclass(slots=True)
class Evasion:
    active: bool = False
    remaining_time: float = 0.0
    source: Vector3 | None = None


@dataclass(slots=True, eq=False)
class Agent:
    id: int
    position: Vector3
    velocity: Vector3
    genetics: Genetics
    acceleration: Vector3 = field(default_factory=Vector3)
    target: Vector3 | None = None
    target_color: tuple[float, float, float] | None = None
    seeking: bool = False
    reached_target: bool = False
    evasion: Evasion = field(default_factory=Evasion)

    def forward(self) -> Vector3:
        return self.position + self.velocity
