from __future__ import annotations

from dataclasses import dataclass

from pygame.math import Vector3


@dataclass(frozen=True, slots=True)
class TickInput:
    """Per-tick control signals from whatever polls the user's input."""

    seeking: bool = False
    preview_pixels: bool = False
    toggle_attraction: bool = False
    threat: Vector3 | None = None


IDLE_INPUT = TickInput()
