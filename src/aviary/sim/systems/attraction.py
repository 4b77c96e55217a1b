from __future__ import annotations

import logging

from ...config import AttractionConfig

logger = logging.getLogger(__name__)


class AttractionCycle:
    """Free-running countdown that alternates attraction and normal flocking.

    The timer runs down from ``duration + cooldown``; attraction is on while it
    is above ``cooldown`` and off for the remaining ``cooldown`` seconds. When
    it reaches zero it wraps back to the top.
    """

    def __init__(self, config: AttractionConfig) -> None:
        self._config = config
        self._period = config.duration + config.cooldown
        self.timer = config.cooldown
        self.active = False

    @property
    def period(self) -> float:
        return self._period

    def reset(self) -> None:
        self.timer = self._config.cooldown
        self.active = False

    def advance(self, dt: float) -> bool:
        if not self._config.enabled or self._period <= 0.0:
            self.active = False
            return self.active
        self.timer -= dt * self._config.time_scale
        if self.timer <= 0.0:
            self.timer = self._period
        self._set_active(self.timer > self._config.cooldown)
        return self.active

    def toggle(self) -> bool:
        """Flip the phase; takes effect from the next tick."""
        if self.active:
            # Fast-forward to the start of the cooldown.
            self.timer = self._config.cooldown
        else:
            self.timer = self._period
        self._set_active(self.timer > self._config.cooldown)
        return self.active

    def _set_active(self, active: bool) -> None:
        if active != self.active:
            logger.debug("attraction mode %s (timer=%.3f)", "on" if active else "off", self.timer)
        self.active = active
