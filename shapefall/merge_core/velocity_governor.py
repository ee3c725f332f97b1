"""
Velocity Governor
=================

Per-step clamp of horizontal speed on dynamic bodies.
"""

from __future__ import annotations

from typing import Iterable

import pymunk


class VelocityGovernor:
    """Clamps vx to [-max_speed, +max_speed]; vy is left untouched."""

    def __init__(self, max_speed: float):
        if max_speed <= 0:
            raise ValueError(f"max_speed must be positive, got {max_speed}")
        self._max_speed = max_speed

    @property
    def max_speed(self) -> float:
        return self._max_speed

    def clamp(self, vx: float) -> float:
        return max(-self._max_speed, min(self._max_speed, vx))

    def apply(self, bodies: Iterable[pymunk.Body]) -> int:
        """
        Clamp every dynamic, non-sensor body.

        Returns:
            Number of bodies whose velocity was changed.
        """
        changed = 0
        for body in bodies:
            if body.body_type != pymunk.Body.DYNAMIC:
                continue
            if body.shapes and all(shape.sensor for shape in body.shapes):
                continue

            vx, vy = body.velocity
            clamped = self.clamp(vx)
            if clamped != vx:
                body.velocity = (clamped, vy)
                changed += 1
        return changed
