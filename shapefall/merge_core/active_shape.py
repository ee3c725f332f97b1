"""
Active Shape Controller
=======================

Owns the single player-controlled shape and its settle/exit state machine.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from shapefall.merge_core.config_loader import GameConfig, get_config
from shapefall.merge_core.physics_world import PhysicsWorld
from shapefall.merge_core.shape_registry import ShapeRegistry
from shapefall.merge_core.spawn_scheduler import SpawnScheduler

logger = logging.getLogger(__name__)


class ControlState(Enum):
    RELEASED = "released"
    CONTROLLED = "controlled"


class ReleaseReason(Enum):
    SETTLED = "settled"
    EXITED = "exited"
    DESTROYED = "destroyed"     # Removed by a max-size fusion while controlled


@dataclass
class ActiveSpawn:
    """The controlled shape plus the vertical position sampled last tick."""
    handle: int
    previous_y: Optional[float] = None


def _display_units(value: float) -> int:
    """Round half up to whole display units."""
    return math.floor(value + 0.5)


class ActiveShapeController:
    """
    Two-state machine: RELEASED (no active spawn) and CONTROLLED.

    Each display tick the controlled shape is checked for leaving the
    field or settling; either releases it and requests the next spawn.
    There is no maximum-wait fallback.
    """

    def __init__(
        self,
        world: PhysicsWorld,
        registry: ShapeRegistry,
        scheduler: SpawnScheduler,
        config: Optional[GameConfig] = None
    ):
        if config is None:
            config = get_config()

        self._world = world
        self._registry = registry
        self._scheduler = scheduler

        self._exit_y = config.field.height + config.control.exit_margin
        self._rest_threshold = config.control.rest_speed_threshold
        self._lateral_force = config.control.lateral_force

        self._active: Optional[ActiveSpawn] = None

    @property
    def state(self) -> ControlState:
        return ControlState.RELEASED if self._active is None else ControlState.CONTROLLED

    @property
    def active(self) -> Optional[ActiveSpawn]:
        return self._active

    @property
    def active_handle(self) -> Optional[int]:
        return None if self._active is None else self._active.handle

    def start(self) -> int:
        """Perform the initial spawn. No-op while a shape is already controlled."""
        if self._active is None:
            self._request_spawn()
        return self._active.handle

    def adopt(self, handle: int) -> None:
        """Make `handle` the controlled shape, replacing any previous one."""
        self._active = ActiveSpawn(handle=handle)

    def _release(self, reason: ReleaseReason) -> None:
        logger.debug("Released handle %d (%s)", self._active.handle, reason.value)
        self._active = None
        self._request_spawn()

    def _request_spawn(self) -> None:
        handle = self._scheduler.spawn()
        # Creation listeners normally adopt it already
        if self.active_handle != handle:
            self.adopt(handle)

    def tick(self) -> Optional[ReleaseReason]:
        """
        Per-frame check.

        Returns:
            The reason control was released this tick, or None.
        """
        if self._active is None:
            return None

        handle = self._active.handle
        if not self._world.exists(handle):
            self._release(ReleaseReason.DESTROYED)
            return ReleaseReason.DESTROYED

        _, y = self._world.position(handle)

        if y > self._exit_y:
            self._registry.untag(handle)
            self._world.remove(handle)
            self._release(ReleaseReason.EXITED)
            return ReleaseReason.EXITED

        vx, vy = self._world.velocity(handle)
        speed = math.sqrt(vx*vx + vy*vy)
        previous_y = self._active.previous_y
        if (
            speed < self._rest_threshold
            and previous_y is not None
            and _display_units(y) == _display_units(previous_y)
        ):
            self._release(ReleaseReason.SETTLED)
            return ReleaseReason.SETTLED

        self._active.previous_y = y
        return None

    def apply_input(self, direction: int) -> bool:
        """
        Push the controlled shape sideways.

        Args:
            direction: -1 for left, +1 for right.

        Returns:
            True if a force was applied.
        """
        if self._active is None or direction == 0:
            return False
        if not self._world.exists(self._active.handle):
            return False

        force = (math.copysign(self._lateral_force, direction), 0.0)
        self._world.apply_force(self._active.handle, force)
        return True

    def reset(self) -> None:
        """Drop the active spawn without spawning a replacement."""
        self._active = None
