"""
Spawn Scheduler
===============

Chooses a random kind and drop position for the next falling shape.
"""

from __future__ import annotations

import logging
import random
from typing import Optional, Tuple

from shapefall.merge_core.config_loader import GameConfig, get_config
from shapefall.merge_core.shape_factory import ShapeFactory
from shapefall.merge_core.tier_catalog import ShapeKind, TierCatalog

logger = logging.getLogger(__name__)


class SpawnScheduler:
    """
    Spawns tier-0 shapes above the field.

    Kind and X position are drawn uniformly. Pass `rng` (or `seed`) for
    reproducible sequences.
    """

    def __init__(
        self,
        factory: ShapeFactory,
        catalog: TierCatalog,
        config: Optional[GameConfig] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None
    ):
        if config is None:
            config = get_config()

        self._factory = factory
        self._kinds = catalog.kinds
        self._min_x = config.spawn.side_margin
        self._max_x = config.field.width - config.spawn.side_margin
        self._spawn_y = config.spawn.spawn_y

        if rng is None:
            rng = random.Random(seed if seed is not None else config.spawn.seed)
        self._rng = rng

        self._spawned = 0

    @property
    def x_range(self) -> Tuple[float, float]:
        """(min_x, max_x) for spawn positions."""
        return (self._min_x, self._max_x)

    @property
    def spawn_y(self) -> float:
        return self._spawn_y

    @property
    def spawned_count(self) -> int:
        return self._spawned

    def choose(self) -> Tuple[ShapeKind, float]:
        """Draw the next (kind, x) without creating anything."""
        kind = self._rng.choice(self._kinds)
        x = self._rng.uniform(self._min_x, self._max_x)
        return kind, x

    def spawn(self) -> int:
        """
        Create the next falling shape.

        Returns:
            Handle of the new shape.
        """
        kind, x = self.choose()
        self._spawned += 1
        logger.debug("Spawning %s at x=%.1f", kind.value, x)
        return self._factory.create(kind, 0, x, self._spawn_y)

    def reset(self, seed: Optional[int] = None) -> None:
        """
        Reset the spawn counter, reseeding if a seed is given.
        """
        if seed is not None:
            self._rng.seed(seed)
        self._spawned = 0
