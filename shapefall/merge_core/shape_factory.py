"""
Shape Factory
=============

Builds tagged physics bodies for (kind, tier, position).
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional, Tuple

from shapefall.merge_core.config_loader import GameConfig, get_config
from shapefall.merge_core.physics_world import PhysicsWorld
from shapefall.merge_core.shape_registry import ShapeRegistry, ShapeTag
from shapefall.merge_core.tier_catalog import ShapeKind, SizeTier, TierCatalog

logger = logging.getLogger(__name__)


def polygon_vertices(kind: ShapeKind, tier: SizeTier) -> List[Tuple[float, float]]:
    """
    Local-space hull for a rounded polygon tier.

    The hull is inset by the corner radius so the rounded outline spans
    the full tier size. Triangles point up (-y).
    """
    r = tier.corner_radius
    if kind is ShapeKind.ROUNDED_RECT:
        half = tier.size / 2.0 - r
        return [(-half, -half), (half, -half), (half, half), (-half, half)]
    if kind is ShapeKind.ROUNDED_TRIANGLE:
        inradius = tier.size / (2.0 * math.sqrt(3.0)) - r
        circumradius = 2.0 * inradius
        return [
            (circumradius * math.cos(a), circumradius * math.sin(a))
            for a in (math.radians(-90), math.radians(30), math.radians(150))
        ]
    raise ValueError(f"{kind} is not a polygon kind")


class ShapeFactory:
    """
    Creates game shapes in the physics world.

    Every created shape is tagged in the registry, nudged downward once,
    and announced to creation listeners (the active-shape controller
    adopts it as the new active spawn).
    """

    def __init__(
        self,
        world: PhysicsWorld,
        catalog: TierCatalog,
        registry: ShapeRegistry,
        config: Optional[GameConfig] = None
    ):
        if config is None:
            config = get_config()

        self._world = world
        self._catalog = catalog
        self._registry = registry
        self._nudge_force = config.physics.spawn_nudge_force
        self._listeners: List[Callable[[int], None]] = []

    def add_creation_listener(self, listener: Callable[[int], None]) -> None:
        """Register a callback receiving each new handle."""
        self._listeners.append(listener)

    def create(self, kind: ShapeKind, tier_index: int, x: float, y: float) -> int:
        """
        Create one shape.

        Args:
            kind: Shape kind.
            tier_index: Size tier in [0, N).
            x: X coordinate.
            y: Y coordinate.

        Returns:
            The new body handle.
        """
        tier = self._catalog.tier(kind, tier_index)

        if kind is ShapeKind.CIRCLE:
            handle = self._world.create_circle(x, y, tier.size, color=tier.color)
        else:
            handle = self._world.create_rounded_polygon(
                x, y,
                polygon_vertices(kind, tier),
                corner_radius=tier.corner_radius,
                color=tier.color
            )

        self._registry.tag(handle, ShapeTag(kind=kind, tier_index=tier_index))

        # Break perfectly symmetric resting states
        self._world.apply_force(handle, (0.0, self._nudge_force))

        logger.debug("Created %s tier %d as handle %d at (%.1f, %.1f)",
                     kind.value, tier_index, handle, x, y)

        for listener in self._listeners:
            listener(handle)
        return handle
