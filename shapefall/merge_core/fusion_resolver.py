"""
Fusion Resolver
===============

Consumes a physics step's collision batch and fuses or destroys matching pairs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Set, Tuple

from shapefall.merge_core.physics_world import PhysicsWorld
from shapefall.merge_core.shape_factory import ShapeFactory
from shapefall.merge_core.shape_registry import ShapeRegistry
from shapefall.merge_core.tier_catalog import ShapeKind, TierCatalog

logger = logging.getLogger(__name__)


class FusionOutcome(Enum):
    FUSE = "fuse"
    MAX_SIZE = "max_size"


@dataclass(frozen=True)
class FusionEvent:
    """Result of a single fusion, also the payload of the outbound signal."""
    outcome: FusionOutcome
    kind: ShapeKind
    tier_index: int                 # Tier of the two removed shapes
    removed_handles: Tuple[int, int]
    created_handle: Optional[int]   # None for max-size pairs
    position: Tuple[float, float]   # Position of the first shape of the pair


FusionListener = Callable[[FusionEvent], None]


class FusionResolver:
    """
    Resolves collision pairs into fusions.

    Pairs are processed in report order. A per-batch destroyed set makes
    sure each body takes part in at most one fusion per step.
    """

    def __init__(
        self,
        world: PhysicsWorld,
        registry: ShapeRegistry,
        catalog: TierCatalog,
        factory: ShapeFactory
    ):
        self._world = world
        self._registry = registry
        self._catalog = catalog
        self._factory = factory
        self._listeners: List[FusionListener] = []

    def add_listener(self, listener: FusionListener) -> None:
        """Register a callback for fuse and max-size signals."""
        self._listeners.append(listener)

    def resolve(self, pairs: Iterable[Tuple[int, int]]) -> List[FusionEvent]:
        """
        Process one step's newly-touching pairs.

        Args:
            pairs: (handle_a, handle_b) in report order.

        Returns:
            One FusionEvent per fusion performed.
        """
        destroyed: Set[int] = set()
        events: List[FusionEvent] = []

        for handle_a, handle_b in pairs:
            # Checked before the registry, which no longer knows fused handles
            if handle_a in destroyed or handle_b in destroyed:
                logger.debug("Skipping pair (%d, %d): already fused this step",
                             handle_a, handle_b)
                continue

            tag_a = self._registry.lookup(handle_a)
            tag_b = self._registry.lookup(handle_b)
            if tag_a is None or tag_b is None:
                continue

            if handle_a == handle_b or not tag_a.matches(tag_b):
                continue

            event = self._fuse(handle_a, handle_b, tag_a.kind, tag_a.tier_index)
            destroyed.add(handle_a)
            destroyed.add(handle_b)
            events.append(event)

            for listener in self._listeners:
                listener(event)

        return events

    def _destroy(self, handle: int) -> None:
        self._registry.untag(handle)
        self._world.remove(handle)

    def _fuse(
        self,
        handle_a: int,
        handle_b: int,
        kind: ShapeKind,
        tier_index: int
    ) -> FusionEvent:
        """Destroy both shapes and create the successor, if any, at A's position."""
        position = self._world.position(handle_a)

        self._destroy(handle_a)
        self._destroy(handle_b)

        if self._catalog.is_max_tier(tier_index):
            logger.info("Max-size %s pair destroyed at (%.1f, %.1f)",
                        kind.value, position[0], position[1])
            return FusionEvent(
                outcome=FusionOutcome.MAX_SIZE,
                kind=kind,
                tier_index=tier_index,
                removed_handles=(handle_a, handle_b),
                created_handle=None,
                position=position
            )

        created = self._factory.create(kind, tier_index + 1, position[0], position[1])
        logger.info("Fused two %s tier %d into tier %d (handle %d)",
                    kind.value, tier_index, tier_index + 1, created)
        return FusionEvent(
            outcome=FusionOutcome.FUSE,
            kind=kind,
            tier_index=tier_index,
            removed_handles=(handle_a, handle_b),
            created_handle=created,
            position=position
        )
