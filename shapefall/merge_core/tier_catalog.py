"""
Tier Catalog
============

Static table of shape kinds and their size tiers, loaded from config.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Mapping, Optional, Sequence, Tuple

from shapefall.merge_core.config_loader import (
    ConfigurationError,
    GameConfig,
    get_config
)


class ShapeKind(Enum):
    """Closed set of shape kinds."""
    CIRCLE = "circle"
    ROUNDED_RECT = "rounded_rect"
    ROUNDED_TRIANGLE = "rounded_triangle"

    @property
    def is_polygon(self) -> bool:
        return self is not ShapeKind.CIRCLE


@dataclass(frozen=True)
class SizeTier:
    """
    One size level of a shape kind.

    `size` is the radius for circles and the side length for polygons.
    """
    index: int
    label: str
    size: float
    corner_radius: float
    color: Tuple[int, int, int]

    def __repr__(self) -> str:
        return f"SizeTier({self.index}: {self.label}, size={self.size:g})"


def _max_corner_radius(kind: ShapeKind, size: float) -> float:
    """Largest corner rounding that still fits inside the polygon."""
    if kind is ShapeKind.ROUNDED_RECT:
        return size / 2.0
    if kind is ShapeKind.ROUNDED_TRIANGLE:
        # Inradius of an equilateral triangle
        return size / (2.0 * math.sqrt(3.0))
    return math.inf


class TierCatalog:
    """
    Mapping from ShapeKind to its ordered tuple of N SizeTiers.

    Every kind has the same tier count N so that fusion progresses
    symmetrically. Immutable after construction.
    """

    def __init__(self, tiers: Mapping[ShapeKind, Sequence[SizeTier]]):
        """
        Initialize and validate the catalog.

        Args:
            tiers: Ordered tier sequence for every ShapeKind.

        Raises:
            ConfigurationError: If kinds are missing, tier counts differ, or
                geometry is non-positive or non-monotonic.
        """
        missing = [kind.value for kind in ShapeKind if kind not in tiers]
        if missing:
            raise ConfigurationError(f"Tier catalog is missing shape kinds: {missing}")

        self._tiers: Dict[ShapeKind, Tuple[SizeTier, ...]] = {
            kind: tuple(tiers[kind]) for kind in ShapeKind
        }

        counts = {kind.value: len(seq) for kind, seq in self._tiers.items()}
        if len(set(counts.values())) != 1:
            raise ConfigurationError(f"All shape kinds must have the same tier count, got {counts}")

        self._tier_count = next(iter(counts.values()))
        if self._tier_count == 0:
            raise ConfigurationError("Shape kinds must define at least one tier")

        for kind, seq in self._tiers.items():
            self._validate_kind(kind, seq)

    @staticmethod
    def _validate_kind(kind: ShapeKind, seq: Tuple[SizeTier, ...]) -> None:
        previous_size = 0.0
        for i, tier in enumerate(seq):
            if tier.index != i:
                raise ConfigurationError(
                    f"{kind.value} tier index mismatch: expected {i}, got {tier.index}"
                )
            if tier.size <= 0:
                raise ConfigurationError(
                    f"{kind.value} tier {i} size must be positive, got {tier.size}"
                )
            if tier.corner_radius < 0:
                raise ConfigurationError(
                    f"{kind.value} tier {i} corner radius must be >= 0, got {tier.corner_radius}"
                )
            if tier.size <= previous_size:
                raise ConfigurationError(
                    f"{kind.value} tier sizes must strictly increase: "
                    f"tier {i} ({tier.size}) <= tier {i - 1} ({previous_size})"
                )
            limit = _max_corner_radius(kind, tier.size)
            if kind.is_polygon and tier.corner_radius >= limit:
                raise ConfigurationError(
                    f"{kind.value} tier {i} corner radius {tier.corner_radius} "
                    f"does not fit a side of {tier.size} (limit {limit:.3f})"
                )
            previous_size = tier.size

    @classmethod
    def from_config(cls, config: Optional[GameConfig] = None) -> "TierCatalog":
        """
        Build the catalog from the `shapes` config section.

        Geometry values are multiplied by `shapes.scale`.
        """
        if config is None:
            config = get_config()

        scale = config.shapes.scale
        known = {kind.value: kind for kind in ShapeKind}
        tiers: Dict[ShapeKind, Tuple[SizeTier, ...]] = {}
        for name, tier_configs in config.shapes.kinds:
            kind = known.get(name)
            if kind is None:
                raise ConfigurationError(
                    f"Unknown shape kind '{name}', expected one of {sorted(known)}"
                )
            tiers[kind] = tuple(
                SizeTier(
                    index=i,
                    label=tc.label,
                    size=tc.size * scale,
                    corner_radius=tc.corner_radius * scale,
                    color=tc.color
                )
                for i, tc in enumerate(tier_configs)
            )
        return cls(tiers)

    def __iter__(self) -> Iterator[ShapeKind]:
        return iter(self._tiers)

    def __len__(self) -> int:
        return len(self._tiers)

    @property
    def kinds(self) -> Tuple[ShapeKind, ...]:
        """All shape kinds in declaration order."""
        return tuple(self._tiers)

    @property
    def tier_count(self) -> int:
        """Number of tiers N shared by every kind."""
        return self._tier_count

    @property
    def max_tier_index(self) -> int:
        return self._tier_count - 1

    def tiers_of(self, kind: ShapeKind) -> Tuple[SizeTier, ...]:
        """Ordered tiers for a kind."""
        return self._tiers[kind]

    def tier(self, kind: ShapeKind, tier_index: int) -> SizeTier:
        """Get one tier. Raises IndexError for indices outside [0, N)."""
        if 0 <= tier_index < self._tier_count:
            return self._tiers[kind][tier_index]
        raise IndexError(f"Tier {tier_index} out of range [0, {self._tier_count})")

    def is_max_tier(self, tier_index: int) -> bool:
        return tier_index == self.max_tier_index

