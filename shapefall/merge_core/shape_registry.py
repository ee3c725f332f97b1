"""
Shape Registry
==============

Side-table of game metadata keyed by physics body handle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

from shapefall.merge_core.tier_catalog import ShapeKind


@dataclass(frozen=True)
class ShapeTag:
    """Immutable game metadata attached to a body."""
    kind: ShapeKind
    tier_index: int

    def matches(self, other: "ShapeTag") -> bool:
        """True if both tags describe the same kind and tier (can fuse)."""
        return self.kind is other.kind and self.tier_index == other.tier_index


class ShapeRegistry:
    """
    Maps body handles to ShapeTags.

    A lookup miss means "not a game shape": walls, props, or bodies
    already destroyed.
    """

    def __init__(self):
        self._tags: Dict[int, ShapeTag] = {}

    def tag(self, handle: int, tag: ShapeTag) -> None:
        self._tags[handle] = tag

    def untag(self, handle: int) -> Optional[ShapeTag]:
        return self._tags.pop(handle, None)

    def lookup(self, handle: Optional[int]) -> Optional[ShapeTag]:
        if handle is None:
            return None
        return self._tags.get(handle)

    def __contains__(self, handle: int) -> bool:
        return handle in self._tags

    def __len__(self) -> int:
        return len(self._tags)

    def items(self) -> Iterator[Tuple[int, ShapeTag]]:
        return iter(list(self._tags.items()))

    def clear(self) -> None:
        self._tags.clear()
