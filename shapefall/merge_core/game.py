"""
Core Game
=========

Top-level loop context wiring physics, fusion, spawning and control.
"""

from __future__ import annotations

import dataclasses
import random
from typing import Any, Dict, List, Optional, Tuple

from shapefall.merge_core.active_shape import ActiveShapeController, ControlState, ReleaseReason
from shapefall.merge_core.config_loader import GameConfig, get_config, validate_config
from shapefall.merge_core.fusion_resolver import FusionEvent, FusionListener, FusionResolver
from shapefall.merge_core.physics_world import PhysicsWorld
from shapefall.merge_core.shape_factory import ShapeFactory
from shapefall.merge_core.shape_registry import ShapeRegistry, ShapeTag
from shapefall.merge_core.spawn_scheduler import SpawnScheduler
from shapefall.merge_core.tier_catalog import TierCatalog
from shapefall.merge_core.velocity_governor import VelocityGovernor


# Key identifiers understood by handle_key
KEY_DIRECTIONS: Dict[str, int] = {
    "left": -1,
    "right": 1,
}


class ShapeGame:
    """
    Main game context.

    Orchestrates:
    - Physics world and collision feed
    - Fusion resolution
    - Velocity governing
    - Spawning and active-shape control

    The host calls tick_physics() on its physics clock and tick_frame()
    on its display clock.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        catalog: Optional[TierCatalog] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize game.

        Args:
            config: Game configuration. Uses default if None.
            catalog: Tier catalog. Built from config if None.
            rng: Random source for spawning.
            seed: Seed used when no rng is given.
        """
        if config is None:
            config = get_config()
        if catalog is None:
            catalog = TierCatalog.from_config(config)

        self._config = config
        self._catalog = catalog

        # Initialize subsystems
        self._registry = ShapeRegistry()
        self._physics = PhysicsWorld(config)
        self._factory = ShapeFactory(self._physics, catalog, self._registry, config)
        self._resolver = FusionResolver(self._physics, self._registry, catalog, self._factory)
        self._governor = VelocityGovernor(config.physics.max_horizontal_speed)
        self._scheduler = SpawnScheduler(self._factory, catalog, config, rng=rng, seed=seed)
        self._controller = ActiveShapeController(
            self._physics, self._registry, self._scheduler, config
        )

        # Every new shape becomes the active spawn
        self._factory.add_creation_listener(self._controller.adopt)

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def catalog(self) -> TierCatalog:
        return self._catalog

    @property
    def physics(self) -> PhysicsWorld:
        return self._physics

    @property
    def registry(self) -> ShapeRegistry:
        return self._registry

    @property
    def factory(self) -> ShapeFactory:
        return self._factory

    @property
    def resolver(self) -> FusionResolver:
        return self._resolver

    @property
    def governor(self) -> VelocityGovernor:
        return self._governor

    @property
    def scheduler(self) -> SpawnScheduler:
        return self._scheduler

    @property
    def controller(self) -> ActiveShapeController:
        return self._controller

    @property
    def control_state(self) -> ControlState:
        return self._controller.state

    @property
    def active_handle(self) -> Optional[int]:
        return self._controller.active_handle

    @property
    def shape_count(self) -> int:
        """Number of game shapes currently in the field."""
        return len(self._registry)

    def add_fusion_listener(self, listener: FusionListener) -> None:
        """Subscribe to fuse and max-size signals."""
        self._resolver.add_listener(listener)

    def start(self) -> int:
        """Spawn the first shape. Returns its handle."""
        return self._controller.start()

    def tick_physics(self, dt: Optional[float] = None) -> List[FusionEvent]:
        """
        Advance physics by one step, then resolve fusions, then govern speed.

        Returns:
            Fusions performed this step.
        """
        self._physics.step(dt)
        events = self._resolver.resolve(self._physics.drain_collision_pairs())
        self._governor.apply(self._physics.dynamic_bodies())
        return events

    def tick_frame(self) -> Optional[ReleaseReason]:
        """Run the active-shape check for one display frame."""
        return self._controller.tick()

    def handle_key(self, key: str) -> bool:
        """
        Route a key press to the controller.

        Returns:
            True if it moved the controlled shape.
        """
        direction = KEY_DIRECTIONS.get(key)
        if direction is None:
            return False
        return self._controller.apply_input(direction)

    def shapes(self) -> List[Tuple[int, ShapeTag, Tuple[float, float]]]:
        """(handle, tag, position) for every game shape."""
        return [
            (handle, tag, self._physics.position(handle))
            for handle, tag in self._registry.items()
        ]

    def reset(self, seed: Optional[int] = None) -> int:
        """
        Clear the field and spawn a fresh first shape.

        Returns:
            Handle of the new active shape.
        """
        self._physics.clear()
        self._registry.clear()
        self._controller.reset()
        self._scheduler.reset(seed)
        return self.start()

    def get_render_data(self) -> Dict[str, Any]:
        """
        Get data needed for rendering.

        Returns:
            Dict with field size and one entry per shape.
        """
        shapes_data = []
        for handle, tag in self._registry.items():
            entry = self._physics.get(handle)
            if entry is None:
                continue
            tier = self._catalog.tier(tag.kind, tag.tier_index)
            shapes_data.append({
                "handle": handle,
                "kind": tag.kind.value,
                "tier_index": tag.tier_index,
                "x": entry.position[0],
                "y": entry.position[1],
                "angle": entry.angle,
                "size": tier.size,
                "corner_radius": tier.corner_radius,
                "vertices": entry.world_vertices(),
                "color": tier.color,
                "active": handle == self._controller.active_handle,
            })

        return {
            "field_width": self._config.field.width,
            "field_height": self._config.field.height,
            "spawn_y": self._scheduler.spawn_y,
            "shapes": shapes_data,
            "shape_count": len(shapes_data),
            "control_state": self._controller.state.value,
        }


def init_game(
    width: int,
    height: int,
    gravity: float,
    catalog: Optional[TierCatalog] = None,
    config: Optional[GameConfig] = None,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
    start: bool = True
) -> ShapeGame:
    """
    Build a game for the given field bounds and gravity strength.

    Args:
        width: Field width in pixels.
        height: Field height (floor Y) in pixels.
        gravity: Downward gravity in pixels per second squared.
        catalog: Tier catalog. Built from config if None.
        config: Base configuration for everything else.
        rng: Random source for spawning.
        seed: Seed used when no rng is given.
        start: Spawn the first shape immediately.

    Raises:
        ConfigurationError: If the resulting configuration or catalog is invalid.
    """
    if config is None:
        config = get_config()

    config = dataclasses.replace(
        config,
        field=dataclasses.replace(config.field, width=int(width), height=int(height)),
        physics=dataclasses.replace(config.physics, gravity_x=0.0, gravity_y=float(gravity)),
    )
    validate_config(config)

    game = ShapeGame(config=config, catalog=catalog, rng=rng, seed=seed)
    if start:
        game.start()
    return game
