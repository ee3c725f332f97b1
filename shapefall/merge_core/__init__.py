"""
Merge Core - The game-logic layer.

This module provides the shape/tier taxonomy, fusion resolution, the
active-shape state machine and the velocity governor, plus the pymunk
world they run on.

Main exports:
- ShapeGame / init_game: Top-level loop context and its entrypoint
- TierCatalog, ShapeKind, SizeTier: Shape taxonomy
- FusionResolver, FusionEvent, FusionOutcome: Fusion rules and signals
- ActiveShapeController: Controlled-shape lifecycle
- GameConfig: Configuration loaded from game_config.yaml
"""

from shapefall.merge_core.config_loader import (
    ConfigurationError,
    GameConfig,
    load_config,
)
from shapefall.merge_core.tier_catalog import ShapeKind, SizeTier, TierCatalog
from shapefall.merge_core.shape_registry import ShapeRegistry, ShapeTag
from shapefall.merge_core.physics_world import PhysicsWorld
from shapefall.merge_core.shape_factory import ShapeFactory
from shapefall.merge_core.velocity_governor import VelocityGovernor
from shapefall.merge_core.fusion_resolver import (
    FusionEvent,
    FusionOutcome,
    FusionResolver,
)
from shapefall.merge_core.spawn_scheduler import SpawnScheduler
from shapefall.merge_core.active_shape import (
    ActiveShapeController,
    ActiveSpawn,
    ControlState,
    ReleaseReason,
)
from shapefall.merge_core.game import ShapeGame, init_game

__all__ = [
    "ConfigurationError",
    "GameConfig",
    "load_config",
    "ShapeKind",
    "SizeTier",
    "TierCatalog",
    "ShapeRegistry",
    "ShapeTag",
    "PhysicsWorld",
    "ShapeFactory",
    "VelocityGovernor",
    "FusionEvent",
    "FusionOutcome",
    "FusionResolver",
    "SpawnScheduler",
    "ActiveShapeController",
    "ActiveSpawn",
    "ControlState",
    "ReleaseReason",
    "ShapeGame",
    "init_game",
]
