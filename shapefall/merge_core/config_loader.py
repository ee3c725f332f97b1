"""
Configuration Loader
====================

Loads and validates game_config.yaml, providing typed access to all parameters.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml


class ConfigurationError(ValueError):
    """Invalid game configuration. Raised at startup, before the first spawn."""


@dataclass(frozen=True)
class FieldConfig:
    """Bounded play area (floor plus side walls)."""
    width: int                   # Field width in pixels
    height: int                  # Floor Y coordinate in pixels (+y points down)
    wall_thickness: float        # Thickness of floor and side walls


@dataclass(frozen=True)
class PhysicsConfig:
    """Physics simulation parameters."""
    gravity_x: float
    gravity_y: float
    damping: float
    dt: float
    substeps: int
    friction: float
    elasticity: float
    density: float
    spawn_nudge_force: float     # Downward force applied once to each new shape
    max_horizontal_speed: float  # Symmetric |vx| cap enforced every step

    @property
    def gravity(self) -> Tuple[float, float]:
        return (self.gravity_x, self.gravity_y)


@dataclass(frozen=True)
class ControlConfig:
    """Active-shape control and settle detection."""
    rest_speed_threshold: float  # Speed below which a shape may count as settled
    exit_margin: float           # Distance below the floor that counts as exited
    lateral_force: float         # Horizontal force per directional key press


@dataclass(frozen=True)
class SpawnConfig:
    """Spawn placement."""
    side_margin: float
    spawn_y: float               # Negative values are above the visible top
    seed: Optional[int]


@dataclass(frozen=True)
class TierConfig:
    """Raw geometry of one size tier, before scaling."""
    label: str
    size: float                  # Circle radius, or polygon side length
    corner_radius: float
    color: Tuple[int, int, int]


@dataclass(frozen=True)
class ShapesConfig:
    """Tier tables per shape kind name."""
    scale: float
    kinds: Tuple[Tuple[str, Tuple[TierConfig, ...]], ...]

    def tiers_for(self, kind_name: str) -> Tuple[TierConfig, ...]:
        for name, tiers in self.kinds:
            if name == kind_name:
                return tiers
        raise KeyError(kind_name)

    @property
    def kind_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.kinds)


@dataclass(frozen=True)
class GameConfig:
    """
    Complete game configuration loaded from YAML.

    All values are immutable to prevent accidental modification during runtime.
    """
    field: FieldConfig
    physics: PhysicsConfig
    control: ControlConfig
    spawn: SpawnConfig
    shapes: ShapesConfig


def _parse_color(color_data: List) -> Tuple[int, int, int]:
    """Parse RGB color from YAML."""
    if len(color_data) != 3:
        raise ConfigurationError(f"Color must have 3 values [R, G, B], got {color_data}")
    return (int(color_data[0]), int(color_data[1]), int(color_data[2]))


def _parse_tier(tier_data: dict) -> TierConfig:
    """Parse a single size tier from YAML."""
    return TierConfig(
        label=str(tier_data["label"]),
        size=float(tier_data["size"]),
        corner_radius=float(tier_data.get("corner_radius", 0.0)),
        color=_parse_color(tier_data["color"])
    )


def _parse_shapes(shapes_data: dict) -> ShapesConfig:
    """Parse the shapes section: an optional scale plus one tier list per kind."""
    scale = float(shapes_data.get("scale", 1.0))
    kinds = []
    for name, tiers_data in shapes_data.items():
        if name == "scale":
            continue
        if not isinstance(tiers_data, list):
            raise ConfigurationError(f"Tiers for shape kind '{name}' must be a list")
        kinds.append((str(name), tuple(_parse_tier(t) for t in tiers_data)))
    return ShapesConfig(scale=scale, kinds=tuple(kinds))


def validate_config(config: GameConfig) -> None:
    """Validate configuration consistency."""
    if config.field.width <= 0 or config.field.height <= 0:
        raise ConfigurationError(
            f"Field size must be positive, got {config.field.width}x{config.field.height}"
        )

    # Spawn range must not be empty
    if 2 * config.spawn.side_margin >= config.field.width:
        raise ConfigurationError(
            f"spawn.side_margin ({config.spawn.side_margin}) leaves no room in a "
            f"field of width {config.field.width}"
        )

    if config.physics.dt <= 0:
        raise ConfigurationError(f"physics.dt must be positive, got {config.physics.dt}")

    if config.physics.substeps < 1:
        raise ConfigurationError(f"physics.substeps must be >= 1, got {config.physics.substeps}")

    if config.physics.density <= 0:
        raise ConfigurationError(f"physics.density must be positive, got {config.physics.density}")

    if config.physics.max_horizontal_speed <= 0:
        raise ConfigurationError(
            f"physics.max_horizontal_speed must be positive, got {config.physics.max_horizontal_speed}"
        )

    if config.control.rest_speed_threshold <= 0:
        raise ConfigurationError(
            f"control.rest_speed_threshold must be positive, got {config.control.rest_speed_threshold}"
        )

    if config.shapes.scale <= 0:
        raise ConfigurationError(f"shapes.scale must be positive, got {config.shapes.scale}")


def load_config(config_path: Optional[str] = None) -> GameConfig:
    """
    Load and validate game configuration from YAML.

    Args:
        config_path: Path to game_config.yaml. If None, uses default location.

    Returns:
        Validated GameConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ConfigurationError: If config validation fails.
    """
    if config_path is None:
        config_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "game_config.yaml"
        )

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f)

    return parse_config(raw)


def parse_config(raw: Dict) -> GameConfig:
    """
    Build a validated GameConfig from an already-parsed YAML mapping.

    Raises:
        ConfigurationError: If a section is missing or inconsistent.
    """
    try:
        field_data = raw["field"]
        field = FieldConfig(
            width=int(field_data["width"]),
            height=int(field_data["height"]),
            wall_thickness=float(field_data.get("wall_thickness", 50.0))
        )

        physics_data = raw["physics"]
        physics = PhysicsConfig(
            gravity_x=float(physics_data.get("gravity_x", 0.0)),
            gravity_y=float(physics_data["gravity_y"]),
            damping=float(physics_data.get("damping", 1.0)),
            dt=float(physics_data["dt"]),
            substeps=int(physics_data.get("substeps", 1)),
            friction=float(physics_data["friction"]),
            elasticity=float(physics_data["elasticity"]),
            density=float(physics_data["density"]),
            spawn_nudge_force=float(physics_data.get("spawn_nudge_force", 0.0)),
            max_horizontal_speed=float(physics_data["max_horizontal_speed"])
        )

        control_data = raw["control"]
        control = ControlConfig(
            rest_speed_threshold=float(control_data["rest_speed_threshold"]),
            exit_margin=float(control_data.get("exit_margin", 50.0)),
            lateral_force=float(control_data["lateral_force"])
        )

        spawn_data = raw["spawn"]
        seed = spawn_data.get("seed")
        spawn = SpawnConfig(
            side_margin=float(spawn_data.get("side_margin", 30.0)),
            spawn_y=float(spawn_data["spawn_y"]),
            seed=int(seed) if seed is not None else None
        )

        shapes = _parse_shapes(raw["shapes"])
    except KeyError as e:
        raise ConfigurationError(f"Missing configuration key: {e}") from e
    except (TypeError, ValueError) as e:
        if isinstance(e, ConfigurationError):
            raise
        raise ConfigurationError(f"Malformed configuration value: {e}") from e

    config = GameConfig(
        field=field,
        physics=physics,
        control=control,
        spawn=spawn,
        shapes=shapes
    )

    validate_config(config)
    return config


# Module-level singleton for convenience
_cached_config: Optional[GameConfig] = None


def get_config() -> GameConfig:
    """Get the cached game configuration, loading if necessary."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reload_config(config_path: Optional[str] = None) -> GameConfig:
    """Reload the configuration (useful for testing)."""
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config
