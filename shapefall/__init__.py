"""
Shapefall Package
=================

Game logic for a falling-shape merge game built on pymunk:

- Shape kinds and size tiers
- Fusion of colliding same-kind, same-tier shapes
- Active-shape spawn, control and settle detection
- Horizontal speed governing

All tunable parameters are in game_config.yaml.
"""
