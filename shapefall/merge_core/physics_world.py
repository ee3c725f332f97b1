"""
Physics World
=============

Manages the pymunk Space, static walls, and body creation/removal.

This is the engine collaborator of the merge core: it hands out integer
body handles and reports newly-touching handle pairs for each step.
Coordinates are screen-style: +y points down, the floor sits at
y = field.height.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import pymunk

from shapefall.merge_core.config_loader import GameConfig, get_config


Vec = Tuple[float, float]

# Collision types for pymunk
COLLISION_TYPE_SHAPE = 1
COLLISION_TYPE_WALL = 2


@dataclass
class WorldBody:
    """
    A body owned by the physics world.

    Wraps the pymunk Body and its single collision shape with the display
    color supplied at creation.
    """
    handle: int
    body: pymunk.Body
    shape: pymunk.Shape
    color: Tuple[int, int, int]

    @property
    def position(self) -> Vec:
        return self.body.position.x, self.body.position.y

    @property
    def velocity(self) -> Vec:
        return self.body.velocity.x, self.body.velocity.y

    @property
    def angle(self) -> float:
        return self.body.angle

    def world_vertices(self) -> List[Vec]:
        """Polygon corners in world coordinates (empty for circles)."""
        if not isinstance(self.shape, pymunk.Poly):
            return []
        return [
            (p.x, p.y) for p in
            (self.body.local_to_world(v) for v in self.shape.get_vertices())
        ]


class PhysicsWorld:
    """
    Manages the pymunk physics simulation.

    Handles:
    - Space creation and configuration
    - Static floor and side walls
    - Circle and rounded-polygon body creation and removal
    - Physics stepping
    - Per-step collision pair feed
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize physics world.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config

        # Create space with gravity
        self._space = pymunk.Space()
        self._space.gravity = config.physics.gravity
        self._space.damping = config.physics.damping

        # Track bodies
        self._bodies: Dict[int, WorldBody] = {}
        self._handles_by_body: Dict[pymunk.Body, int] = {}
        self._next_handle = 0

        # Newly touching pairs reported during the current step
        self._pending_pairs: List[Tuple[int, int]] = []

        # Create walls
        self._wall_shapes: List[pymunk.Segment] = []
        self._create_walls()

        self._space.on_collision(begin=self._on_collision_begin)

    def _create_walls(self) -> None:
        """Create static floor and side walls just outside the field."""
        field = self._config.field
        half = field.wall_thickness / 2.0

        # Static body for walls
        static_body = self._space.static_body

        # Walls reach above the visible top so shapes spawned there stay inside
        top = -float(field.height)
        bottom = float(field.height) + field.wall_thickness

        floor = pymunk.Segment(
            static_body,
            (-field.wall_thickness, field.height + half),
            (field.width + field.wall_thickness, field.height + half),
            half
        )
        left = pymunk.Segment(static_body, (-half, top), (-half, bottom), half)
        right = pymunk.Segment(
            static_body,
            (field.width + half, top),
            (field.width + half, bottom),
            half
        )

        for wall in (floor, left, right):
            wall.friction = self._config.physics.friction
            wall.elasticity = self._config.physics.elasticity
            wall.collision_type = COLLISION_TYPE_WALL
            self._wall_shapes.append(wall)

        self._space.add(*self._wall_shapes)

    @property
    def space(self) -> pymunk.Space:
        """The pymunk Space instance."""
        return self._space

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def body_count(self) -> int:
        """Number of handled bodies currently in the world."""
        return len(self._bodies)

    def _on_collision_begin(
        self,
        arbiter: pymunk.Arbiter,
        space: pymunk.Space,
        data: any
    ) -> None:
        """
        Pymunk 7.x `begin` callback: two shapes started touching.

        Records the pair of handles; walls and foreign bodies have no
        handle and are not reported.
        """
        shape_a, shape_b = arbiter.shapes
        handle_a = self._handles_by_body.get(shape_a.body)
        handle_b = self._handles_by_body.get(shape_b.body)
        if handle_a is None or handle_b is None:
            return
        self._pending_pairs.append((handle_a, handle_b))

    def _add(
        self,
        body: pymunk.Body,
        shape: pymunk.Shape,
        friction: Optional[float],
        elasticity: Optional[float],
        color: Tuple[int, int, int]
    ) -> int:
        shape.friction = self._config.physics.friction if friction is None else friction
        shape.elasticity = self._config.physics.elasticity if elasticity is None else elasticity
        shape.collision_type = COLLISION_TYPE_SHAPE

        handle = self._next_handle
        self._next_handle += 1

        self._space.add(body, shape)
        self._bodies[handle] = WorldBody(handle=handle, body=body, shape=shape, color=color)
        self._handles_by_body[body] = handle
        return handle

    def create_circle(
        self,
        x: float,
        y: float,
        radius: float,
        density: Optional[float] = None,
        friction: Optional[float] = None,
        elasticity: Optional[float] = None,
        color: Tuple[int, int, int] = (128, 128, 128)
    ) -> int:
        """
        Create a dynamic circle body.

        Returns:
            The new body handle.
        """
        if density is None:
            density = self._config.physics.density
        mass = density * pymunk.area_for_circle(0, radius)
        moment = pymunk.moment_for_circle(mass, 0, radius)

        body = pymunk.Body(mass, moment)
        body.position = (x, y)
        shape = pymunk.Circle(body, radius)
        return self._add(body, shape, friction, elasticity, color)

    def create_rounded_polygon(
        self,
        x: float,
        y: float,
        vertices: Sequence[Vec],
        corner_radius: float = 0.0,
        density: Optional[float] = None,
        friction: Optional[float] = None,
        elasticity: Optional[float] = None,
        color: Tuple[int, int, int] = (128, 128, 128)
    ) -> int:
        """
        Create a dynamic convex polygon body.

        Args:
            vertices: Local-space corners around the centroid.
            corner_radius: Rounding radius added around the hull.

        Returns:
            The new body handle.
        """
        if density is None:
            density = self._config.physics.density
        vertices = list(vertices)
        mass = density * pymunk.area_for_poly(vertices, corner_radius)
        moment = pymunk.moment_for_poly(mass, vertices, (0, 0), corner_radius)

        body = pymunk.Body(mass, moment)
        body.position = (x, y)
        shape = pymunk.Poly(body, vertices, radius=corner_radius)
        return self._add(body, shape, friction, elasticity, color)

    def remove(self, handle: int) -> bool:
        """
        Remove a body from the world.

        Returns:
            True if the handle existed.
        """
        entry = self._bodies.pop(handle, None)
        if entry is None:
            return False
        self._handles_by_body.pop(entry.body, None)
        self._space.remove(entry.body, entry.shape)
        return True

    def exists(self, handle: Optional[int]) -> bool:
        return handle is not None and handle in self._bodies

    def get(self, handle: int) -> Optional[WorldBody]:
        return self._bodies.get(handle)

    def bodies(self) -> List[WorldBody]:
        return list(self._bodies.values())

    def position(self, handle: int) -> Vec:
        return self._bodies[handle].position

    def velocity(self, handle: int) -> Vec:
        return self._bodies[handle].velocity

    def set_velocity(self, handle: int, velocity: Vec) -> None:
        self._bodies[handle].body.velocity = velocity

    def set_position(self, handle: int, position: Vec) -> None:
        body = self._bodies[handle].body
        body.position = position
        self._space.reindex_shapes_for_body(body)

    def apply_force(self, handle: int, force: Vec, point: Optional[Vec] = None) -> None:
        """
        Apply a force for the next step.

        Args:
            handle: Body handle.
            force: Force vector (fx, fy).
            point: Application point (world coords). Uses center if None.
        """
        body = self._bodies[handle].body
        if point is None:
            point = body.position
        body.apply_force_at_world_point(force, point)

    def dynamic_bodies(self) -> List[pymunk.Body]:
        """All dynamic, non-sensor bodies in the space, handled or not."""
        return [
            body for body in self._space.bodies
            if body.body_type == pymunk.Body.DYNAMIC
            and not (body.shapes and all(s.sensor for s in body.shapes))
        ]

    def step(self, dt: Optional[float] = None) -> None:
        """
        Advance physics simulation by one timestep.

        Args:
            dt: Timestep duration. Uses config default if None.
        """
        if dt is None:
            dt = self._config.physics.dt

        for _ in range(self._config.physics.substeps):
            self._space.step(dt / self._config.physics.substeps)

    def drain_collision_pairs(self) -> List[Tuple[int, int]]:
        """Return and clear the pairs that began touching since the last drain."""
        pairs = self._pending_pairs
        self._pending_pairs = []
        return pairs

    def clear(self) -> None:
        """Remove all handled bodies from the world."""
        for handle in list(self._bodies.keys()):
            self.remove(handle)
        self._pending_pairs.clear()
        self._next_handle = 0
