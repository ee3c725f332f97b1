"""
Tests for the horizontal velocity governor.
"""

import pymunk
import pytest

from shapefall.merge_core.config_loader import load_config
from shapefall.merge_core.game import ShapeGame
from shapefall.merge_core.tier_catalog import ShapeKind
from shapefall.merge_core.velocity_governor import VelocityGovernor


MAX_SPEED = 100.0


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def governor():
    return VelocityGovernor(MAX_SPEED)


@pytest.fixture
def space():
    return pymunk.Space()


def add_body(space, velocity, body_type=pymunk.Body.DYNAMIC, sensor=False):
    if body_type == pymunk.Body.DYNAMIC:
        body = pymunk.Body(1.0, pymunk.moment_for_circle(1.0, 0, 5))
    else:
        body = pymunk.Body(body_type=body_type)
    shape = pymunk.Circle(body, 5)
    shape.sensor = sensor
    space.add(body, shape)
    body.velocity = velocity
    return body


class TestVelocityGovernor:
    """Test clamping rules."""

    def test_clamps_positive(self, governor, space):
        body = add_body(space, (500.0, 42.0))
        governor.apply([body])
        assert body.velocity.x == MAX_SPEED
        assert body.velocity.y == 42.0

    def test_clamps_negative(self, governor, space):
        body = add_body(space, (-500.0, -7.0))
        governor.apply([body])
        assert body.velocity.x == -MAX_SPEED
        assert body.velocity.y == -7.0

    def test_within_range_unchanged(self, governor, space):
        bodies = [add_body(space, (vx, 300.0)) for vx in (-MAX_SPEED, -3.5, 0.0, 99.9, MAX_SPEED)]
        changed = governor.apply(bodies)
        assert changed == 0
        assert [b.velocity.x for b in bodies] == [-MAX_SPEED, -3.5, 0.0, 99.9, MAX_SPEED]
        assert all(b.velocity.y == 300.0 for b in bodies)

    def test_vertical_never_clamped(self, governor, space):
        body = add_body(space, (0.0, 10_000.0))
        governor.apply([body])
        assert body.velocity.y == 10_000.0

    def test_kinematic_body_skipped(self, governor, space):
        body = add_body(space, (500.0, 0.0), body_type=pymunk.Body.KINEMATIC)
        governor.apply([body])
        assert body.velocity.x == 500.0

    def test_sensor_body_skipped(self, governor, space):
        body = add_body(space, (500.0, 0.0), sensor=True)
        governor.apply([body])
        assert body.velocity.x == 500.0

    def test_idempotent(self, governor, space):
        bodies = [add_body(space, (vx, 1.0)) for vx in (-900.0, 20.0, 900.0)]
        governor.apply(bodies)
        first = [tuple(b.velocity) for b in bodies]
        assert governor.apply(bodies) == 0
        assert [tuple(b.velocity) for b in bodies] == first

    def test_order_independent(self, governor, space):
        forward = [add_body(space, (vx, 0.0)) for vx in (-900.0, 20.0, 900.0)]
        backward = [add_body(space, (vx, 0.0)) for vx in (-900.0, 20.0, 900.0)]
        governor.apply(forward)
        governor.apply(reversed(backward))
        assert [b.velocity.x for b in forward] == [b.velocity.x for b in backward]

    def test_rejects_non_positive_limit(self):
        with pytest.raises(ValueError):
            VelocityGovernor(0.0)


class TestGovernorInGame:
    """Test the governor as part of the physics tick."""

    def test_physics_tick_clamps_all_shapes(self, config):
        game = ShapeGame(config=config, seed=3)
        limit = config.physics.max_horizontal_speed
        fast = game.factory.create(ShapeKind.CIRCLE, 0, 200, 100)
        slow = game.factory.create(ShapeKind.ROUNDED_RECT, 0, 500, 100)
        game.physics.set_velocity(fast, (limit * 5, 0.0))
        game.physics.set_velocity(slow, (-10.0, 0.0))

        game.tick_physics()

        vx_fast, _ = game.physics.velocity(fast)
        vx_slow, _ = game.physics.velocity(slow)
        assert vx_fast == pytest.approx(limit)
        assert vx_slow == pytest.approx(-10.0)

    def test_untracked_bodies_are_governed(self, config):
        """Every dynamic body in the space is clamped, not only game shapes."""
        game = ShapeGame(config=config, seed=3)
        limit = config.physics.max_horizontal_speed
        prop = game.physics.create_circle(300, 100, 10.0)
        game.physics.set_velocity(prop, (-limit * 3, 0.0))

        game.tick_physics()

        vx, _ = game.physics.velocity(prop)
        assert vx == pytest.approx(-limit)
