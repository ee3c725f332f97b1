"""
Tests for fusion rules and collision batch handling.
"""

import logging

import pytest

from shapefall.merge_core.config_loader import load_config
from shapefall.merge_core.fusion_resolver import FusionOutcome, FusionResolver
from shapefall.merge_core.game import ShapeGame
from shapefall.merge_core.physics_world import PhysicsWorld
from shapefall.merge_core.shape_factory import ShapeFactory
from shapefall.merge_core.shape_registry import ShapeRegistry, ShapeTag
from shapefall.merge_core.tier_catalog import ShapeKind, TierCatalog


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def catalog(config):
    return TierCatalog.from_config(config)


@pytest.fixture
def world(config):
    return PhysicsWorld(config)


@pytest.fixture
def registry():
    return ShapeRegistry()


@pytest.fixture
def factory(world, catalog, registry, config):
    return ShapeFactory(world, catalog, registry, config)


@pytest.fixture
def events():
    return []


@pytest.fixture
def resolver(world, registry, catalog, factory, events):
    resolver = FusionResolver(world, registry, catalog, factory)
    resolver.add_listener(events.append)
    return resolver


class TestFusionRules:
    """Test fusion of explicit collision batches."""

    def test_same_tier_circles_fuse(self, world, registry, factory, resolver, events):
        """Scenario: two tier-0 circles collide and become one tier-1 circle."""
        a = factory.create(ShapeKind.CIRCLE, 0, 100, 200)
        b = factory.create(ShapeKind.CIRCLE, 0, 300, 200)
        assert len(registry) == 2

        results = resolver.resolve([(a, b)])

        assert len(results) == 1
        event = results[0]
        assert event.outcome is FusionOutcome.FUSE
        assert event.removed_handles == (a, b)
        assert len(registry) == 1
        assert not world.exists(a)
        assert not world.exists(b)

        created = event.created_handle
        assert registry.lookup(created) == ShapeTag(ShapeKind.CIRCLE, 1)
        x, y = world.position(created)
        assert x == pytest.approx(100)
        assert y == pytest.approx(200)

        # Signal fired once
        assert events == results

    @pytest.mark.parametrize("kind", list(ShapeKind))
    def test_fusion_advances_one_tier(self, kind, catalog, registry, factory, resolver):
        """For every kind and tier below max, two instances make one of the next tier."""
        for tier_index in range(catalog.max_tier_index):
            a = factory.create(kind, tier_index, 200, 300)
            b = factory.create(kind, tier_index, 500, 300)
            before = len(registry)

            event = resolver.resolve([(a, b)])[0]

            assert len(registry) == before - 1
            assert registry.lookup(event.created_handle) == ShapeTag(kind, tier_index + 1)

    def test_max_tier_pair_is_destroyed(self, world, catalog, registry, factory, resolver, events):
        """Scenario: two max-tier circles collide and vanish."""
        top = catalog.max_tier_index
        a = factory.create(ShapeKind.CIRCLE, top, 200, 300)
        b = factory.create(ShapeKind.CIRCLE, top, 500, 300)

        results = resolver.resolve([(a, b)])

        assert len(registry) == 0
        assert world.body_count == 0
        assert len(results) == 1
        assert results[0].outcome is FusionOutcome.MAX_SIZE
        assert results[0].created_handle is None
        assert [e.outcome for e in events] == [FusionOutcome.MAX_SIZE]

    def test_different_kind_no_fusion(self, world, registry, factory, resolver, events):
        a = factory.create(ShapeKind.CIRCLE, 0, 100, 200)
        b = factory.create(ShapeKind.ROUNDED_RECT, 0, 300, 200)

        assert resolver.resolve([(a, b)]) == []
        assert world.exists(a) and world.exists(b)
        assert len(registry) == 2
        assert events == []

    def test_different_tier_no_fusion(self, world, registry, factory, resolver, events):
        a = factory.create(ShapeKind.CIRCLE, 0, 100, 200)
        b = factory.create(ShapeKind.CIRCLE, 1, 300, 200)

        assert resolver.resolve([(a, b)]) == []
        assert world.exists(a) and world.exists(b)
        assert events == []

    def test_untagged_pair_is_ordinary_collision(self, world, registry, factory, resolver):
        """Bodies without game metadata are ignored."""
        a = factory.create(ShapeKind.CIRCLE, 0, 100, 200)
        prop = world.create_circle(300, 200, 16.0)

        assert resolver.resolve([(a, prop), (prop, a)]) == []
        assert world.exists(a) and world.exists(prop)
        assert registry.lookup(prop) is None


class TestFusionBatch:
    """Test destroyed-set handling within one batch."""

    def test_chain_pair_fuses_once(self, world, registry, factory, resolver, events):
        """Scenario: (A,B) then (B,C) in one batch yields exactly one fusion."""
        a = factory.create(ShapeKind.CIRCLE, 0, 100, 200)
        b = factory.create(ShapeKind.CIRCLE, 0, 300, 200)
        c = factory.create(ShapeKind.CIRCLE, 0, 500, 200)

        results = resolver.resolve([(a, b), (b, c)])

        assert len(results) == 1
        assert results[0].removed_handles == (a, b)
        assert not world.exists(b)
        assert world.exists(c)
        assert registry.lookup(c) == ShapeTag(ShapeKind.CIRCLE, 0)
        assert len(registry) == 2
        assert len(events) == 1

    def test_chain_pair_skipped_as_already_fused(self, factory, resolver, caplog):
        a = factory.create(ShapeKind.CIRCLE, 0, 100, 200)
        b = factory.create(ShapeKind.CIRCLE, 0, 300, 200)
        c = factory.create(ShapeKind.CIRCLE, 0, 500, 200)

        with caplog.at_level(logging.DEBUG, logger="shapefall.merge_core.fusion_resolver"):
            resolver.resolve([(a, b), (b, c)])

        skipped = [r.getMessage() for r in caplog.records if "already fused" in r.getMessage()]
        assert skipped == [f"Skipping pair ({b}, {c}): already fused this step"]

    def test_duplicate_pair_fuses_once(self, registry, factory, resolver):
        a = factory.create(ShapeKind.ROUNDED_RECT, 1, 100, 200)
        b = factory.create(ShapeKind.ROUNDED_RECT, 1, 400, 200)

        results = resolver.resolve([(a, b), (b, a), (a, b)])

        assert len(results) == 1
        assert len(registry) == 1

    def test_independent_pairs_both_fuse(self, registry, factory, resolver):
        a = factory.create(ShapeKind.CIRCLE, 0, 100, 200)
        b = factory.create(ShapeKind.CIRCLE, 0, 200, 200)
        c = factory.create(ShapeKind.ROUNDED_TRIANGLE, 0, 400, 200)
        d = factory.create(ShapeKind.ROUNDED_TRIANGLE, 0, 600, 200)

        results = resolver.resolve([(a, b), (c, d)])

        assert [e.kind for e in results] == [ShapeKind.CIRCLE, ShapeKind.ROUNDED_TRIANGLE]
        assert len(registry) == 2

    def test_destroyed_set_is_per_batch(self, registry, factory, resolver):
        """A successor can fuse again in the next batch."""
        a = factory.create(ShapeKind.CIRCLE, 0, 100, 200)
        b = factory.create(ShapeKind.CIRCLE, 0, 200, 200)
        c = factory.create(ShapeKind.CIRCLE, 1, 400, 200)

        first = resolver.resolve([(a, b)])[0]
        second = resolver.resolve([(first.created_handle, c)])

        assert len(second) == 1
        assert registry.lookup(second[0].created_handle) == ShapeTag(ShapeKind.CIRCLE, 2)

    def test_empty_batch(self, resolver):
        assert resolver.resolve([]) == []


class TestFusionInSimulation:
    """Test fusion driven by the physics collision feed."""

    def test_overlapping_circles_fuse(self, config):
        """Two touching tier-0 circles fuse during physics ticks."""
        game = ShapeGame(config=config, seed=1)
        radius = game.catalog.tier(ShapeKind.CIRCLE, 0).size
        floor = config.field.height

        game.factory.create(ShapeKind.CIRCLE, 0, 100, floor - radius)
        game.factory.create(ShapeKind.CIRCLE, 0, 100, floor - 3 * radius + 1)

        fused = []
        for _ in range(60):
            fused.extend(game.tick_physics())
            if fused:
                break

        assert len(fused) == 1
        assert game.shape_count == 1
        (_, tag, _), = game.shapes()
        assert tag == ShapeTag(ShapeKind.CIRCLE, 1)

    def test_different_kinds_do_not_fuse(self, config):
        game = ShapeGame(config=config, seed=1)
        floor = config.field.height

        game.factory.create(ShapeKind.CIRCLE, 0, 100, floor - 20)
        game.factory.create(ShapeKind.ROUNDED_RECT, 0, 100, floor - 60)

        for _ in range(120):
            assert game.tick_physics() == []

        assert game.shape_count == 2
