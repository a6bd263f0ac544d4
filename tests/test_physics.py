#!/usr/bin/env python3
"""
Test Suite for the arena physics module.

Tests cover:
1. Vector3D operations (add, subtract, dot, cross, magnitude, normalization)
2. Arena bounds (clamping, surfaces, normals)
3. Motion integration and boundary resolution (floor stop, wall bounce, impact)
4. Repair of non-finite kinematics
"""

import math
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from bugfights.physics import (
    ArenaBounds,
    Surface,
    Vector3D,
    clamp,
    integrate_motion,
    lerp,
    resolve_bounds,
    sanitize_kinematics,
)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def bounds() -> ArenaBounds:
    return ArenaBounds(900.0, 400.0, 600.0)


# =============================================================================
# VECTOR3D TESTS
# =============================================================================

class TestVector3D:
    """Tests for Vector3D operations."""

    def test_add_sub(self):
        a = Vector3D(1, 2, 3)
        b = Vector3D(4, 5, 6)
        assert a + b == Vector3D(5, 7, 9)
        assert b - a == Vector3D(3, 3, 3)

    def test_scalar_multiply(self):
        v = Vector3D(1, -2, 3)
        assert v * 2 == Vector3D(2, -4, 6)
        assert 2 * v == Vector3D(2, -4, 6)

    def test_divide_by_zero_raises(self):
        with pytest.raises(ValueError):
            Vector3D(1, 1, 1) / 0

    def test_dot_and_cross(self):
        x = Vector3D(1, 0, 0)
        y = Vector3D(0, 1, 0)
        assert x.dot(y) == 0
        assert x.cross(y) == Vector3D(0, 0, 1)

    def test_magnitude_is_3d(self):
        assert Vector3D(2, 3, 6).magnitude == pytest.approx(7.0)
        assert Vector3D(2, 3, 6).magnitude_squared == pytest.approx(49.0)

    def test_normalized(self):
        n = Vector3D(0, 3, 4).normalized()
        assert n.magnitude == pytest.approx(1.0)
        assert n == Vector3D(0, 0.6, 0.8)

    def test_normalized_zero_and_non_finite(self):
        assert Vector3D(0, 0, 0).normalized() == Vector3D.zero()
        assert Vector3D(math.inf, 0, 0).normalized() == Vector3D.zero()

    def test_distance_includes_height(self):
        a = Vector3D(0, 0, 0)
        b = Vector3D(0, 30, 40)
        assert a.distance_to(b) == pytest.approx(50.0)

    def test_horizontal_drops_height(self):
        assert Vector3D(1, 5, 2).horizontal() == Vector3D(1, 0, 2)

    def test_limited(self):
        v = Vector3D(3, 0, 4).limited(2.5)
        assert v.magnitude == pytest.approx(2.5)
        short = Vector3D(1, 0, 0)
        assert short.limited(5.0) == short

    def test_to_list_rounds(self):
        assert Vector3D(1.23456, 2.0, -0.0004).to_list() == [1.235, 2.0, -0.0]

    def test_helpers(self):
        assert clamp(5, 0, 3) == 3
        assert clamp(-1, 0, 3) == 0
        assert lerp(0.15, 0.70, 0.5) == pytest.approx(0.425)


# =============================================================================
# ARENA BOUNDS TESTS
# =============================================================================

class TestArenaBounds:
    """Tests for arena geometry."""

    def test_center_on_floor(self, bounds):
        assert bounds.center == Vector3D(450, 0, 300)

    def test_clamp_point_with_margin(self, bounds):
        p = bounds.clamp_point(Vector3D(-50, 1000, 700), margin=10)
        assert p == Vector3D(10, 390, 590)

    def test_contains(self, bounds):
        assert bounds.contains(Vector3D(1, 1, 1))
        assert not bounds.contains(Vector3D(-1, 1, 1))

    @pytest.mark.parametrize("surface,expected", [
        (Surface.FLOOR, 50.0),
        (Surface.CEILING, 350.0),
        (Surface.WALL_W, 100.0),
        (Surface.WALL_E, 800.0),
        (Surface.WALL_S, 200.0),
        (Surface.WALL_N, 400.0),
    ])
    def test_distance_to_surface(self, bounds, surface, expected):
        p = Vector3D(100, 50, 200)
        assert bounds.distance_to_surface(p, surface) == pytest.approx(expected)

    def test_nearest_wall(self, bounds):
        assert bounds.nearest_wall(Vector3D(20, 0, 300)) == Surface.WALL_W
        assert bounds.nearest_wall(Vector3D(450, 0, 590)) == Surface.WALL_N
        assert bounds.wall_clearance(Vector3D(450, 0, 590)) == pytest.approx(10.0)

    @pytest.mark.parametrize("surface", list(Surface))
    def test_normals_point_inward(self, bounds, surface):
        normal = bounds.surface_normal(surface)
        if surface == Surface.NONE:
            assert normal == Vector3D.zero()
            return
        center = Vector3D(450, 200, 300)
        # Moving along the normal from the surface increases distance to it
        moved = center + normal * 10
        assert bounds.distance_to_surface(moved, surface) > bounds.distance_to_surface(center, surface)

    def test_walls_are_walls(self):
        assert Surface.WALL_E.is_wall
        assert not Surface.FLOOR.is_wall
        assert not Surface.CEILING.is_wall


# =============================================================================
# INTEGRATION TESTS
# =============================================================================

class TestIntegration:
    """Tests for motion integration and boundary contacts."""

    def test_integrate_applies_gravity_and_drag(self):
        pos, vel = integrate_motion(Vector3D(0, 10, 0), Vector3D(1, 0, 0),
                                    Vector3D(0, 0, 0), gravity=0.6, drag=0.5)
        assert pos == Vector3D(1, 9.4, 0)
        assert vel == Vector3D(0.5, -0.3, 0)

    def test_floor_stops_fall(self, bounds):
        contact = resolve_bounds(Vector3D(100, -5, 100), Vector3D(1, -3, 0), 10, bounds)
        assert contact.position.y == pytest.approx(10)
        assert contact.velocity.y == 0
        assert contact.touched(Surface.FLOOR)
        assert not contact.touched_wall

    def test_wall_bounce_reports_impact(self, bounds):
        contact = resolve_bounds(Vector3D(895, 50, 300), Vector3D(6, 0, 0), 10, bounds, bounce=0.3)
        assert contact.position.x == pytest.approx(890)
        assert contact.velocity.x == pytest.approx(-1.8)
        assert contact.impact_speed == pytest.approx(6)
        assert contact.touched(Surface.WALL_E)
        assert contact.touched_wall

    def test_ceiling_reflects(self, bounds):
        contact = resolve_bounds(Vector3D(100, 399, 100), Vector3D(0, 5, 0), 10, bounds, bounce=0.5)
        assert contact.position.y == pytest.approx(390)
        assert contact.velocity.y == pytest.approx(-2.5)
        assert contact.touched(Surface.CEILING)

    def test_resolved_positions_always_inside(self, bounds):
        rng = np.random.default_rng(7)
        for x, y, z in rng.uniform(-500, 1500, size=(200, 3)):
            contact = resolve_bounds(Vector3D(x, y, z), Vector3D(1, 1, 1), 15, bounds)
            assert bounds.contains(contact.position)


# =============================================================================
# SANITIZE TESTS
# =============================================================================

class TestSanitize:
    """Tests for non-finite kinematics repair."""

    def test_finite_passthrough(self, bounds):
        pos, vel, repaired = sanitize_kinematics(Vector3D(1, 2, 3), Vector3D(1, 0, 0),
                                                 Vector3D(0, 0, 0), bounds)
        assert not repaired
        assert pos == Vector3D(1, 2, 3)
        assert vel == Vector3D(1, 0, 0)

    def test_nan_position_snaps_to_last_valid(self, bounds):
        last = Vector3D(100, 20, 100)
        pos, vel, repaired = sanitize_kinematics(Vector3D(math.nan, 20, 100), Vector3D(2, 1, 3),
                                                 last, bounds, "test")
        assert repaired
        assert pos == last
        assert vel == Vector3D(0, 1, 3)

    def test_infinite_velocity_component_zeroed(self, bounds):
        pos, vel, repaired = sanitize_kinematics(Vector3D(10, 10, 10), Vector3D(1, math.inf, -math.inf),
                                                 Vector3D(0, 0, 0), bounds)
        assert repaired
        assert pos == Vector3D(10, 10, 10)
        assert vel == Vector3D(1, 0, 0)

    def test_last_valid_clamped_into_arena(self, bounds):
        pos, _, _ = sanitize_kinematics(Vector3D(math.nan, 0, 0), Vector3D(),
                                        Vector3D(-10, 500, 50), bounds)
        assert bounds.contains(pos)
