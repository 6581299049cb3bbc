#!/usr/bin/env python3
"""
Oriented-rectangle intersection and gap tests.
"""

from __future__ import annotations

import math
import unittest

import numpy as np

from blocker.geometry import CollisionGeometry, corners, in_vicinity, intersects


def _box(x: float, y: float, theta_deg: float = 0.0, size: float = 2.0) -> CollisionGeometry:
    return CollisionGeometry(x=x, y=y, theta=math.radians(theta_deg), size_x=size, size_y=size)


class IntersectionTests(unittest.TestCase):
    def test_aabb_one_metre_apart(self) -> None:
        hit, gap = intersects(_box(1.0, 0.0), _box(4.0, 0.0))
        self.assertFalse(hit)
        self.assertAlmostEqual(gap, 1.0, delta=1e-3)

    def test_obb_rotated_45_not_intersecting(self) -> None:
        hit, gap = intersects(_box(1.0, 0.0), _box(4.0, 0.0, theta_deg=45.0))
        self.assertFalse(hit)
        self.assertAlmostEqual(gap, 0.414, delta=1e-3)

    def test_overlap_along_x(self) -> None:
        hit, _ = intersects(_box(1.0, 0.0), _box(2.5, 0.0))
        self.assertTrue(hit)

    def test_overlap_along_y(self) -> None:
        hit, _ = intersects(_box(1.0, 0.0), _box(1.0, 1.5))
        self.assertTrue(hit)

    def test_overlap_along_x_and_y(self) -> None:
        hit, _ = intersects(_box(1.0, 0.0), _box(2.5, 0.5))
        self.assertTrue(hit)

    def test_touching_counts_as_intersecting(self) -> None:
        hit, gap = intersects(_box(1.0, 0.0), _box(3.0, 0.0))
        self.assertTrue(hit)
        self.assertEqual(gap, 0.0)

    def test_touching_with_identical_rotation(self) -> None:
        for theta_deg in (0.0, 17.0, 45.0, 90.0, 133.0):
            a = CollisionGeometry(0.0, 0.0, math.radians(theta_deg), 2.0, 1.0)
            b = CollisionGeometry(2.0, 0.0, math.radians(theta_deg), 2.0, 1.0)
            c = CollisionGeometry(0.0, 1.0, math.radians(theta_deg), 2.0, 1.0)
            self.assertTrue(intersects(a, b)[0], msg=f"x-touch theta={theta_deg}")
            self.assertTrue(intersects(a, c)[0], msg=f"y-touch theta={theta_deg}")

    def test_rotated_overlap(self) -> None:
        hit, _ = intersects(_box(0.0, 0.0, theta_deg=45.0), _box(1.414, 1.0))
        self.assertTrue(hit)

    def test_symmetric(self) -> None:
        a, b = _box(1.0, 0.0), _box(4.0, 0.0, theta_deg=45.0)
        self.assertEqual(intersects(a, b), intersects(b, a))

    def test_zero_extent_is_valid(self) -> None:
        point = CollisionGeometry(0.0, 0.0)
        hit, gap = intersects(point, CollisionGeometry(0.0, 0.0))
        self.assertTrue(hit)
        hit, gap = intersects(point, CollisionGeometry(1.0, 0.0))
        self.assertFalse(hit)
        self.assertAlmostEqual(gap, 1.0)
        self.assertFalse(math.isnan(gap))

    def test_in_vicinity(self) -> None:
        self.assertTrue(in_vicinity(_box(1.0, 0.0), _box(3.2, 0.0), threshold=0.25))
        self.assertFalse(in_vicinity(_box(1.0, 0.0), _box(4.0, 0.0), threshold=0.25))
        self.assertTrue(in_vicinity(_box(1.0, 0.0), _box(2.0, 0.0), threshold=0.0))


class CenteredGeometryTests(unittest.TestCase):
    def test_centered_places_rotated_rectangle_by_centre(self) -> None:
        g = CollisionGeometry.centered(0.0, 5.0, theta=math.pi / 2, size_x=10.0, size_y=1.0)
        cx, cy = g.center
        self.assertAlmostEqual(cx, 0.0)
        self.assertAlmostEqual(cy, 5.0)
        np.testing.assert_allclose(corners(g).mean(axis=0), [0.0, 5.0], atol=1e-9)

    def test_vertical_lane_hits_box_on_it(self) -> None:
        lane = CollisionGeometry.centered(0.0, 5.0, theta=math.pi / 2, size_x=10.0, size_y=1.0)
        on_lane = CollisionGeometry.centered(0.0, 8.0, size_x=0.4, size_y=0.4)
        beside = CollisionGeometry.centered(2.0, 8.0, size_x=0.4, size_y=0.4)
        self.assertTrue(intersects(lane, on_lane)[0])
        hit, gap = intersects(lane, beside)
        self.assertFalse(hit)
        self.assertAlmostEqual(gap, 1.3, delta=1e-6)

    def test_zero_rotation_is_plain_translation(self) -> None:
        g = CollisionGeometry.centered(3.0, -2.0, size_x=1.0, size_y=1.0)
        self.assertEqual((g.x, g.y), (3.0, -2.0))
        self.assertEqual(g.as_dict()["center"], [3.0, -2.0])


if __name__ == "__main__":
    unittest.main()
