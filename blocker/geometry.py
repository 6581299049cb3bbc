#!/usr/bin/env python3
"""
blocker/geometry.py
===================
Stateless 2-D oriented-rectangle helpers used by :mod:`blocker.lanes`,
:mod:`blocker.obstacles` and :mod:`blocker.association`.

:func:`intersects` is a Separating Axis Theorem test over the face normals
of both rectangles.  Each rectangle is checked in its own frame: the other
rectangle's corners are brought into that frame and compared against the
reference extents, which is the same as projecting onto the reference's
two face normals.

A geometry's pose is the homogeneous transform ``Rot(theta) · Trans(x, y)``,
i.e. the rotation is composed after the translation.  Producers that know
a world-frame centre build geometries with :meth:`CollisionGeometry.centered`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

DEFAULT_EPSILON: float = 1e-6

# Unit-square corners in homogeneous form; scaled by half extents per box.
_UNIT_CORNERS = np.array(
    [
        [-1.0, -1.0, 1.0],
        [1.0, -1.0, 1.0],
        [1.0, 1.0, 1.0],
        [-1.0, 1.0, 1.0],
    ]
)


@dataclass(frozen=True)
class CollisionGeometry:
    """Planar rectangle shared by obstacles and lanes.

    Parameters
    ----------
    x, y : float
        Translation of the pose ``Rot(theta) · Trans(x, y)``.  Equal to the
        centre when ``theta`` is zero; use :meth:`centered` to place a
        rotated rectangle by its world-frame centre.
    theta : float
        Rotation in radians.
    size_x, size_y : float
        Full extents along the rectangle's own x and y axes.  Zero is a
        valid (degenerate) extent.
    """

    x: float
    y: float
    theta: float = 0.0
    size_x: float = 0.0
    size_y: float = 0.0

    @classmethod
    def centered(
        cls,
        cx: float,
        cy: float,
        theta: float = 0.0,
        size_x: float = 0.0,
        size_y: float = 0.0,
    ) -> "CollisionGeometry":
        """Geometry whose world-frame centre is ``(cx, cy)``.

        The pose applies the translation before the rotation, so the stored
        ``(x, y)`` is the centre rotated back by ``-theta``.
        """
        c = math.cos(theta)
        s = math.sin(theta)
        return cls(
            x=c * cx + s * cy,
            y=-s * cx + c * cy,
            theta=theta,
            size_x=size_x,
            size_y=size_y,
        )

    @property
    def center(self) -> Tuple[float, float]:
        """World-frame centre, the image of the local origin under the pose."""
        c = math.cos(self.theta)
        s = math.sin(self.theta)
        return (c * self.x - s * self.y, s * self.x + c * self.y)

    @property
    def half_extents(self) -> Tuple[float, float]:
        return (abs(self.size_x) * 0.5, abs(self.size_y) * 0.5)

    def as_dict(self) -> dict:
        cx, cy = self.center
        return {
            "x": self.x,
            "y": self.y,
            "theta": self.theta,
            "size_x": self.size_x,
            "size_y": self.size_y,
            "center": [cx, cy],
        }


# ── pose helpers ─────────────────────────────────────────────────────────────

def pose_matrix(geometry: CollisionGeometry) -> np.ndarray:
    """3x3 homogeneous pose ``Rot(theta) · Trans(x, y)``."""
    c = math.cos(geometry.theta)
    s = math.sin(geometry.theta)
    rotation = np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])
    translation = np.array(
        [[1.0, 0.0, geometry.x], [0.0, 1.0, geometry.y], [0.0, 0.0, 1.0]]
    )
    return rotation @ translation


def inverse_pose(matrix: np.ndarray) -> np.ndarray:
    """Closed-form inverse of a rigid 3x3 homogeneous transform."""
    rot_t = matrix[:2, :2].T
    inv = np.eye(3)
    inv[:2, :2] = rot_t
    inv[:2, 2] = -rot_t @ matrix[:2, 2]
    return inv


def _local_corners(geometry: CollisionGeometry) -> np.ndarray:
    hx, hy = geometry.half_extents
    return _UNIT_CORNERS * np.array([hx, hy, 1.0])


def corners(geometry: CollisionGeometry) -> np.ndarray:
    """World-frame corners of *geometry* as a ``(4, 2)`` array."""
    world = (pose_matrix(geometry) @ _local_corners(geometry).T).T
    return world[:, :2]


# ── separating axis test ─────────────────────────────────────────────────────

def _separations(
    reference: CollisionGeometry, other: CollisionGeometry,
) -> List[float]:
    """Interval gaps of *other* against *reference* on reference's two axes.

    A positive value is a gap, zero is touching, negative is overlap.
    """
    to_reference = inverse_pose(pose_matrix(reference)) @ pose_matrix(other)
    pts = (to_reference @ _local_corners(other).T).T[:, :2]
    lo = pts.min(axis=0)
    hi = pts.max(axis=0)
    hx, hy = reference.half_extents
    gaps: List[float] = []
    for axis, half in ((0, hx), (1, hy)):
        gaps.append(float(max(lo[axis] - half, -half - hi[axis])))
    return gaps


def intersects(
    a: CollisionGeometry,
    b: CollisionGeometry,
    epsilon: float = DEFAULT_EPSILON,
) -> Tuple[bool, float]:
    """Test two oriented rectangles for intersection.

    Parameters
    ----------
    a, b : CollisionGeometry
        The rectangles to compare.
    epsilon : float
        Tolerance on the interval comparison.  A gap no larger than this
        counts as touching, and touching counts as intersecting.

    Returns
    -------
    (bool, float)
        ``(True, 0.0)`` when no axis separates the rectangles; otherwise
        ``(False, gap)`` with the smallest positive gap over all tested
        axes as an approximate separation distance.
    """
    gaps = _separations(a, b) + _separations(b, a)
    positive = [g for g in gaps if g > epsilon]
    if not positive:
        return True, 0.0
    return False, min(positive)


def in_vicinity(
    a: CollisionGeometry,
    b: CollisionGeometry,
    threshold: float,
    epsilon: float = DEFAULT_EPSILON,
) -> bool:
    """True when *a* and *b* intersect or are less than *threshold* apart."""
    hit, gap = intersects(a, b, epsilon)
    return hit or gap < threshold
