"""
blocker/transforms.py
=====================
Frame-transform lookup used during obstacle ingestion.

The real transform tree lives outside this package.  :class:`StaticTransformBuffer`
is the in-memory stand-in: transforms are registered with
:meth:`~StaticTransformBuffer.set_transform` and looked up with a bounded
wait, raising :class:`TransformTimeout` when nothing arrives in time.
Any object with the same ``lookup`` signature can be passed to
:class:`~blocker.engine.LaneBlocker` instead.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Tuple

from blocker.geometry import CollisionGeometry

if TYPE_CHECKING:
    from blocker.obstacles import BoundingBox3D


class TransformTimeout(Exception):
    """No transform between the two frames became available in time."""


@dataclass(frozen=True)
class RigidTransform:
    """Planar rigid transform (yaw about z) with a height offset."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    yaw: float = 0.0

    def apply_point(self, px: float, py: float) -> Tuple[float, float]:
        c = math.cos(self.yaw)
        s = math.sin(self.yaw)
        return (self.x + c * px - s * py, self.y + s * px + c * py)

    def apply(self, bbox: "BoundingBox3D") -> CollisionGeometry:
        """Project *bbox* onto the ground plane of the target frame."""
        x, y = self.apply_point(bbox.center.x, bbox.center.y)
        return CollisionGeometry.centered(
            x,
            y,
            theta=self.yaw + bbox.center.yaw,
            size_x=bbox.size_x,
            size_y=bbox.size_y,
        )

    def inverse(self) -> "RigidTransform":
        c = math.cos(self.yaw)
        s = math.sin(self.yaw)
        return RigidTransform(
            x=-(c * self.x + s * self.y),
            y=-(-s * self.x + c * self.y),
            z=-self.z,
            yaw=-self.yaw,
        )


IDENTITY = RigidTransform()


class StaticTransformBuffer:
    """In-memory transform tree of direct ``source → target`` edges.

    Inverse edges are answered as well, so registering ``laser → map``
    also serves ``map → laser``.  Transforms are time-invariant; the stamp
    passed to :meth:`lookup` is accepted for interface compatibility.
    """

    def __init__(self) -> None:
        self._edges: Dict[Tuple[str, str], RigidTransform] = {}
        self._cond = threading.Condition()

    def set_transform(self, source: str, target: str, transform: RigidTransform) -> None:
        """Register the transform mapping *source* coordinates into *target*."""
        with self._cond:
            self._edges[(source, target)] = transform
            self._cond.notify_all()

    def _find(self, source: str, target: str):
        direct = self._edges.get((source, target))
        if direct is not None:
            return direct
        reverse = self._edges.get((target, source))
        if reverse is not None:
            return reverse.inverse()
        return None

    def lookup(
        self,
        source: str,
        target: str,
        stamp: float,
        timeout: float,
    ) -> RigidTransform:
        """Return the transform from *source* to *target*.

        Waits at most *timeout* seconds for it to be registered.

        Raises
        ------
        TransformTimeout
            If the transform is still unknown when the timeout elapses.
        """
        if source == target:
            return IDENTITY
        deadline = time.monotonic() + max(0.0, timeout)
        with self._cond:
            while True:
                found = self._find(source, target)
                if found is not None:
                    return found
                remaining = deadline - time.monotonic()
                if remaining <= 0.0:
                    raise TransformTimeout(
                        f"no transform {source} -> {target} within {timeout:.3f}s"
                    )
                self._cond.wait(remaining)
