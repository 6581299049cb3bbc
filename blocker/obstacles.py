"""
blocker/obstacles.py
====================
Obstacle reports and the expiring obstacle cache.

An incoming :class:`ObstacleReport` carries a 3-D bounding box in its
sensor frame.  After the frame transform, the ground-plane rectangle is
stored as an :class:`ObstacleRecord` in :class:`ObstacleCache`, keyed by
:class:`ObstacleKey` ``(source, id)``.  The cache is last-write-wins by
arrival: a newer report for the same key always replaces the old record.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterator, List, NamedTuple, Optional, Set, Tuple

from blocker.geometry import CollisionGeometry

log = logging.getLogger("obstacles")


class ObstacleKey(NamedTuple):
    """Identity of an obstacle: reporting source plus its id there."""

    source: str
    id: int

    def __str__(self) -> str:
        return f"{self.source}_{self.id}"


# ── report messages ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Pose3D:
    """Position plus orientation quaternion ``(qx, qy, qz, qw)``."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    qx: float = 0.0
    qy: float = 0.0
    qz: float = 0.0
    qw: float = 1.0

    @property
    def yaw(self) -> float:
        """Rotation about z extracted from the quaternion."""
        siny = 2.0 * (self.qw * self.qz + self.qx * self.qy)
        cosy = 1.0 - 2.0 * (self.qy * self.qy + self.qz * self.qz)
        return math.atan2(siny, cosy)

    @classmethod
    def from_yaw(cls, x: float, y: float, z: float = 0.0, yaw: float = 0.0) -> "Pose3D":
        half = yaw * 0.5
        return cls(x=x, y=y, z=z, qz=math.sin(half), qw=math.cos(half))


@dataclass(frozen=True)
class BoundingBox3D:
    """Oriented 3-D box; only its ground-plane footprint is used."""

    center: Pose3D
    size_x: float
    size_y: float
    size_z: float = 0.0


@dataclass(frozen=True)
class ObstacleReport:
    """One detection as delivered by a perception source.

    Parameters
    ----------
    source : str
        Name of the reporting sensor / pipeline.
    id : int
        Obstacle id, unique within ``source``.
    bbox : BoundingBox3D
        Box expressed in ``frame_id``.
    frame_id : str
        Frame the box is expressed in.
    stamp : float
        Detection time in seconds.
    """

    source: str
    id: int
    bbox: BoundingBox3D
    frame_id: str
    stamp: float

    @property
    def key(self) -> ObstacleKey:
        return ObstacleKey(self.source, int(self.id))


# ── cache ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ObstacleRecord:
    """Latest transformed geometry of one obstacle."""

    key: ObstacleKey
    expiry: float
    geometry: CollisionGeometry
    frame_id: str = ""
    stamp: float = 0.0


class ObstacleCache:
    """Keyed, expiring store of :class:`ObstacleRecord`.

    Not thread-safe on its own; callers hold
    :meth:`blocker.context.BlockerContext.locked`.
    """

    def __init__(self) -> None:
        self._records: Dict[ObstacleKey, ObstacleRecord] = {}

    def put(self, record: ObstacleRecord) -> Optional[ObstacleRecord]:
        """Store *record*, returning the record it replaced (if any)."""
        previous = self._records.get(record.key)
        self._records[record.key] = record
        return previous

    def get(self, key: ObstacleKey) -> Optional[ObstacleRecord]:
        return self._records.get(key)

    def expire_older_than(self, now: float) -> Set[ObstacleKey]:
        """Drop every record whose expiry is at or before *now*."""
        expired = {key for key, rec in self._records.items() if rec.expiry <= now}
        for key in expired:
            del self._records[key]
        if expired:
            log.debug("expired count=%d now=%.3f", len(expired), now)
        return expired

    def items(self) -> List[Tuple[ObstacleKey, ObstacleRecord]]:
        return list(self._records.items())

    def keys(self) -> List[ObstacleKey]:
        return list(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ObstacleRecord]:
        return iter(list(self._records.values()))
