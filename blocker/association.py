"""
blocker/association.py
======================
Obstacle ↔ lane membership.

:class:`Membership` stores one authoritative set of ``(obstacle, lane)``
edges and keeps two lookup views over it.  Both views change only through
:meth:`Membership.assign`, so ``lane in lanes_for(o)`` holds exactly when
``o in obstacles_for(lane)``.

:class:`AssociationEngine` recomputes the membership of every cached
obstacle against every lane and reports the lanes whose obstacle count
crossed a policy threshold.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, Mapping, Set, Tuple

from blocker.geometry import CollisionGeometry, in_vicinity
from blocker.lanes import LaneKey
from blocker.obstacles import ObstacleKey
from blocker.policy import BlockerPolicy

if TYPE_CHECKING:
    from blocker.context import BlockerContext

log = logging.getLogger("association")


def crossed(previous: int, current: int, thresholds: Iterable[int]) -> bool:
    """True if the count moved across any threshold, in either direction."""
    return any((previous >= t) != (current >= t) for t in thresholds)


class Membership:
    """Edge set of ``(ObstacleKey, LaneKey)`` pairs with two lookup views."""

    def __init__(self) -> None:
        self._by_obstacle: Dict[ObstacleKey, FrozenSet[LaneKey]] = {}
        self._by_lane: Dict[LaneKey, Set[ObstacleKey]] = {}

    # ── mutation ──────────────────────────────────────────────────────────

    def assign(self, obstacle: ObstacleKey, lanes: Iterable[LaneKey]) -> Set[LaneKey]:
        """Make *lanes* the exact lane set of *obstacle*.

        Returns the lanes whose obstacle set changed.
        """
        old = self._by_obstacle.get(obstacle, frozenset())
        new = frozenset(lanes)
        if old == new:
            return set()
        for lane in old - new:
            members = self._by_lane[lane]
            members.discard(obstacle)
            if not members:
                del self._by_lane[lane]
        for lane in new - old:
            self._by_lane.setdefault(lane, set()).add(obstacle)
        if new:
            self._by_obstacle[obstacle] = new
        else:
            self._by_obstacle.pop(obstacle, None)
        return set(old ^ new)

    def remove(self, obstacle: ObstacleKey) -> Set[LaneKey]:
        """Drop every edge of *obstacle*; returns the lanes that changed."""
        return self.assign(obstacle, ())

    def purge_lanes(self, lanes: Iterable[LaneKey]) -> Set[ObstacleKey]:
        """Drop every edge that touches one of *lanes*.

        Returns the obstacles that lost at least one lane.
        """
        affected: Set[ObstacleKey] = set()
        doomed = set(lanes)
        for lane in doomed & set(self._by_lane):
            affected |= self._by_lane[lane]
        for obstacle in affected:
            self.assign(obstacle, self._by_obstacle[obstacle] - doomed)
        return affected

    # ── queries ───────────────────────────────────────────────────────────

    def lanes_for(self, obstacle: ObstacleKey) -> FrozenSet[LaneKey]:
        return self._by_obstacle.get(obstacle, frozenset())

    def obstacles_for(self, lane: LaneKey) -> FrozenSet[ObstacleKey]:
        return frozenset(self._by_lane.get(lane, ()))

    def count(self, lane: LaneKey) -> int:
        return len(self._by_lane.get(lane, ()))

    def counts(self) -> Dict[LaneKey, int]:
        return {lane: len(members) for lane, members in self._by_lane.items()}

    def edges(self) -> Set[Tuple[ObstacleKey, LaneKey]]:
        return {(o, lane) for o, lanes in self._by_obstacle.items() for lane in lanes}

    def obstacle_to_lanes(self) -> Dict[ObstacleKey, FrozenSet[LaneKey]]:
        return dict(self._by_obstacle)

    def lane_to_obstacles(self) -> Dict[LaneKey, FrozenSet[ObstacleKey]]:
        return {lane: frozenset(members) for lane, members in self._by_lane.items()}

    def is_consistent(self) -> bool:
        """Both views describe the same edge set."""
        from_lanes = {(o, lane) for lane, members in self._by_lane.items() for o in members}
        return from_lanes == self.edges()

    def __len__(self) -> int:
        return sum(len(lanes) for lanes in self._by_obstacle.values())


class AssociationEngine:
    """Recomputes membership from the current obstacle cache each cycle."""

    def __init__(self, policy: BlockerPolicy) -> None:
        self.policy = policy

    def lanes_near(
        self,
        geometry: CollisionGeometry,
        lanes: Iterable[Tuple[LaneKey, CollisionGeometry]],
    ) -> Set[LaneKey]:
        """Keys of every lane rectangle in the vicinity of *geometry*."""
        threshold = self.policy.vicinity_threshold
        eps = self.policy.geometry_epsilon
        return {
            key for key, lane_geometry in lanes
            if in_vicinity(geometry, lane_geometry, threshold, eps)
        }

    def recompute(self, context: "BlockerContext") -> Set[LaneKey]:
        """Refresh membership of every cached obstacle.

        Must be called with ``context.locked()`` held.  Returns the lanes
        whose count crossed a threshold, plus lanes queued for
        re-evaluation by a graph reload or a lane-state feed.
        """
        membership = context.membership
        previous: Mapping[LaneKey, int] = membership.counts()
        lanes = context.lanes.all()
        touched: Set[LaneKey] = set()
        for key, record in context.obstacles.items():
            touched |= membership.assign(key, self.lanes_near(record.geometry, lanes))

        thresholds = self.policy.thresholds()
        changes = {
            lane for lane in touched
            if crossed(previous.get(lane, 0), membership.count(lane), thresholds)
        }
        if context.pending_lanes:
            changes |= context.pending_lanes
            context.pending_lanes.clear()
        log.debug(
            "recompute obstacles=%d lanes=%d edges=%d touched=%d changes=%d",
            len(context.obstacles), len(lanes), len(membership),
            len(touched), len(changes),
        )
        return changes
