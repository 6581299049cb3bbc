"""
blocker/engine.py
=================
:class:`LaneBlocker` wires the lane index, obstacle cache, association,
decision and cull engines around one :class:`~blocker.context.BlockerContext`.

Flow per cycle::

    ingest(report)  ── transform ──▶  ObstacleCache            (any thread)
    process()       ── recompute ──▶  decide ──▶ publisher     (process cycle)
    cull()          ── expire    ──▶  decide ──▶ publisher     (cull cycle)

Every mutation happens inside ``context.locked()``.  Transform lookups,
which may block for up to ``transform_timeout_s``, run before the lock is
taken.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from blocker.association import AssociationEngine
from blocker.context import BlockerContext
from blocker.cull import CullEngine
from blocker.decisions import LaneStates, Request
from blocker.graph import MalformedGraphError, NavGraph
from blocker.lanes import LaneKey
from blocker.obstacles import ObstacleRecord, ObstacleReport
from blocker.policy import BlockerPolicy
from blocker.transforms import StaticTransformBuffer, TransformTimeout

log = logging.getLogger("lane_blocker")


class LaneBlocker:
    """Closes lanes crowded by obstacles and re-opens them when they clear.

    Parameters
    ----------
    policy : BlockerPolicy or None
        Tunables; defaults to ``BlockerPolicy()``.
    transforms : StaticTransformBuffer or None
        Frame lookups for incoming reports.  Reports already in
        ``policy.planar_frame`` need no registered transform.
    publisher : object with ``publish(request)``, or None
        Receives every emitted request; ``None`` keeps requests local.
    clock : callable
        Source of "now" for :meth:`cull`, in the same epoch as report stamps.
    """

    def __init__(
        self,
        policy: Optional[BlockerPolicy] = None,
        transforms: Optional[StaticTransformBuffer] = None,
        publisher: Any = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.policy = policy or BlockerPolicy()
        self.transforms = transforms or StaticTransformBuffer()
        self.publisher = publisher
        self.clock = clock
        self.context = BlockerContext(self.policy)
        self.association = AssociationEngine(self.policy)
        self.culler = CullEngine(self.policy)

    # ── Ingestion ─────────────────────────────────────────────────────────────

    def ingest(self, report: ObstacleReport) -> bool:
        """Transform *report* into the planar frame and cache it.

        Returns ``False`` when the transform is unavailable; only this report
        is dropped.
        """
        try:
            transform = self.transforms.lookup(
                report.frame_id,
                self.policy.planar_frame,
                report.stamp,
                self.policy.transform_timeout_s,
            )
        except TransformTimeout as exc:
            log.warning("report_dropped obstacle=%s reason=%s", report.key, exc)
            return False

        record = ObstacleRecord(
            key=report.key,
            expiry=report.stamp + self.policy.obstacle_ttl_s,
            geometry=transform.apply(report.bbox),
            frame_id=report.frame_id,
            stamp=report.stamp,
        )
        with self.context.locked() as ctx:
            replaced = ctx.obstacles.put(record)
        log.debug("ingest obstacle=%s replaced=%s", record.key, replaced is not None)
        return True

    def ingest_all(self, reports: Iterable[ObstacleReport]) -> Tuple[int, int]:
        """Ingest a batch; returns ``(accepted, dropped)``."""
        accepted = dropped = 0
        for report in reports:
            if self.ingest(report):
                accepted += 1
            else:
                dropped += 1
        return accepted, dropped

    # ── Feeds ─────────────────────────────────────────────────────────────────

    def load_graph(self, fleet: str, graph: NavGraph) -> bool:
        """Replace the lanes of *fleet*.

        Membership edges of the replaced lanes are purged at once, and every
        lane this engine holds closed or limited for the fleet is re-decided
        on the next :meth:`process`.  A malformed graph is rejected and the
        previous lanes are kept.
        """
        with self.context.locked() as ctx:
            try:
                previous = ctx.lanes.build(fleet, graph, self.policy.lane_half_width)
            except MalformedGraphError as exc:
                log.error("graph_rejected fleet=%s reason=%s", fleet, exc)
                return False
            purged = ctx.membership.purge_lanes(previous)
            held = ctx.decisions.held_lanes(fleet)
            ctx.pending_lanes |= held
        log.info(
            "graph_loaded fleet=%s lanes=%d purged_obstacles=%d requeued=%d",
            fleet, len(graph.lanes), len(purged), len(held),
        )
        return True

    def update_lane_states(self, states: LaneStates) -> None:
        """Record the fleet's reported lane state.

        Lanes this engine holds that the feed contradicts are queued for the
        next :meth:`process`, which publishes their request again if they
        are still crowded.
        """
        with self.context.locked() as ctx:
            stale = ctx.decisions.update_lane_states(states)
            ctx.pending_lanes |= stale
        log.debug(
            "lane_states fleet=%s closed=%s requeued=%d",
            states.fleet, sorted(states.closed_lanes), len(stale),
        )

    # ── Cycles ────────────────────────────────────────────────────────────────

    def process(self) -> List[Request]:
        """Recompute membership and publish the resulting transitions."""
        with self.context.locked() as ctx:
            changes = self.association.recompute(ctx)
            return ctx.decisions.decide(changes, ctx.membership.count, self.publisher)

    def cull(self, now: Optional[float] = None) -> List[Request]:
        """Expire stale obstacles and publish the resulting transitions."""
        now = self.clock() if now is None else now
        with self.context.locked() as ctx:
            changes = self.culler.cull(ctx, now)
            if not changes:
                return []
            return ctx.decisions.decide(changes, ctx.membership.count, self.publisher)

    # ── Queries ───────────────────────────────────────────────────────────────

    def closed_lanes(self) -> List[LaneKey]:
        with self.context.locked() as ctx:
            return sorted(ctx.decisions.closed_lanes())

    def limited_lanes(self) -> List[LaneKey]:
        with self.context.locked() as ctx:
            return sorted(ctx.decisions.limited_lanes())

    def lane_state(self, key: LaneKey) -> Dict[str, Any]:
        """Geometry, state and vicinity obstacles of one lane.

        Raises
        ------
        LaneNotFound
            If *key* is not in the lane index.
        """
        with self.context.locked() as ctx:
            lane = ctx.lanes.get(key)
            obstacles = ctx.membership.obstacles_for(key)
            return {
                "fleet": key.fleet,
                "index": key.index,
                "geometry": lane.geometry.as_dict(),
                "state": ctx.decisions.state(key).value,
                "speed_limited": key in ctx.decisions.limited_lanes(),
                "obstacle_count": len(obstacles),
                "obstacles": sorted(str(o) for o in obstacles),
            }

    def snapshot(self) -> Dict[str, Any]:
        with self.context.locked() as ctx:
            return {
                "fleets": sorted(ctx.lanes.fleets()),
                "lane_count": len(ctx.lanes),
                "obstacle_count": len(ctx.obstacles),
                "edge_count": len(ctx.membership),
                "closed_lanes": [str(k) for k in sorted(ctx.decisions.closed_lanes())],
                "limited_lanes": [str(k) for k in sorted(ctx.decisions.limited_lanes())],
                "lane_counts": {
                    str(k): n for k, n in sorted(ctx.membership.counts().items())
                },
            }
