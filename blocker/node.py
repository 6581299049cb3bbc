"""
blocker/node.py
===============
Background-thread runner for :class:`blocker.engine.LaneBlocker`.

Two independent daemon threads drive the engine:

* ``process`` every ``policy.process_period_s``: recompute and decide.
* ``cull`` every ``policy.cull_period_s``: expire stale obstacles.

Feeds (obstacle reports, nav graphs, external lane states) may arrive on any
thread.  Requests go out on a :class:`bus.fleet_bus.FleetBus`.

Public API consumed by :mod:`blocker.api`
-----------------------------------------
* ``on_obstacles(reports)``   → ``(accepted, dropped)``
* ``on_graph(fleet, graph)``  → ``bool``
* ``on_lane_states(states)``  → ``None``
* ``closed_lanes()``          → ``List[LaneKey]``
* ``lane_state(key)``         → ``dict``
* ``snapshot()``              → ``dict``
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from blocker.decisions import LaneStates
from blocker.engine import LaneBlocker
from blocker.graph import NavGraph
from blocker.lanes import LaneKey
from blocker.obstacles import ObstacleReport
from blocker.policy import BlockerPolicy
from blocker.publisher import RequestPublisher
from blocker.transforms import StaticTransformBuffer
from bus.fleet_bus import FleetBus

log = logging.getLogger("node")


class LaneBlockerNode:
    """Lane blocker service running its cycles in background threads.

    Parameters
    ----------
    policy : BlockerPolicy or None
        Tunables, including both cycle periods.
    bus : FleetBus or None
        Outgoing request transport; a fresh loss-free bus by default.
    transforms : StaticTransformBuffer or None
        Frame lookups for incoming reports.
    clock : callable
        Time source for the cull cycle.
    """

    def __init__(
        self,
        policy: Optional[BlockerPolicy] = None,
        bus: Optional[FleetBus] = None,
        transforms: Optional[StaticTransformBuffer] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.policy = policy or BlockerPolicy()
        self.bus = bus or FleetBus()
        self.engine = LaneBlocker(
            policy=self.policy,
            transforms=transforms,
            publisher=RequestPublisher(self.bus),
            clock=clock,
        )

        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self) -> None:
        """Spawn the process and cull threads."""
        if self.running:
            return
        self._stop.clear()
        self._threads = [
            threading.Thread(
                target=self._loop,
                args=("process", self.policy.process_period_s, self.engine.process),
                daemon=True,
                name="LaneBlockerProcess",
            ),
            threading.Thread(
                target=self._loop,
                args=("cull", self.policy.cull_period_s, self.engine.cull),
                daemon=True,
                name="LaneBlockerCull",
            ),
        ]
        for thread in self._threads:
            thread.start()
        log.info(
            "LaneBlockerNode started process=%.2fs cull=%.2fs",
            self.policy.process_period_s, self.policy.cull_period_s,
        )

    def stop(self) -> None:
        """Signal both threads to stop and wait for them to join."""
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout=2.0)
        self._threads = []
        log.info("LaneBlockerNode stopped")

    def _loop(self, name: str, period: float, tick: Callable[[], Any]) -> None:
        while not self._stop.is_set():
            t0 = time.perf_counter()
            try:
                tick()
            except Exception:
                log.exception("%s tick error", name)
            self._stop.wait(max(0.0, period - (time.perf_counter() - t0)))

    # ── Feeds ─────────────────────────────────────────────────────────────────

    def on_obstacles(self, reports: Iterable[ObstacleReport]) -> Tuple[int, int]:
        accepted, dropped = self.engine.ingest_all(reports)
        if dropped:
            log.warning("obstacles accepted=%d dropped=%d", accepted, dropped)
        return accepted, dropped

    def on_graph(self, fleet: str, graph: NavGraph) -> bool:
        return self.engine.load_graph(fleet, graph)

    def on_lane_states(self, states: LaneStates) -> None:
        self.engine.update_lane_states(states)

    # ── Queries ───────────────────────────────────────────────────────────────

    def closed_lanes(self) -> List[LaneKey]:
        return self.engine.closed_lanes()

    def lane_state(self, key: LaneKey) -> Dict[str, Any]:
        return self.engine.lane_state(key)

    def snapshot(self) -> Dict[str, Any]:
        snap = self.engine.snapshot()
        snap["running"] = self.running
        snap["bus_metrics"] = self.bus.metrics.report()
        return snap
