"""
blocker/decisions.py
====================
Threshold-driven lane decisions.

Each lane runs a two-state machine, ``OPEN → CLOSED`` when its vicinity
obstacle count reaches ``closure_threshold`` and ``CLOSED → OPEN`` when it
drops back below.  A request is emitted only on an actual transition, so
re-deciding an unchanged lane is silent.  When ``speed_limit_threshold`` is
configured, a second, independent machine emits speed-limit / clear
requests at that lower count.

Lanes already closed by another authority (as reported on the lane-state
feed) are adopted without publishing, and later released without
publishing an ``OPEN``: this engine never re-opens a closure it did not
issue.  Speed limits the feed already reports are adopted the same way.

The feed also repairs lost requests.  A lane this engine holds closed that
the feed reports open (a dropped ``CLOSE``, or another authority lifting an
adopted closure) is marked for reassertion, and the next decision on it
publishes ``CLOSE`` again while the lane is still crowded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Union

from blocker.lanes import LaneKey
from blocker.policy import BlockerPolicy

log = logging.getLogger("decisions")


class LaneState(Enum):
    OPEN = "open"
    CLOSED = "closed"


class LaneAction(Enum):
    OPEN = "open"
    CLOSE = "close"


@dataclass(frozen=True)
class LaneRequest:
    """Ask the fleet adapter of ``fleet`` to open or close one lane."""

    fleet: str
    lane_index: int
    action: LaneAction

    @property
    def key(self) -> LaneKey:
        return LaneKey(self.fleet, self.lane_index)

    @property
    def kind(self) -> str:
        return self.action.value

    def as_dict(self) -> Dict[str, Any]:
        return {
            "fleet": self.fleet,
            "lane_index": self.lane_index,
            "action": self.action.value,
        }


@dataclass(frozen=True)
class SpeedLimitRequest:
    """Ask for a speed limit on one lane; ``limit=None`` clears it."""

    fleet: str
    lane_index: int
    limit: Optional[float]

    @property
    def key(self) -> LaneKey:
        return LaneKey(self.fleet, self.lane_index)

    @property
    def is_clear(self) -> bool:
        return self.limit is None

    @property
    def kind(self) -> str:
        return "clear" if self.is_clear else "limit"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "fleet": self.fleet,
            "lane_index": self.lane_index,
            "limit": self.limit,
        }


Request = Union[LaneRequest, SpeedLimitRequest]


@dataclass(frozen=True)
class LaneStates:
    """Externally reported lane state for one fleet."""

    fleet: str
    closed_lanes: FrozenSet[int] = frozenset()
    speed_limits: Mapping[int, float] = field(default_factory=dict)


class DecisionEngine:
    """Per-lane open/closed and speed-limit state machines.

    Parameters
    ----------
    policy : BlockerPolicy
        Supplies ``closure_threshold``, ``speed_limit_threshold`` and
        ``speed_limit``.
    """

    def __init__(self, policy: BlockerPolicy) -> None:
        self.policy = policy
        self._states: Dict[LaneKey, LaneState] = {}
        self._limited: Set[LaneKey] = set()
        self._adopted: Set[LaneKey] = set()
        self._adopted_limits: Set[LaneKey] = set()
        self._reassert: Set[LaneKey] = set()
        self._reassert_limits: Set[LaneKey] = set()
        self._external: Dict[str, LaneStates] = {}

    # ── external feed ─────────────────────────────────────────────────────

    def update_lane_states(self, states: LaneStates) -> Set[LaneKey]:
        """Record the feed for one fleet and reconcile it with held lanes.

        Returns the lanes that disagree with the feed: closed here but open
        there, or adopted speed limits the fleet has since cleared.  They
        must be re-decided so a still-crowded lane gets its request again.
        """
        fleet = states.fleet
        self._external[fleet] = states
        self._reassert = {k for k in self._reassert if k.fleet != fleet}
        self._reassert_limits = {k for k in self._reassert_limits if k.fleet != fleet}

        for key in self.closed_lanes():
            if key.fleet == fleet and key.index not in states.closed_lanes:
                self._reassert.add(key)
        for key in self._adopted_limits:
            if key.fleet == fleet and key.index not in states.speed_limits:
                self._reassert_limits.add(key)
        stale = self._reassert | self._reassert_limits
        if stale:
            log.warning("lane_states_mismatch fleet=%s lanes=%s", fleet, sorted(stale))
        return set(stale)

    def externally_closed(self, key: LaneKey) -> bool:
        states = self._external.get(key.fleet)
        return states is not None and key.index in states.closed_lanes

    def externally_limited(self, key: LaneKey) -> bool:
        states = self._external.get(key.fleet)
        return states is not None and key.index in states.speed_limits

    # ── queries ───────────────────────────────────────────────────────────

    def state(self, key: LaneKey) -> LaneState:
        return self._states.get(key, LaneState.OPEN)

    def closed_lanes(self) -> Set[LaneKey]:
        return {k for k, s in self._states.items() if s is LaneState.CLOSED}

    def limited_lanes(self) -> Set[LaneKey]:
        return set(self._limited)

    def held_lanes(self, fleet: str) -> Set[LaneKey]:
        """Lanes of *fleet* currently closed or speed-limited by this engine."""
        held = self.closed_lanes() | self._limited
        return {k for k in held if k.fleet == fleet}

    # ── transitions ───────────────────────────────────────────────────────

    def decide(
        self,
        lanes: Iterable[LaneKey],
        count_of: Callable[[LaneKey], int],
        publisher: Any = None,
    ) -> List[Request]:
        """Run the state machines for *lanes* and emit any transitions.

        Parameters
        ----------
        lanes : iterable of LaneKey
            Lanes to re-decide, usually the output of a recompute or cull.
        count_of : callable
            Current vicinity obstacle count of a lane.
        publisher : object with ``publish(request)``, optional
            Receives every emitted request, fire-and-forget.

        Returns
        -------
        list
            The emitted :class:`LaneRequest` / :class:`SpeedLimitRequest`.
        """
        requests: List[Request] = []
        for key in sorted(lanes):
            count = count_of(key)
            closure = self._decide_closure(key, count)
            if closure is not None:
                requests.append(closure)
            limit = self._decide_speed_limit(key, count)
            if limit is not None:
                requests.append(limit)
        if publisher is not None:
            for request in requests:
                self._emit(publisher, request)
        return requests

    def _decide_closure(self, key: LaneKey, count: int) -> Optional[LaneRequest]:
        closed = self.state(key) is LaneState.CLOSED
        reassert = key in self._reassert
        self._reassert.discard(key)
        if count >= self.policy.closure_threshold and closed and reassert:
            # the closure we hold is not in effect; this engine owns it now
            self._adopted.discard(key)
            log.info("lane_close_reassert lane=%s count=%d", key, count)
            return LaneRequest(key.fleet, key.index, LaneAction.CLOSE)
        if count >= self.policy.closure_threshold and not closed:
            self._states[key] = LaneState.CLOSED
            if self.externally_closed(key):
                self._adopted.add(key)
                log.info("lane_closed_externally lane=%s count=%d", key, count)
                return None
            log.info("lane_close lane=%s count=%d", key, count)
            return LaneRequest(key.fleet, key.index, LaneAction.CLOSE)
        if count < self.policy.closure_threshold and closed:
            self._states[key] = LaneState.OPEN
            if key in self._adopted:
                self._adopted.discard(key)
                log.info("lane_release_external lane=%s count=%d", key, count)
                return None
            log.info("lane_open lane=%s count=%d", key, count)
            return LaneRequest(key.fleet, key.index, LaneAction.OPEN)
        return None

    def _decide_speed_limit(self, key: LaneKey, count: int) -> Optional[SpeedLimitRequest]:
        threshold = self.policy.speed_limit_threshold
        if threshold is None:
            return None
        limited = key in self._limited
        reassert = key in self._reassert_limits
        self._reassert_limits.discard(key)
        if count >= threshold and limited and reassert:
            self._adopted_limits.discard(key)
            log.info("lane_speed_limit_reassert lane=%s count=%d", key, count)
            return SpeedLimitRequest(key.fleet, key.index, self.policy.speed_limit)
        if count >= threshold and not limited:
            self._limited.add(key)
            if self.externally_limited(key):
                self._adopted_limits.add(key)
                log.info("lane_speed_limited_externally lane=%s count=%d", key, count)
                return None
            log.info("lane_speed_limit lane=%s count=%d limit=%.2f",
                     key, count, self.policy.speed_limit)
            return SpeedLimitRequest(key.fleet, key.index, self.policy.speed_limit)
        if count < threshold and limited:
            self._limited.discard(key)
            if key in self._adopted_limits:
                self._adopted_limits.discard(key)
                log.info("lane_speed_limit_release_external lane=%s count=%d", key, count)
                return None
            log.info("lane_speed_limit_clear lane=%s count=%d", key, count)
            return SpeedLimitRequest(key.fleet, key.index, None)
        return None

    @staticmethod
    def _emit(publisher: Any, request: Request) -> None:
        try:
            publisher.publish(request)
        except Exception:
            log.exception("publish_failed request=%s", request)
