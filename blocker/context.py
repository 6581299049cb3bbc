"""
blocker/context.py
==================
The single consistency domain shared by ingestion, the process cycle and
the cull cycle.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional, Set

from blocker.association import Membership
from blocker.decisions import DecisionEngine
from blocker.lanes import LaneIndex, LaneKey
from blocker.obstacles import ObstacleCache
from blocker.policy import BlockerPolicy


@dataclass
class BlockerContext:
    """Shared state guarded by one lock.

    Every read-modify-write of :attr:`lanes`, :attr:`obstacles`,
    :attr:`membership`, :attr:`decisions` or :attr:`pending_lanes` happens
    inside :meth:`locked`.
    """

    policy: BlockerPolicy
    lanes: LaneIndex = field(default_factory=LaneIndex)
    obstacles: ObstacleCache = field(default_factory=ObstacleCache)
    membership: Membership = field(default_factory=Membership)
    decisions: Optional[DecisionEngine] = None
    pending_lanes: Set[LaneKey] = field(default_factory=set)
    """Lanes to re-decide on the next process cycle (graph reloads, feed mismatches)."""

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self) -> None:
        if self.decisions is None:
            self.decisions = DecisionEngine(self.policy)

    @contextmanager
    def locked(self) -> Iterator["BlockerContext"]:
        with self._lock:
            yield self
