"""
blocker/cull.py
===============
Periodic expiry of stale obstacles.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Set

from blocker.association import crossed
from blocker.lanes import LaneKey
from blocker.policy import BlockerPolicy

if TYPE_CHECKING:
    from blocker.context import BlockerContext

log = logging.getLogger("cull")


class CullEngine:
    """Removes expired obstacles and reports the lanes that crossed a threshold."""

    def __init__(self, policy: BlockerPolicy) -> None:
        self.policy = policy

    def cull(self, context: "BlockerContext", now: float) -> Set[LaneKey]:
        """Expire records at or before *now* and drop their membership.

        Must be called with ``context.locked()`` held.
        """
        expired = context.obstacles.expire_older_than(now)
        if not expired:
            return set()

        membership = context.membership
        previous: Dict[LaneKey, int] = {}
        for key in expired:
            for lane in membership.lanes_for(key):
                previous.setdefault(lane, membership.count(lane))
            membership.remove(key)

        thresholds = self.policy.thresholds()
        changes = {
            lane for lane, before in previous.items()
            if crossed(before, membership.count(lane), thresholds)
        }
        log.info(
            "cull expired=%d lanes_touched=%d changes=%d",
            len(expired), len(previous), len(changes),
        )
        return changes
