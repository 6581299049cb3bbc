"""
blocker/publisher.py
====================
Routes decision requests onto :class:`bus.fleet_bus.FleetBus` topics.
"""

from __future__ import annotations

import logging
from typing import Optional

from blocker.decisions import LaneRequest, Request, SpeedLimitRequest
from bus.fleet_bus import FleetBus

log = logging.getLogger("decisions")

LANE_CLOSURE_TOPIC = "lane_closure_requests"
SPEED_LIMIT_TOPIC = "speed_limit_requests"
SENDER = "lane_blocker"


def topic_for(request: Request) -> str:
    if isinstance(request, LaneRequest):
        return LANE_CLOSURE_TOPIC
    if isinstance(request, SpeedLimitRequest):
        return SPEED_LIMIT_TOPIC
    raise TypeError(f"unsupported request type: {type(request).__name__}")


class RequestPublisher:
    """Fire-and-forget publisher of lane and speed-limit requests.

    A dropped message is logged and counted by the bus; it is not retried.
    The next crossing of the same lane, or a lane-state feed that still
    reports the lane open, produces a fresh request.
    """

    def __init__(self, bus: FleetBus, sender: str = SENDER) -> None:
        self.bus = bus
        self.sender = sender

    def publish(self, request: Request) -> Optional[str]:
        topic = topic_for(request)
        msg_id = self.bus.publish(topic=topic, sender=self.sender, request=request)
        if msg_id is None:
            log.warning("request_dropped topic=%s lane=%s", topic, request.key)
        return msg_id
