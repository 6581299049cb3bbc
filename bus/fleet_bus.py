"""
FleetBus: In-memory pub/sub transport for fleet requests.

Supports:
    - Topic-based messaging of typed lane / speed-limit requests
    - Packet drop simulation (fire-and-forget failures)
    - Per-topic and per-request-kind metrics

Intended usage:
    - The lane blocker publishes on 'lane_closure_requests' and
      'speed_limit_requests'
    - Fleet adapters (or tests) poll those topics
"""

import time
import uuid
import random
import logging
import threading
from typing import Any, Dict, List, Optional

from .message import BusMessage
from .metrics import BusMetrics

log = logging.getLogger(__name__)


def should_drop(drop_rate: float) -> bool:
    """
    Decide whether to drop one request based on the drop rate.

    Args:
        drop_rate (float): Probability (0.0 to 1.0) that the request is lost.
    """
    if drop_rate <= 0.0:
        return False
    if drop_rate >= 1.0:
        return True
    return random.random() < drop_rate


class FleetBus:
    """
    Transport layer for requests between the lane blocker and fleet adapters.

    Attributes:
        drop_rate (float): Probability of randomly dropping a request.
        metrics (BusMetrics): Published / dropped / polled counters.
    """

    def __init__(self, drop_rate: float = 0.0):
        """
        Initialize a FleetBus instance.

        Args:
            drop_rate (float): Chance of randomly dropping a request (0.0 to 1.0).
        """
        self._topics: Dict[str, List[BusMessage]] = {}
        self._lock = threading.Lock()
        self.drop_rate = drop_rate
        self.metrics = BusMetrics()

    def publish(self, topic: str, sender: str, request: Any) -> Optional[str]:
        """
        Publish a request to a specific topic.

        Args:
            topic (str): The topic name (e.g., 'lane_closure_requests').
            sender (str): ID of the sender (e.g., 'lane_blocker').
            request: A ``LaneRequest`` or ``SpeedLimitRequest``.

        Returns:
            Optional[str]: The unique message ID if successfully published, or None if dropped.
        """
        if should_drop(self.drop_rate):
            with self._lock:
                self.metrics.record(topic, request.kind, delivered=False)
            log.warning(
                "packet_dropped topic=%s kind=%s lane=%s", topic, request.kind, request.key
            )
            return None

        msg = BusMessage(
            id=str(uuid.uuid4()),
            topic=topic,
            sender=sender,
            request=request,
            ts=time.time(),
        )
        with self._lock:
            self._topics.setdefault(topic, []).append(msg)
            self.metrics.record(topic, msg.kind, delivered=True)

        log.info("publish topic=%s kind=%s lane=%s id=%s", topic, msg.kind, msg.lane, msg.id)
        return msg.id

    def poll(self, topic: str) -> List[BusMessage]:
        """
        Retrieve and clear all messages from a given topic.

        Args:
            topic (str): The topic name to poll messages from.

        Returns:
            List[BusMessage]: Messages published to the topic since the last poll.
        """
        with self._lock:
            msgs = self._topics.get(topic, [])
            self._topics[topic] = []
            self.metrics.polled += len(msgs)
        return msgs

    def pending(self, topic: str) -> int:
        """Number of messages waiting on *topic*, without consuming them."""
        with self._lock:
            return len(self._topics.get(topic, []))
