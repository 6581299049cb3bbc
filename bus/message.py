"""
BusMessage: one lane request as carried by the FleetBus.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class BusMessage:
    """
    A request envelope on a FleetBus topic.

    The request itself is kept typed (a ``LaneRequest`` or
    ``SpeedLimitRequest``); fleet adapters that want plain data read
    :attr:`payload`.

    Attributes:
        id (str): Unique identifier for the message.
        topic (str): The topic of the message (e.g., 'lane_closure_requests').
        sender (str): ID of the sender (e.g., 'lane_blocker').
        request: The request object; exposes ``key``, ``kind`` and ``as_dict()``.
        ts (float): Timestamp (in seconds) when the message was created.
    """
    id: str
    topic: str
    sender: str
    request: Any
    ts: float

    @property
    def kind(self) -> str:
        """'close', 'open', 'limit' or 'clear'."""
        return self.request.kind

    @property
    def lane(self) -> str:
        return str(self.request.key)

    @property
    def payload(self) -> dict:
        return self.request.as_dict()
