"""
BusMetrics: request traffic counters for a FleetBus.
"""

from collections import Counter
from typing import Dict


class BusMetrics:
    """
    Counts publish outcomes overall, per topic and per request kind.

    Attributes:
        published (int): Requests delivered to a topic queue.
        dropped (int): Requests lost to simulated packet loss.
        polled (int): Requests consumed through poll().
    """

    def __init__(self):
        self.published = 0
        self.dropped = 0
        self.polled = 0
        self._topics: Dict[str, Counter] = {}
        self._kinds: Dict[str, Counter] = {}

    def record(self, topic: str, kind: str, delivered: bool) -> None:
        """Count one publish attempt of a *kind* request on *topic*."""
        outcome = "published" if delivered else "dropped"
        if delivered:
            self.published += 1
        else:
            self.dropped += 1
        self._topics.setdefault(topic, Counter())[outcome] += 1
        self._kinds.setdefault(kind, Counter())[outcome] += 1

    def report(self) -> dict:
        """
        Return a snapshot of current metrics.

        Returns:
            dict: Totals plus ``topics`` and ``requests`` breakdowns, each
            mapping a topic or request kind ('close', 'open', 'limit',
            'clear') to its published / dropped counts.
        """
        return {
            "published": self.published,
            "dropped": self.dropped,
            "polled": self.polled,
            "topics": {t: dict(c) for t, c in sorted(self._topics.items())},
            "requests": {k: dict(c) for k, c in sorted(self._kinds.items())},
        }
