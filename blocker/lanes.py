"""
blocker/lanes.py
================
Per-fleet lane table.

:class:`LaneIndex` maps a :class:`LaneKey` ``(fleet, index)`` to a
:class:`Lane` whose rectangle is derived once, at build time, from the two
endpoint vertices and the configured half-width.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterator, List, NamedTuple, Optional, Set, Tuple

from blocker.geometry import CollisionGeometry
from blocker.graph import NavGraph, Vertex

log = logging.getLogger("lane_blocker")


class LaneNotFound(KeyError):
    """No lane is registered under the requested key."""


class LaneKey(NamedTuple):
    """Identity of a lane: fleet name plus position in the fleet's graph."""

    fleet: str
    index: int

    def __str__(self) -> str:
        return f"{self.fleet}_{self.index}"

    @classmethod
    def parse(cls, text: str) -> "LaneKey":
        """Inverse of ``str(key)``; splits on the last underscore."""
        fleet, sep, index = text.rpartition("_")
        if not sep or not fleet:
            raise ValueError(f"not a lane key: {text!r}")
        return cls(fleet, int(index))


@dataclass(frozen=True)
class Lane:
    """An immutable lane with its derived collision rectangle."""

    key: LaneKey
    entry: Vertex
    exit: Vertex
    geometry: CollisionGeometry

    @property
    def length(self) -> float:
        return self.geometry.size_x


def lane_geometry(entry: Vertex, exit_: Vertex, half_width: float) -> CollisionGeometry:
    """Rectangle spanning ``entry`` → ``exit`` with the given half-width."""
    dx = exit_.x - entry.x
    dy = exit_.y - entry.y
    return CollisionGeometry.centered(
        (entry.x + exit_.x) * 0.5,
        (entry.y + exit_.y) * 0.5,
        theta=math.atan2(dy, dx),
        size_x=math.hypot(dx, dy),
        size_y=half_width * 2.0,
    )


class LaneIndex:
    """Lanes of every known fleet, keyed by :class:`LaneKey`."""

    def __init__(self) -> None:
        self._fleets: Dict[str, Dict[LaneKey, Lane]] = {}

    def build(self, fleet: str, graph: NavGraph, half_width: float) -> Set[LaneKey]:
        """Replace every lane of *fleet* with lanes derived from *graph*.

        The graph is validated before anything is touched, so a
        :class:`~blocker.graph.MalformedGraphError` leaves the previous
        lanes in place.  Returns the keys the fleet had before the rebuild.
        """
        graph.validate()
        lanes: Dict[LaneKey, Lane] = {}
        for index in range(len(graph.lanes)):
            entry, exit_ = graph.endpoints(index)
            key = LaneKey(fleet, index)
            lanes[key] = Lane(key, entry, exit_, lane_geometry(entry, exit_, half_width))
        previous = set(self._fleets.get(fleet, {}))
        self._fleets[fleet] = lanes
        log.info("lane_index_built fleet=%s lanes=%d", fleet, len(lanes))
        return previous

    def remove_fleet(self, fleet: str) -> Set[LaneKey]:
        return set(self._fleets.pop(fleet, {}))

    # ── queries ───────────────────────────────────────────────────────────

    def get(self, key: LaneKey) -> Lane:
        try:
            return self._fleets[key.fleet][key]
        except KeyError:
            raise LaneNotFound(key) from None

    def all(self, fleet: Optional[str] = None) -> List[Tuple[LaneKey, CollisionGeometry]]:
        """``[(key, rectangle), ...]`` for one fleet, or every fleet."""
        return [(lane.key, lane.geometry) for lane in self.lanes(fleet)]

    def lanes(self, fleet: Optional[str] = None) -> List[Lane]:
        if fleet is not None:
            return list(self._fleets.get(fleet, {}).values())
        return [lane for table in self._fleets.values() for lane in table.values()]

    def fleets(self) -> List[str]:
        return list(self._fleets)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        return key in self._fleets.get(key[0], {})

    def __len__(self) -> int:
        return sum(len(table) for table in self._fleets.values())

    def __iter__(self) -> Iterator[Lane]:
        return iter(self.lanes())
