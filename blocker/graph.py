"""
blocker/graph.py
================
Navigation-graph topology for a single fleet.

Defines :class:`Vertex`, :class:`GraphLane` and :class:`NavGraph`, a
lightweight graph that locates waypoints in the shared planar frame and
records which pairs of waypoints are joined by a lane.  The lane index of a
lane is its position in :attr:`NavGraph.lanes`.

:func:`grid_graph` builds a corridor grid for demos and tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple


class MalformedGraphError(ValueError):
    """A lane references a vertex index that does not exist."""


# ── Vertex ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Vertex:
    """A waypoint in the shared planar frame.

    Parameters
    ----------
    x, y : float
        Position in metres.
    name : str
        Optional waypoint name.
    """

    x: float
    y: float
    name: str = ""


# ── Lane ──────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class GraphLane:
    """A directed lane from vertex ``entry`` to vertex ``exit``."""

    entry: int
    exit: int


# ── Graph ─────────────────────────────────────────────────────────────────────

@dataclass
class NavGraph:
    """Vertices plus lanes, in graph order."""

    vertices: List[Vertex] = field(default_factory=list)
    lanes: List[GraphLane] = field(default_factory=list)

    def validate(self) -> None:
        """Raise :class:`MalformedGraphError` if any lane is out of range."""
        count = len(self.vertices)
        for index, lane in enumerate(self.lanes):
            for end in (lane.entry, lane.exit):
                if not 0 <= end < count:
                    raise MalformedGraphError(
                        f"lane {index} references vertex {end}, "
                        f"graph has {count} vertices"
                    )

    def endpoints(self, lane_index: int) -> Tuple[Vertex, Vertex]:
        lane = self.lanes[lane_index]
        return self.vertices[lane.entry], self.vertices[lane.exit]

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "NavGraph":
        """Build a graph from its JSON shape.

        ``{"vertices": [{"x": .., "y": .., "name": ..}, ...],
        "lanes": [[entry, exit] | {"entry": .., "exit": ..}, ...]}``

        Indices are not range-checked here; see :meth:`validate`.
        """
        vertices = [
            Vertex(float(v["x"]), float(v["y"]), str(v.get("name", "")))
            for v in payload.get("vertices", [])
        ]
        lanes: List[GraphLane] = []
        for raw in payload.get("lanes", []):
            if isinstance(raw, Mapping):
                lanes.append(GraphLane(int(raw["entry"]), int(raw["exit"])))
            else:
                entry, exit_ = raw
                lanes.append(GraphLane(int(entry), int(exit_)))
        return cls(vertices=vertices, lanes=lanes)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "vertices": [
                {"x": v.x, "y": v.y, "name": v.name} for v in self.vertices
            ],
            "lanes": [[lane.entry, lane.exit] for lane in self.lanes],
        }


# ── Demo layout ───────────────────────────────────────────────────────────────

_SEP = 10.0  # default distance between neighbouring waypoints


def grid_graph(rows: int = 2, cols: int = 3, spacing: float = _SEP) -> NavGraph:
    """Build a ``rows`` x ``cols`` grid of waypoints joined by lanes.

    Every pair of horizontal or vertical neighbours is joined by two lanes,
    one per direction, emitted east/north first.  Vertex ``(r, c)`` sits at
    ``(c * spacing, r * spacing)`` and is named ``"r<r>c<c>"``.
    """
    vertices: List[Vertex] = []
    index: Dict[Tuple[int, int], int] = {}
    for r in range(rows):
        for c in range(cols):
            index[(r, c)] = len(vertices)
            vertices.append(Vertex(c * spacing, r * spacing, f"r{r}c{c}"))

    lanes: List[GraphLane] = []
    for (r, c), v in index.items():
        # east neighbour
        if (r, c + 1) in index:
            east = index[(r, c + 1)]
            lanes.append(GraphLane(v, east))
            lanes.append(GraphLane(east, v))
        # north neighbour
        if (r + 1, c) in index:
            north = index[(r + 1, c)]
            lanes.append(GraphLane(v, north))
            lanes.append(GraphLane(north, v))
    return NavGraph(vertices=vertices, lanes=lanes)
