"""
blocker/api.py
==============
Optional FastAPI front end for a :class:`~blocker.node.LaneBlockerNode`.

Start it with the node through :mod:`main`::

    python main.py          # → http://localhost:8000/snapshot

Routes
------
* ``POST /obstacles``                  obstacle reports → accepted / dropped
* ``PUT  /fleets/{fleet}/graph``       replace a fleet's nav graph
* ``PUT  /fleets/{fleet}/lane_states`` external lane-state feed
* ``GET  /lanes/closed``               lanes currently closed by the node
* ``GET  /lanes/{fleet}/{index}``      one lane's geometry, state and count
* ``GET  /snapshot``                   counters, closed lanes, bus metrics

.. note::

   The API is **not** required to run the lane blocker; the node's feeds
   can be called directly.
"""

import logging
from typing import Dict, List, Tuple

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from blocker.decisions import LaneStates
from blocker.graph import GraphLane, NavGraph, Vertex
from blocker.lanes import LaneKey, LaneNotFound
from blocker.node import LaneBlockerNode
from blocker.obstacles import BoundingBox3D, ObstacleReport, Pose3D

log = logging.getLogger("api")

# ── Pydantic request schemas ─────────────────────────────────────────────────


class PoseModel(BaseModel):
    """Position plus orientation quaternion."""
    x: float
    y: float
    z: float = 0.0
    qx: float = 0.0
    qy: float = 0.0
    qz: float = 0.0
    qw: float = 1.0


class BoundingBoxModel(BaseModel):
    center: PoseModel
    size_x: float
    size_y: float
    size_z: float = 0.0


class ObstacleModel(BaseModel):
    """One detection in ``frame_id``."""
    source: str
    id: int
    bbox: BoundingBoxModel
    frame_id: str
    stamp: float

    def to_report(self) -> ObstacleReport:
        c = self.bbox.center
        return ObstacleReport(
            source=self.source,
            id=self.id,
            bbox=BoundingBox3D(
                center=Pose3D(c.x, c.y, c.z, c.qx, c.qy, c.qz, c.qw),
                size_x=self.bbox.size_x,
                size_y=self.bbox.size_y,
                size_z=self.bbox.size_z,
            ),
            frame_id=self.frame_id,
            stamp=self.stamp,
        )


class ObstacleBatch(BaseModel):
    obstacles: List[ObstacleModel]


class VertexModel(BaseModel):
    x: float
    y: float
    name: str = ""


class GraphModel(BaseModel):
    """Nav graph: waypoints plus ``[entry, exit]`` vertex-index pairs."""
    vertices: List[VertexModel]
    lanes: List[Tuple[int, int]]

    def to_graph(self) -> NavGraph:
        return NavGraph(
            vertices=[Vertex(v.x, v.y, v.name) for v in self.vertices],
            lanes=[GraphLane(entry, exit_) for entry, exit_ in self.lanes],
        )


class LaneStatesModel(BaseModel):
    closed_lanes: List[int] = []
    speed_limits: Dict[int, float] = {}


# ── FastAPI application ──────────────────────────────────────────────────────


def create_app(node: LaneBlockerNode) -> FastAPI:
    """Build the HTTP front end bound to *node*."""
    app = FastAPI(
        title="Lane Blocker API",
        description="Closes fleet lanes crowded by obstacles.",
        version="1.0",
    )

    @app.post("/obstacles")
    def post_obstacles(batch: ObstacleBatch):
        """Ingest a batch of obstacle reports."""
        accepted, dropped = node.on_obstacles(o.to_report() for o in batch.obstacles)
        return {"accepted": accepted, "dropped": dropped}

    @app.put("/fleets/{fleet}/graph")
    def put_graph(fleet: str, graph: GraphModel):
        """Replace the nav graph of *fleet*."""
        if not node.on_graph(fleet, graph.to_graph()):
            raise HTTPException(status_code=400, detail=f"malformed graph for fleet {fleet}")
        return {"fleet": fleet, "lanes": len(graph.lanes)}

    @app.put("/fleets/{fleet}/lane_states")
    def put_lane_states(fleet: str, states: LaneStatesModel):
        """Lane states reported by the fleet's own authority."""
        node.on_lane_states(
            LaneStates(
                fleet=fleet,
                closed_lanes=frozenset(states.closed_lanes),
                speed_limits=dict(states.speed_limits),
            )
        )
        return {"fleet": fleet, "closed_lanes": sorted(set(states.closed_lanes))}

    @app.get("/lanes/closed")
    def get_closed_lanes():
        return {
            "closed_lanes": [
                {"fleet": k.fleet, "index": k.index} for k in node.closed_lanes()
            ]
        }

    @app.get("/lanes/{fleet}/{index}")
    def get_lane(fleet: str, index: int):
        try:
            return node.lane_state(LaneKey(fleet, index))
        except LaneNotFound:
            raise HTTPException(status_code=404, detail=f"unknown lane {fleet}_{index}")

    @app.get("/snapshot")
    def get_snapshot():
        return node.snapshot()

    log.info("api created")
    return app
