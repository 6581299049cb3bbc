#!/usr/bin/env python3
"""
Quick demo — drives a lane blocker through a scripted scenario without
threads or HTTP, so you can watch closures and re-openings on the bus.

Scenario:
    1. Load a 2x3 grid graph for fleet ``tinyRobot``.
    2. A lidar drops five boxes on the r0c0-r0c1 corridor → lanes 0 and 1
       (one per direction) are speed-limited and closed.
    3. The boxes expire → both lanes re-open.

Usage:
    python3 demo.py
"""

import logging

from logging_setup import setup_logging
from blocker.engine import LaneBlocker
from blocker.graph import grid_graph
from blocker.obstacles import BoundingBox3D, ObstacleReport, Pose3D
from blocker.policy import BlockerPolicy
from blocker.publisher import LANE_CLOSURE_TOPIC, SPEED_LIMIT_TOPIC, RequestPublisher
from blocker.transforms import RigidTransform, StaticTransformBuffer
from bus.fleet_bus import FleetBus

FLEET = "tinyRobot"


class DemoClock:
    """Manually advanced clock so the scenario is deterministic."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, dt: float) -> None:
        self.now += dt


def _box(index: int, x: float, y: float, stamp: float) -> ObstacleReport:
    return ObstacleReport(
        source="lidar",
        id=index,
        bbox=BoundingBox3D(center=Pose3D.from_yaw(x, y), size_x=0.4, size_y=0.4, size_z=1.0),
        frame_id="lidar_link",
        stamp=stamp,
    )


def _drain(bus: FleetBus) -> None:
    for topic in (LANE_CLOSURE_TOPIC, SPEED_LIMIT_TOPIC):
        for msg in bus.poll(topic):
            print(f"  [{topic}] {msg.payload}")


def main():
    setup_logging(logging.WARNING)

    clock = DemoClock(start=100.0)
    bus = FleetBus()
    transforms = StaticTransformBuffer()
    # lidar mounted 1 m east of the map origin
    transforms.set_transform("lidar_link", "map", RigidTransform(x=1.0))

    blocker = LaneBlocker(
        policy=BlockerPolicy(closure_threshold=5, speed_limit_threshold=2, obstacle_ttl_s=2.0),
        transforms=transforms,
        publisher=RequestPublisher(bus),
        clock=clock,
    )
    blocker.load_graph(FLEET, grid_graph(rows=2, cols=3, spacing=10.0))
    print(f"Loaded {blocker.snapshot()['lane_count']} lanes for {FLEET}")

    # lanes 0 and 1 join r0c0 and r0c1 along y = 0, x in [0, 10]; lidar x is map x - 1
    print("\nFive boxes on lanes 0 and 1:")
    for i in range(5):
        blocker.ingest(_box(i, x=1.0 + i * 1.5, y=0.1, stamp=clock()))
    blocker.process()
    _drain(bus)
    print(f"  closed: {[str(k) for k in blocker.closed_lanes()]}")

    print("\nNothing changes, nothing is published:")
    blocker.process()
    _drain(bus)

    print("\nBoxes expire:")
    clock.advance(2.5)
    blocker.cull()
    _drain(bus)
    print(f"  closed: {[str(k) for k in blocker.closed_lanes()]}")

    print(f"\nBus metrics: {bus.metrics.report()}")


if __name__ == "__main__":
    main()
