#!/usr/bin/env python3
"""
main.py
=======
Runs a :class:`~blocker.node.LaneBlockerNode` behind the HTTP API.

Usage::

    python main.py --port 8000 --graph fleet_a=graphs/fleet_a.json

Tunables come from ``LANE_BLOCKER_*`` environment variables
(see :func:`blocker.policy.policy_from_env`).
"""

import argparse
import json
import logging
from typing import List, Optional

import uvicorn

from config import DEFAULT_API_HOST, DEFAULT_API_PORT, DEFAULT_DROP_RATE, DEFAULT_LOG_LEVEL
from logging_setup import setup_logging
from blocker.api import create_app
from blocker.graph import NavGraph
from blocker.node import LaneBlockerNode
from blocker.policy import policy_from_env
from bus.fleet_bus import FleetBus


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Lane blocker service")
    parser.add_argument("--host", default=DEFAULT_API_HOST, help="API bind address")
    parser.add_argument("--port", type=int, default=DEFAULT_API_PORT, help="API port")
    parser.add_argument(
        "--drop-rate",
        type=float,
        default=DEFAULT_DROP_RATE,
        help="simulated request-bus packet loss (0.0-1.0)",
    )
    parser.add_argument(
        "--graph",
        action="append",
        default=[],
        metavar="FLEET=PATH",
        help="load a nav graph JSON file for a fleet at startup (repeatable)",
    )
    parser.add_argument("--log-level", default=DEFAULT_LOG_LEVEL, help="DEBUG, INFO, ...")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    setup_logging(getattr(logging, args.log_level.upper(), logging.INFO))
    log = logging.getLogger("main")

    policy = policy_from_env()
    log.info("policy %s", policy)

    node = LaneBlockerNode(policy=policy, bus=FleetBus(drop_rate=args.drop_rate))
    for item in args.graph:
        fleet, _, path = item.partition("=")
        with open(path, "r", encoding="utf-8") as fh:
            graph = NavGraph.from_dict(json.load(fh))
        if not node.on_graph(fleet, graph):
            raise SystemExit(f"malformed graph for fleet {fleet}: {path}")

    node.start()
    try:
        uvicorn.run(create_app(node), host=args.host, port=args.port)
    except KeyboardInterrupt:
        log.info("Shutting down...")
    finally:
        node.stop()


if __name__ == "__main__":
    main()
