#!/usr/bin/env python3
"""
FleetBus publish / poll, packet-drop injection and metrics.
"""

from __future__ import annotations

import unittest
from unittest import mock

from blocker.decisions import LaneAction, LaneRequest, SpeedLimitRequest
from blocker.publisher import LANE_CLOSURE_TOPIC, SPEED_LIMIT_TOPIC, RequestPublisher, topic_for
from bus.fleet_bus import FleetBus, should_drop

CLOSE = LaneRequest("alpha", 3, LaneAction.CLOSE)
OPEN = LaneRequest("alpha", 3, LaneAction.OPEN)


class FleetBusTests(unittest.TestCase):
    def test_publish_then_poll_clears_topic(self) -> None:
        bus = FleetBus()
        msg_id = bus.publish(LANE_CLOSURE_TOPIC, "lane_blocker", CLOSE)
        self.assertIsNotNone(msg_id)
        self.assertEqual(bus.pending(LANE_CLOSURE_TOPIC), 1)

        msgs = bus.poll(LANE_CLOSURE_TOPIC)
        self.assertEqual(len(msgs), 1)
        self.assertEqual(msgs[0].id, msg_id)
        self.assertEqual(msgs[0].sender, "lane_blocker")
        self.assertIs(msgs[0].request, CLOSE)
        self.assertEqual(msgs[0].kind, "close")
        self.assertEqual(msgs[0].lane, "alpha_3")
        self.assertEqual(msgs[0].payload, {"fleet": "alpha", "lane_index": 3, "action": "close"})
        self.assertEqual(bus.poll(LANE_CLOSURE_TOPIC), [])
        self.assertEqual(bus.poll("never_used"), [])

    def test_drop_returns_none_and_counts(self) -> None:
        bus = FleetBus(drop_rate=1.0)
        with self.assertLogs("bus.fleet_bus", level="WARNING"):
            self.assertIsNone(bus.publish(LANE_CLOSURE_TOPIC, "s", CLOSE))
        self.assertEqual(bus.pending(LANE_CLOSURE_TOPIC), 0)
        report = bus.metrics.report()
        self.assertEqual((report["published"], report["dropped"]), (0, 1))
        self.assertEqual(report["requests"], {"close": {"dropped": 1}})

    def test_metrics_per_topic_and_kind(self) -> None:
        bus = FleetBus()
        bus.publish(LANE_CLOSURE_TOPIC, "s", CLOSE)
        bus.publish(LANE_CLOSURE_TOPIC, "s", OPEN)
        bus.publish(SPEED_LIMIT_TOPIC, "s", SpeedLimitRequest("alpha", 3, 0.5))
        bus.poll(LANE_CLOSURE_TOPIC)
        self.assertEqual(
            bus.metrics.report(),
            {
                "published": 3,
                "dropped": 0,
                "polled": 2,
                "topics": {
                    LANE_CLOSURE_TOPIC: {"published": 2},
                    SPEED_LIMIT_TOPIC: {"published": 1},
                },
                "requests": {
                    "close": {"published": 1},
                    "limit": {"published": 1},
                    "open": {"published": 1},
                },
            },
        )


class DropTests(unittest.TestCase):
    def test_should_drop_bounds(self) -> None:
        self.assertFalse(should_drop(0.0))
        self.assertTrue(should_drop(1.0))
        with mock.patch("bus.fleet_bus.random.random", return_value=0.2):
            self.assertTrue(should_drop(0.5))
            self.assertFalse(should_drop(0.1))

    def test_message_ids_are_unique(self) -> None:
        bus = FleetBus()
        self.assertNotEqual(
            bus.publish(LANE_CLOSURE_TOPIC, "s", CLOSE),
            bus.publish(LANE_CLOSURE_TOPIC, "s", CLOSE),
        )


class RequestPublisherTests(unittest.TestCase):
    def test_routes_by_request_type(self) -> None:
        bus = FleetBus()
        publisher = RequestPublisher(bus)
        publisher.publish(LaneRequest("alpha", 2, LaneAction.CLOSE))
        publisher.publish(SpeedLimitRequest("alpha", 2, 0.4))
        publisher.publish(SpeedLimitRequest("alpha", 2, None))

        closures = bus.poll(LANE_CLOSURE_TOPIC)
        self.assertEqual(
            [m.payload for m in closures],
            [{"fleet": "alpha", "lane_index": 2, "action": "close"}],
        )
        limits = bus.poll(SPEED_LIMIT_TOPIC)
        self.assertEqual([m.payload["limit"] for m in limits], [0.4, None])
        self.assertEqual([m.kind for m in limits], ["limit", "clear"])

    def test_dropped_request_is_logged(self) -> None:
        publisher = RequestPublisher(FleetBus(drop_rate=1.0))
        with self.assertLogs("decisions", level="WARNING"):
            self.assertIsNone(publisher.publish(CLOSE))

    def test_unknown_request_type(self) -> None:
        with self.assertRaises(TypeError):
            topic_for(object())


if __name__ == "__main__":
    unittest.main()
