#!/usr/bin/env python3
"""
Lane open/closed and speed-limit state machines.
"""

from __future__ import annotations

import unittest
from typing import Dict, List

from blocker.decisions import (
    DecisionEngine,
    LaneAction,
    LaneRequest,
    LaneState,
    LaneStates,
    SpeedLimitRequest,
)
from blocker.lanes import LaneKey
from blocker.policy import BlockerPolicy

FLEET = "tinyRobot"
L0 = LaneKey(FLEET, 0)
L1 = LaneKey(FLEET, 1)


class RecordingPublisher:
    def __init__(self) -> None:
        self.sent: List[object] = []

    def publish(self, request) -> None:
        self.sent.append(request)


class FailingPublisher:
    def publish(self, request) -> None:
        raise RuntimeError("transport down")


class DecisionEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = DecisionEngine(BlockerPolicy(closure_threshold=3))
        self.counts: Dict[LaneKey, int] = {}

    def _decide(self, count: int, lane: LaneKey = L0, publisher=None) -> list:
        self.counts[lane] = count
        return self.engine.decide([lane], lambda k: self.counts.get(k, 0), publisher)

    def test_below_threshold_stays_open(self) -> None:
        self.assertEqual(self._decide(2), [])
        self.assertIs(self.engine.state(L0), LaneState.OPEN)

    def test_close_then_open_once_each(self) -> None:
        self.assertEqual(self._decide(3), [LaneRequest(FLEET, 0, LaneAction.CLOSE)])
        self.assertEqual(self._decide(4), [])
        self.assertEqual(self._decide(3), [])
        self.assertEqual(self.engine.closed_lanes(), {L0})
        self.assertEqual(self._decide(2), [LaneRequest(FLEET, 0, LaneAction.OPEN)])
        self.assertEqual(self._decide(2), [])
        self.assertIs(self.engine.state(L0), LaneState.OPEN)

    def test_oscillation_emits_one_event_per_crossing(self) -> None:
        events = []
        for count in (2, 3, 2, 3, 2, 3):
            events.extend(self._decide(count))
        actions = [r.action for r in events]
        self.assertEqual(
            actions,
            [LaneAction.CLOSE, LaneAction.OPEN, LaneAction.CLOSE, LaneAction.OPEN, LaneAction.CLOSE],
        )

    def test_publisher_receives_requests(self) -> None:
        publisher = RecordingPublisher()
        self._decide(5, publisher=publisher)
        self.assertEqual(publisher.sent, [LaneRequest(FLEET, 0, LaneAction.CLOSE)])
        self.assertEqual(
            publisher.sent[0].as_dict(), {"fleet": FLEET, "lane_index": 0, "action": "close"}
        )

    def test_failing_publisher_does_not_propagate(self) -> None:
        with self.assertLogs("decisions", level="ERROR"):
            requests = self._decide(5, publisher=FailingPublisher())
        self.assertEqual(len(requests), 1)
        self.assertIs(self.engine.state(L0), LaneState.CLOSED)

    def test_lanes_are_decided_in_key_order(self) -> None:
        self.counts = {L1: 3, L0: 3}
        requests = self.engine.decide([L1, L0], lambda k: self.counts[k])
        self.assertEqual([r.key for r in requests], [L0, L1])


class ExternalLaneStateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = DecisionEngine(BlockerPolicy(closure_threshold=3))
        self.engine.update_lane_states(LaneStates(FLEET, closed_lanes=frozenset({0})))

    def test_externally_closed_lane_is_adopted_silently(self) -> None:
        self.assertTrue(self.engine.externally_closed(L0))
        self.assertEqual(self.engine.decide([L0], lambda k: 4), [])
        self.assertIs(self.engine.state(L0), LaneState.CLOSED)

    def test_adopted_lane_is_never_reopened(self) -> None:
        self.engine.decide([L0], lambda k: 4)
        self.assertEqual(self.engine.decide([L0], lambda k: 0), [])
        self.assertIs(self.engine.state(L0), LaneState.OPEN)

    def test_own_closure_still_reopens(self) -> None:
        self.assertEqual(len(self.engine.decide([L1], lambda k: 3)), 1)
        self.assertEqual(
            self.engine.decide([L1], lambda k: 0), [LaneRequest(FLEET, 1, LaneAction.OPEN)]
        )

    def test_held_lanes(self) -> None:
        self.engine.decide([L0, L1], lambda k: 3)
        self.assertEqual(self.engine.held_lanes(FLEET), {L0, L1})
        self.assertEqual(self.engine.held_lanes("other"), set())

    def test_own_closure_missing_from_feed_is_sent_again(self) -> None:
        self.engine.decide([L1], lambda k: 3)
        stale = self.engine.update_lane_states(LaneStates(FLEET, closed_lanes=frozenset({0})))
        self.assertEqual(stale, {L1})
        self.assertEqual(
            self.engine.decide([L1], lambda k: 3), [LaneRequest(FLEET, 1, LaneAction.CLOSE)]
        )
        self.assertEqual(self.engine.decide([L1], lambda k: 3), [])

    def test_confirmed_closure_is_not_stale(self) -> None:
        self.engine.decide([L1], lambda k: 3)
        states = LaneStates(FLEET, closed_lanes=frozenset({0, 1}))
        self.assertEqual(self.engine.update_lane_states(states), set())
        self.assertEqual(self.engine.decide([L1], lambda k: 3), [])


class SpeedLimitTests(unittest.TestCase):
    def setUp(self) -> None:
        self.policy = BlockerPolicy(closure_threshold=4, speed_limit_threshold=2, speed_limit=0.3)
        self.engine = DecisionEngine(self.policy)

    def test_speed_limit_then_close(self) -> None:
        self.assertEqual(self.engine.decide([L0], lambda k: 1), [])
        self.assertEqual(
            self.engine.decide([L0], lambda k: 2), [SpeedLimitRequest(FLEET, 0, 0.3)]
        )
        self.assertEqual(self.engine.limited_lanes(), {L0})
        self.assertEqual(
            self.engine.decide([L0], lambda k: 4), [LaneRequest(FLEET, 0, LaneAction.CLOSE)]
        )
        cleared = self.engine.decide([L0], lambda k: 0)
        self.assertEqual(
            cleared,
            [LaneRequest(FLEET, 0, LaneAction.OPEN), SpeedLimitRequest(FLEET, 0, None)],
        )
        self.assertTrue(cleared[1].is_clear)
        self.assertEqual(self.engine.limited_lanes(), set())

    def test_disabled_without_threshold(self) -> None:
        engine = DecisionEngine(BlockerPolicy(closure_threshold=4))
        self.assertEqual(engine.decide([L0], lambda k: 3), [])
        self.assertEqual(engine.limited_lanes(), set())

    def test_fleet_speed_limit_is_adopted_silently(self) -> None:
        self.engine.update_lane_states(LaneStates(FLEET, speed_limits={0: 0.2}))
        self.assertTrue(self.engine.externally_limited(L0))
        self.assertEqual(self.engine.decide([L0], lambda k: 2), [])
        self.assertEqual(self.engine.limited_lanes(), {L0})
        self.assertEqual(self.engine.decide([L0], lambda k: 0), [])
        self.assertEqual(self.engine.limited_lanes(), set())

    def test_cleared_fleet_speed_limit_is_taken_over(self) -> None:
        self.engine.update_lane_states(LaneStates(FLEET, speed_limits={0: 0.2}))
        self.engine.decide([L0], lambda k: 2)
        self.assertEqual(self.engine.update_lane_states(LaneStates(FLEET)), {L0})
        self.assertEqual(
            self.engine.decide([L0], lambda k: 2), [SpeedLimitRequest(FLEET, 0, 0.3)]
        )
        self.assertEqual(
            self.engine.decide([L0], lambda k: 1), [SpeedLimitRequest(FLEET, 0, None)]
        )


if __name__ == "__main__":
    unittest.main()
