#!/usr/bin/env python3
"""
BlockerPolicy validation and environment overrides.
"""

from __future__ import annotations

import unittest

from blocker.policy import BlockerPolicy, policy_from_env


class BlockerPolicyTests(unittest.TestCase):
    def test_defaults(self) -> None:
        policy = BlockerPolicy()
        self.assertEqual(policy.planar_frame, "map")
        self.assertEqual(policy.closure_threshold, 5)
        self.assertIsNone(policy.speed_limit_threshold)
        self.assertEqual(policy.thresholds(), (5,))

    def test_thresholds_with_speed_limit(self) -> None:
        policy = BlockerPolicy(closure_threshold=4, speed_limit_threshold=2)
        self.assertEqual(policy.thresholds(), (4, 2))

    def test_rejects_bad_values(self) -> None:
        bad = [
            {"process_period_s": 0.0},
            {"cull_period_s": -1.0},
            {"obstacle_ttl_s": 0.0},
            {"transform_timeout_s": 0.0},
            {"lane_half_width": -0.1},
            {"vicinity_threshold": -0.1},
            {"closure_threshold": 0},
            {"closure_threshold": 3, "speed_limit_threshold": 3},
            {"speed_limit_threshold": 0},
        ]
        for kwargs in bad:
            with self.assertRaises(ValueError, msg=str(kwargs)):
                BlockerPolicy(**kwargs)

    def test_policy_from_env(self) -> None:
        env = {
            "LANE_BLOCKER_PLANAR_FRAME": "world",
            "LANE_BLOCKER_CLOSURE_THRESHOLD": "3",
            "LANE_BLOCKER_OBSTACLE_TTL_S": "2.5",
            "LANE_BLOCKER_SPEED_LIMIT_THRESHOLD": "2",
            "UNRELATED": "x",
        }
        policy = policy_from_env(env)
        self.assertEqual(policy.planar_frame, "world")
        self.assertEqual(policy.closure_threshold, 3)
        self.assertEqual(policy.obstacle_ttl_s, 2.5)
        self.assertEqual(policy.speed_limit_threshold, 2)

    def test_policy_from_env_disables_speed_limit(self) -> None:
        base = BlockerPolicy(speed_limit_threshold=2)
        policy = policy_from_env({"LANE_BLOCKER_SPEED_LIMIT_THRESHOLD": "none"}, base=base)
        self.assertIsNone(policy.speed_limit_threshold)

    def test_policy_from_env_without_overrides_keeps_base(self) -> None:
        base = BlockerPolicy(closure_threshold=7)
        self.assertIs(policy_from_env({}, base=base), base)

    def test_policy_from_env_validates(self) -> None:
        with self.assertRaises(ValueError):
            policy_from_env({"LANE_BLOCKER_CLOSURE_THRESHOLD": "0"})


if __name__ == "__main__":
    unittest.main()
