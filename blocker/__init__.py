"""
blocker — Lane blocker core
===========================

Modules
-------
geometry
    :class:`CollisionGeometry` rectangles and the oriented-rectangle
    intersection / gap test.
graph
    :class:`NavGraph` per-fleet waypoint topology.
lanes
    :class:`LaneKey` and the per-fleet :class:`LaneIndex`.
transforms
    :class:`StaticTransformBuffer` frame lookups with a bounded wait.
obstacles
    Obstacle reports and the expiring :class:`ObstacleCache`.
association
    Bidirectional :class:`Membership` and the :class:`AssociationEngine`.
decisions
    :class:`DecisionEngine` open/closed and speed-limit state machines.
cull
    :class:`CullEngine` expiry of stale obstacles.
policy
    :class:`BlockerPolicy` tunable constants.
engine
    :class:`LaneBlocker` facade over one shared context.
node
    :class:`LaneBlockerNode` background-thread runner.
api
    Optional FastAPI front end (imported on demand).
"""

from blocker.policy import BlockerPolicy, policy_from_env
from blocker.lanes import LaneKey, LaneNotFound
from blocker.obstacles import ObstacleKey, ObstacleReport
from blocker.decisions import LaneAction, LaneRequest, LaneState, LaneStates, SpeedLimitRequest
from blocker.engine import LaneBlocker
from blocker.node import LaneBlockerNode

__all__ = [
    "BlockerPolicy",
    "policy_from_env",
    "LaneKey",
    "LaneNotFound",
    "ObstacleKey",
    "ObstacleReport",
    "LaneAction",
    "LaneRequest",
    "LaneState",
    "LaneStates",
    "SpeedLimitRequest",
    "LaneBlocker",
    "LaneBlockerNode",
]
