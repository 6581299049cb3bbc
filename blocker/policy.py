#!/usr/bin/env python3
"""
blocker/policy.py
=================
Tunable parameters for the lane blocker.  Every constant lives in the
frozen :class:`BlockerPolicy` dataclass so that deployments and tests can
swap policies without touching code.

:func:`policy_from_env` builds a policy from ``LANE_BLOCKER_*``
environment variables (see :mod:`main`).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional

ENV_PREFIX = "LANE_BLOCKER_"


@dataclass(frozen=True)
class BlockerPolicy:
    """Immutable bag of every tunable lane-blocker parameter.

    Groups: frames and transforms, lane geometry, association,
    decisions, cadence.
    """

    # ── Frames / transforms ───────────────────────────────────────────────
    planar_frame: str = "map"
    """Shared planar frame every obstacle is transformed into."""

    transform_timeout_s: float = 0.5
    """Upper bound on a single transform lookup during ingestion."""

    # ── Lane geometry ─────────────────────────────────────────────────────
    lane_half_width: float = 0.5
    """Half of the lane rectangle's width (metres)."""

    # ── Association ───────────────────────────────────────────────────────
    vicinity_threshold: float = 0.25
    """Gap (metres) under which a non-intersecting obstacle still counts."""

    obstacle_ttl_s: float = 1.0
    """Lifespan of an obstacle record after its report stamp."""

    geometry_epsilon: float = 1e-6
    """Tolerance for the inclusive interval-overlap comparison."""

    # ── Decisions ─────────────────────────────────────────────────────────
    closure_threshold: int = 5
    """Number of vicinity obstacles that closes a lane."""

    speed_limit_threshold: Optional[int] = None
    """Optional lower count that speed-limits a lane; ``None`` disables."""

    speed_limit: float = 0.5
    """Limit (m/s) published when a lane is speed-limited."""

    # ── Cadence ───────────────────────────────────────────────────────────
    process_period_s: float = 1.0
    """Period of the association / decision cycle."""

    cull_period_s: float = 1.0
    """Period of the expiry cycle."""

    def __post_init__(self) -> None:
        for name in ("transform_timeout_s", "obstacle_ttl_s",
                     "process_period_s", "cull_period_s"):
            if getattr(self, name) <= 0.0:
                raise ValueError(f"{name} must be positive")
        for name in ("lane_half_width", "vicinity_threshold",
                     "geometry_epsilon", "speed_limit"):
            if getattr(self, name) < 0.0:
                raise ValueError(f"{name} must not be negative")
        if self.closure_threshold < 1:
            raise ValueError("closure_threshold must be at least 1")
        if self.speed_limit_threshold is not None:
            if not 1 <= self.speed_limit_threshold < self.closure_threshold:
                raise ValueError(
                    "speed_limit_threshold must be in [1, closure_threshold)"
                )

    def thresholds(self) -> tuple:
        """Every configured count threshold, closure first."""
        if self.speed_limit_threshold is None:
            return (self.closure_threshold,)
        return (self.closure_threshold, self.speed_limit_threshold)


def _coerce(raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


def policy_from_env(
    environ: Optional[Mapping[str, str]] = None,
    base: Optional[BlockerPolicy] = None,
) -> BlockerPolicy:
    """Build a :class:`BlockerPolicy` from ``LANE_BLOCKER_<FIELD>`` variables.

    Unset variables keep the value from *base* (or the dataclass default).
    ``LANE_BLOCKER_SPEED_LIMIT_THRESHOLD`` accepts ``none`` / empty to
    disable speed limiting.
    """
    environ = os.environ if environ is None else environ
    base = base or BlockerPolicy()
    overrides = {}
    for f in fields(BlockerPolicy):
        raw = environ.get(ENV_PREFIX + f.name.upper())
        if raw is None:
            continue
        if f.name == "speed_limit_threshold":
            raw = raw.strip()
            overrides[f.name] = None if raw.lower() in ("", "none") else int(raw)
            continue
        overrides[f.name] = _coerce(raw, getattr(base, f.name))
    if not overrides:
        return base
    return replace(base, **overrides)
