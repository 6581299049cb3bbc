#!/usr/bin/env python3
"""
config.py
=========
Application-wide configuration constants.

Lane-blocker tunables live in :class:`blocker.policy.BlockerPolicy` and are
overridden through ``LANE_BLOCKER_*`` variables; the service defaults below
are overridden in :mod:`main`.  This module is import-safe:
it never imports from other project packages.
"""

# ── HTTP API defaults ────────────────────────────────────────────────────────
DEFAULT_API_HOST: str = "0.0.0.0"
DEFAULT_API_PORT: int = 8000

# ── Request bus defaults ─────────────────────────────────────────────────────
DEFAULT_DROP_RATE: float = 0.0

# ── Logging ──────────────────────────────────────────────────────────────────
DEFAULT_LOG_LEVEL: str = "INFO"
LOG_FILE: str = "lane_blocker.log"
ASSOCIATION_DEBUG_LOG_FILE: str = "association_debug.log"
