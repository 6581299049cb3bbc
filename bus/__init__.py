"""
bus — In-memory request transport
=================================

Provides a lightweight pub/sub transport layer with optional packet-loss
simulation, standing in for the middleware that carries lane-closure and
speed-limit requests to fleet adapters.

Modules
-------
message
    :class:`BusMessage` envelope around one typed request.
fleet_bus
    :class:`FleetBus` publish / poll transport and drop injection.
metrics
    :class:`BusMetrics` totals and per-topic / per-kind counters.
"""

from .message import BusMessage
from .fleet_bus import FleetBus, should_drop
from .metrics import BusMetrics

__all__ = [
    "BusMessage",
    "FleetBus",
    "BusMetrics",
    "should_drop",
]
