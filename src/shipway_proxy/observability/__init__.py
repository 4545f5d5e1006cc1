"""Observability utilities for the Shipway proxy.

This package provides monitoring and debugging capabilities:
- Prometheus metrics for request, carrier call and skip tracking
- Structured logging with contextual information
"""

from shipway_proxy.observability.logging import configure_logging, get_logger
from shipway_proxy.observability.metrics import (
    record_carrier_call,
    record_request,
    record_skipped,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "record_request",
    "record_carrier_call",
    "record_skipped",
]
