"""Prometheus metrics for the Shipway proxy.

This module provides Prometheus metrics to monitor proxy behavior. Metrics
include:

- Handled requests by operation and HTTP status
- Carrier API calls by operation and outcome
- Carrier API latency
- Entities skipped because the operation was already recorded

Examples:
    Recording a handled request::

        from shipway_proxy.observability.metrics import record_request

        record_request(operation="onhold_orders", status_code=200)

    Recording a carrier call::

        from shipway_proxy.observability.metrics import record_carrier_call

        record_carrier_call(operation="push_orders", outcome="success", elapsed_seconds=0.42)
"""

from prometheus_client import Counter, Histogram

# Request counter by operation and status
requests_total = Counter(
    "shipway_proxy_requests_total",
    "Total number of requests handled by the proxy",
    ["operation", "status_code"],
)

# Carrier calls by operation and outcome (success, http_error, network_error)
carrier_calls_total = Counter(
    "shipway_proxy_carrier_calls_total",
    "Total number of carrier API calls",
    ["operation", "outcome"],
)

carrier_latency_seconds = Histogram(
    "shipway_proxy_carrier_latency_seconds",
    "Carrier API call latency in seconds",
    ["operation"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
)

# Entities whose outcome was already recorded, so no carrier call was made
skipped_total = Counter(
    "shipway_proxy_skipped_total",
    "Total number of entities skipped as already processed",
    ["operation"],
)


def record_request(operation: str, status_code: int) -> None:
    """Record a handled request.

    Args:
        operation: Operation name, e.g. "push_orders"
        status_code: HTTP status code of the response

    Examples:
        >>> record_request("push_orders", 200)
        >>> record_request("label_generation", 400)
    """
    requests_total.labels(operation=operation, status_code=str(status_code)).inc()


def record_carrier_call(operation: str, outcome: str, elapsed_seconds: float) -> None:
    """Record one carrier API call and its latency."""
    carrier_calls_total.labels(operation=operation, outcome=outcome).inc()
    carrier_latency_seconds.labels(operation=operation).observe(elapsed_seconds)


def record_skipped(operation: str, count: int = 1) -> None:
    """Record entities skipped because their outcome already exists."""
    if count > 0:
        skipped_total.labels(operation=operation).inc(count)
