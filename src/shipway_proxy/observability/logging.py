"""structlog setup for the Shipway proxy.

Events are dotted names with the entity key and outcome as context, for
example ``order.pushed`` (``order_id``), ``carrier.call_failed``
(``operation``, ``status``) or ``onhold.skipped`` (``order_id``, ``reason``).

Every event passes through :func:`redact_credentials` before it is rendered,
so the carrier's Basic-auth header can be logged as part of a request's
``headers`` without leaking the account password.

Examples:
    At startup::

        configure_logging(level="INFO", json_output=True)

    In a module::

        logger = get_logger(__name__)
        logger.info("order.pushed", order_id="A1", status_message="Order has been added successfully.")

    renders as::

        {"order_id": "A1", "status_message": "Order has been added successfully.",
         "event": "order.pushed", "level": "info", "timestamp": "2024-01-01T00:00:00.000000Z"}
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

from shipway_proxy.utils.headers import SENSITIVE_HEADERS, mask_headers


def redact_credentials(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor that masks credentials in an event.

    A top-level key named like a sensitive header is replaced outright;
    mapping values (``headers=...``) are masked key by key.

    Examples:
        >>> redact_credentials(None, "debug", {"event": "carrier.call", "headers": {"Authorization": "Basic abc"}})
        {'event': 'carrier.call', 'headers': {'Authorization': '***'}}
        >>> redact_credentials(None, "info", {"event": "x", "authorization": "Basic abc"})
        {'event': 'x', 'authorization': '***'}
    """
    for key, value in list(event_dict.items()):
        if key.lower() in SENSITIVE_HEADERS:
            event_dict[key] = "***"
        elif isinstance(value, dict):
            event_dict[key] = mask_headers(value)
    return event_dict


def build_processors(json_output: bool) -> list[Any]:
    """Processor chain shared by every logger, renderer last."""
    renderer: Any = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=True)
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_credentials,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """Configure structlog once, at process start.

    The standard library root logger is pointed at stdout at the same level,
    since uvicorn and pymongo log through it.

    Args:
        level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL (any case)
        json_output: JSON lines when True, colored console output otherwise
    """
    numeric_level = getattr(logging, level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    structlog.configure(
        processors=build_processors(json_output),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Return the structlog logger for a module (pass ``__name__``)."""
    return structlog.get_logger(name)
