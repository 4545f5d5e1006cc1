"""Request payload validation.

Field checks run before any store read or carrier call. A value counts as
missing when it is absent, null or the empty string; the ``truthy`` checks
also treat other falsy values (0, empty list) as missing.
"""

from collections.abc import Iterable
from typing import Any

from shipway_proxy.exceptions import ValidationError


def is_missing(value: Any) -> bool:
    """Return True if a payload value is absent, null or empty.

    Examples:
        >>> is_missing(None), is_missing(""), is_missing(0), is_missing([])
        (True, True, False, False)
    """
    return value is None or value == ""


def missing_fields(payload: dict[str, Any], fields: Iterable[str]) -> list[str]:
    """Return the names of required fields missing from the payload, in order."""
    return [name for name in fields if is_missing(payload.get(name))]


def require_fields(payload: dict[str, Any], fields: Iterable[str]) -> None:
    """Require every field, reporting all missing ones at once.

    Raises:
        ValidationError: "Missing required fields: a, b".
    """
    missing = missing_fields(payload, fields)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def require_each(payload: dict[str, Any], fields: Iterable[str], *, truthy: bool = False) -> None:
    """Require every field, reporting the first missing one.

    Raises:
        ValidationError: "<field> is required".
    """
    for name in fields:
        value = payload.get(name)
        if (not value) if truthy else is_missing(value):
            raise ValidationError(f"{name} is required")


def require_all(payload: dict[str, Any], fields: Iterable[str], message: str) -> None:
    """Require every field to be truthy, reporting a fixed message."""
    if not all(payload.get(name) for name in fields):
        raise ValidationError(message)


def require_id_list(payload: dict[str, Any], field: str, message: str) -> list[Any]:
    """Return ``payload[field]`` if it is a non-empty list.

    Raises:
        ValidationError: With ``message`` otherwise.
    """
    value = payload.get(field)
    if not isinstance(value, list) or not value:
        raise ValidationError(message)
    return value
