"""Header utilities for carrier API requests.

This module provides functions for:
- Building the Basic-Auth token from carrier credentials
- Building the fixed header set sent with every carrier call
- Masking credentials before headers are logged
"""

import base64
from typing import Any

# Headers whose values must never appear in logs
SENSITIVE_HEADERS = {
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
}


def basic_auth_token(username: str, password: str) -> str:
    """Encode carrier credentials for HTTP Basic authentication.

    Args:
        username: Carrier account user name
        password: Carrier account password

    Returns:
        The base64 token (without the "Basic " scheme prefix)

    Example:
        >>> basic_auth_token("user", "pass")
        'dXNlcjpwYXNz'
    """
    return base64.b64encode(f"{username}:{password}".encode()).decode("ascii")


def carrier_headers(username: str, password: str) -> dict[str, str]:
    """Build the static headers carried by every carrier call.

    Example:
        >>> carrier_headers("user", "pass")
        {'Authorization': 'Basic dXNlcjpwYXNz', 'Content-Type': 'application/json'}
    """
    return {
        "Authorization": f"Basic {basic_auth_token(username, password)}",
        "Content-Type": "application/json",
    }


def mask_headers(headers: dict[Any, Any]) -> dict[Any, Any]:
    """Return a copy of headers with sensitive values replaced.

    Header names are compared case-insensitively; non-string keys are kept
    as they are, so any logged mapping can be passed through.

    Example:
        >>> mask_headers({"Authorization": "Basic abc", "Content-Type": "application/json"})
        {'Authorization': '***', 'Content-Type': 'application/json'}
    """
    return {
        key: "***" if isinstance(key, str) and key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }
