"""Utility modules for the Shipway proxy."""

from .headers import (
    SENSITIVE_HEADERS,
    basic_auth_token,
    carrier_headers,
    mask_headers,
)

__all__ = [
    "basic_auth_token",
    "carrier_headers",
    "mask_headers",
    "SENSITIVE_HEADERS",
]
