"""Custom exceptions for the Shipway proxy.

This module defines the exception hierarchy used to signal validation
failures, missing or already-processed entities, store failures and carrier
API failures. Every exception carries the HTTP status it maps to, so the
HTTP adapter can render any of them without knowing which one it got.

Examples:
    Rejecting a request::

        from shipway_proxy.exceptions import ConflictError

        if existing.succeeded("awb_response"):
            raise ConflictError("AWB already generated for this order.")

    Handling a carrier failure::

        from shipway_proxy.exceptions import RemoteError

        try:
            result = await gateway.call(CarrierOperation.CANCEL_ORDERS, payload)
        except RemoteError as e:
            logger.error("carrier.call_failed", status=e.http_status)
"""

from typing import Any


class ShipwayProxyError(Exception):
    """Base exception for all proxy errors.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status the error is reported with.
        extra: Additional fields merged into the JSON error body.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            status_code: Overrides the class default HTTP status.
            extra: Additional fields for the error body.
        """
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}
        super().__init__(message)


class ValidationError(ShipwayProxyError):
    """Malformed or missing request input."""

    status_code = 400


class NotFoundError(ShipwayProxyError):
    """A referenced entity does not exist.

    Reported as 404 by default; operations that treat a missing entity as a
    bad request pass status_code=400.
    """

    status_code = 404


class ConflictError(ShipwayProxyError):
    """The entity is already in a state that forbids the operation.

    Examples: pushing an active order twice, generating a second AWB, or an
    onhold batch where every order is already on hold.
    """

    status_code = 400


class ConfigurationError(ShipwayProxyError):
    """A required setting (for example a carrier URL) is missing."""

    status_code = 500


class StoreError(ShipwayProxyError):
    """Entity store operation failed.

    Raised when the document store cannot be reached or a query fails.
    Adapters wrap backend-specific exceptions in this type.

    Attributes:
        cause: The underlying exception that caused the store error.

    Examples:
        Raising a store error::

            try:
                await collection.insert_one(document)
            except PyMongoError as e:
                raise StoreError(f"Failed to insert order: {e}", cause=e) from e
    """

    status_code = 500

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class RemoteError(ShipwayProxyError):
    """The carrier API returned a non-2xx response or could not be reached.

    Attributes:
        http_status: Carrier HTTP status, None for network failures.
        body: Decoded carrier response body, None for network failures.
    """

    def __init__(
        self,
        message: str,
        http_status: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message, status_code=http_status or 500)
        self.http_status = http_status
        self.body = body

    @property
    def carrier_message(self) -> str | None:
        """The ``message`` field of the carrier's error body, if any."""
        if isinstance(self.body, dict):
            message = self.body.get("message")
            if isinstance(message, str) and message:
                return message
        return None

    @property
    def detail(self) -> Any:
        """Carrier body when there is one, otherwise the error message."""
        return self.body if self.body not in (None, "") else self.message


class UnknownError(ShipwayProxyError):
    """Any failure not covered by the other error types."""

    status_code = 500
