"""Framework-independent handler responses.

Handlers return a HandlerResponse; the HTTP adapter turns it into a JSON
response. Error responses raised as ShipwayProxyError are rendered by the
adapter with :func:`error_body`.

Examples:
    Returning a batch result::

        return HandlerResponse(200, {"success": True, "results": results})
"""

from typing import Any

from shipway_proxy.exceptions import RemoteError, ShipwayProxyError


class HandlerResponse:
    """Status and JSON body produced by an operation handler.

    Attributes:
        status: HTTP status code
        body: JSON-serializable response body
    """

    def __init__(self, status: int, body: Any) -> None:
        self.status = status
        self.body = body

    def __repr__(self) -> str:
        return f"HandlerResponse(status={self.status}, body={self.body!r})"


def error_body(error: ShipwayProxyError) -> dict[str, Any]:
    """Build the JSON body for a raised proxy error.

    Carrier failures report the carrier's own body (or the failure message)
    under ``error``; every other error reports ``error: true`` with a
    ``message`` and any extra context fields.

    Examples:
        >>> error_body(ShipwayProxyError("AWB already generated for this order.", status_code=400))
        {'success': False, 'error': True, 'message': 'AWB already generated for this order.'}
    """
    if isinstance(error, RemoteError):
        return {"success": False, "error": error.detail}
    return {"success": False, "error": True, "message": error.message, **error.extra}


def carrier_error_response(error: RemoteError) -> HandlerResponse:
    """Response for read operations that relay a carrier HTTP failure."""
    return HandlerResponse(
        error.status_code,
        {"success": False, "error": "Shipway API error", "details": error.detail},
    )
