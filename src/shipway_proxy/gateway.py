"""Remote gateway to the carrier (Shipway) API.

This module provides a thin async HTTP client for the carrier API. Every
call carries the same Basic-Auth and content-type headers; read operations
(carrier listing, warehouse listing, pincode check) carry a bounded timeout,
write operations carry none. Nothing is retried: a failed call is raised
once as a RemoteError.

Examples:
    Calling the carrier::

        from shipway_proxy.config import ProxyConfig
        from shipway_proxy.gateway import CarrierGateway, CarrierOperation

        gateway = CarrierGateway(ProxyConfig.from_env())
        result = await gateway.call(CarrierOperation.ONHOLD_ORDERS, {"order_ids": ["A1"]})
        print(result.http_status, result.body)
        await gateway.aclose()

    Substituting the transport in tests::

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        gateway = CarrierGateway(config, client=client)
"""

import time
from enum import Enum
from typing import Any

import httpx

from shipway_proxy.config import ProxyConfig
from shipway_proxy.exceptions import ConfigurationError, RemoteError
from shipway_proxy.models import RemoteResult
from shipway_proxy.observability.logging import get_logger
from shipway_proxy.observability.metrics import record_carrier_call
from shipway_proxy.utils.headers import carrier_headers

logger = get_logger(__name__)


class CarrierOperation(str, Enum):
    """Carrier API operations, valued by their configuration name."""

    PUSH_ORDERS = "push_orders"
    LABEL_GENERATION = "label_generation"
    CREATE_MANIFEST = "create_manifest"
    CREATE_PICKUP = "create_pickup"
    ONHOLD_ORDERS = "onhold_orders"
    CANCEL_ORDERS = "cancel_orders"
    CANCEL_SHIPMENT = "cancel_shipment"
    GET_ORDERS = "get_orders"
    INSERT_ORDER = "insert_order"
    REATTEMPT = "reattempt"
    RTO = "rto"
    ORDER_DETAILS = "order_details"
    GET_CARRIERS = "get_carriers"
    WAREHOUSE = "warehouse"
    GET_WAREHOUSES = "get_warehouses"
    PINCODE_SERVICEABLE = "pincode_serviceable"

    @property
    def method(self) -> str:
        """HTTP method the carrier expects for this operation."""
        return "GET" if self in _GET_OPERATIONS else "POST"

    @property
    def is_bounded_read(self) -> bool:
        """True if calls for this operation carry the read timeout."""
        return self in _BOUNDED_READS


_GET_OPERATIONS = frozenset(
    {
        CarrierOperation.GET_ORDERS,
        CarrierOperation.GET_CARRIERS,
        CarrierOperation.GET_WAREHOUSES,
        CarrierOperation.PINCODE_SERVICEABLE,
    }
)

_BOUNDED_READS = frozenset(
    {
        CarrierOperation.GET_CARRIERS,
        CarrierOperation.GET_WAREHOUSES,
        CarrierOperation.PINCODE_SERVICEABLE,
    }
)


def decode_body(response: httpx.Response) -> Any:
    """Decode a carrier response body.

    Returns:
        The parsed JSON value, the raw text if the body is not JSON, or None
        for an empty body.
    """
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class CarrierGateway:
    """Async client for the carrier API.

    Attributes:
        config: Proxy configuration (credentials, URLs, read timeout).
    """

    def __init__(self, config: ProxyConfig, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the gateway.

        Args:
            config: Proxy configuration.
            client: HTTP client to use. A new one is created when omitted;
                either way the gateway owns it and closes it in aclose().
        """
        self.config = config
        self._headers = carrier_headers(config.username, config.password)
        self._client = client or httpx.AsyncClient()

    async def call(
        self,
        operation: CarrierOperation,
        payload: Any = None,
        params: dict[str, Any] | None = None,
    ) -> RemoteResult:
        """Perform one carrier call.

        Args:
            operation: The carrier operation.
            payload: JSON body for POST operations.
            params: Query parameters.

        Returns:
            RemoteResult with the carrier status and decoded body.

        Raises:
            ConfigurationError: If no URL is configured for the operation.
            RemoteError: On a non-2xx response or a network failure.
        """
        url = self.config.url_for(operation.value)
        if not url:
            raise ConfigurationError(f"No carrier URL configured for {operation.value}")

        method = operation.method
        # None disables httpx's default timeout for write operations
        timeout = float(self.config.read_timeout_seconds) if operation.is_bounded_read else None

        logger.debug(
            "carrier.call",
            operation=operation.value,
            method=method,
            url=url,
            headers=self._headers,
        )

        start_time = time.perf_counter()
        try:
            response = await self._client.request(
                method,
                url,
                json=payload if method == "POST" else None,
                params=params,
                headers=self._headers,
                timeout=timeout,
            )
        except httpx.RequestError as e:
            elapsed = time.perf_counter() - start_time
            record_carrier_call(operation.value, "network_error", elapsed)
            message = str(e) or e.__class__.__name__
            logger.error("carrier.request_failed", operation=operation.value, error=message)
            raise RemoteError(message) from e

        elapsed = time.perf_counter() - start_time
        body = decode_body(response)

        if not response.is_success:
            record_carrier_call(operation.value, "http_error", elapsed)
            logger.error(
                "carrier.call_failed",
                operation=operation.value,
                status=response.status_code,
                body=body,
            )
            raise RemoteError(
                f"Request failed with status code {response.status_code}",
                http_status=response.status_code,
                body=body,
            )

        record_carrier_call(operation.value, "success", elapsed)
        logger.debug("carrier.call_succeeded", operation=operation.value, status=response.status_code)
        return RemoteResult(http_status=response.status_code, body=body)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
