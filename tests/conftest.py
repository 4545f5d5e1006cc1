"""
Pytest configuration and shared fixtures for shipway_proxy tests.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from shipway_proxy.adapters.asgi import create_app
from shipway_proxy.config import CARRIER_OPERATIONS, ProxyConfig
from shipway_proxy.core.handlers import ShipwayHandlers
from shipway_proxy.gateway import CarrierGateway
from shipway_proxy.storage.memory import MemoryEntityStore

CARRIER_BASE = "https://carrier.test"

Reply = tuple[int, Any] | Callable[[httpx.Request, Any], httpx.Response]


@dataclass
class CarrierCall:
    """One request received by the fake carrier."""

    operation: str
    method: str
    json: Any
    params: dict[str, str]
    headers: httpx.Headers
    timeout: dict[str, Any]


@dataclass
class FakeCarrier:
    """Scripted carrier API served through httpx.MockTransport.

    Replies are registered per operation name (the last URL path segment).
    A reply is either ``(status, body)`` or a callable returning an
    httpx.Response; a list of replies is consumed one per call.
    """

    replies: dict[str, Any] = field(default_factory=dict)
    calls: list[CarrierCall] = field(default_factory=list)

    def reply(self, operation: str, status: int = 200, body: Any = None) -> None:
        self.replies[operation] = (status, body)

    def reply_sequence(self, operation: str, replies: list[Reply]) -> None:
        self.replies[operation] = list(replies)

    def fail_network(self, operation: str) -> None:
        def raise_connect_error(request: httpx.Request, _: Any) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.replies[operation] = raise_connect_error

    def calls_to(self, operation: str) -> list[CarrierCall]:
        return [call for call in self.calls if call.operation == operation]

    def handler(self, request: httpx.Request) -> httpx.Response:
        operation = request.url.path.rsplit("/", 1)[-1]
        payload = json.loads(request.content) if request.content else None
        self.calls.append(
            CarrierCall(
                operation=operation,
                method=request.method,
                json=payload,
                params=dict(request.url.params),
                headers=request.headers,
                timeout=request.extensions.get("timeout", {}),
            )
        )

        reply = self.replies.get(operation)
        if isinstance(reply, list):
            reply = reply.pop(0) if len(reply) > 1 else reply[0]
        if reply is None:
            return httpx.Response(404, json={"success": False, "message": f"no reply for {operation}"})
        if callable(reply):
            return reply(request, payload)
        status, body = reply
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)


def carrier_config(**overrides: Any) -> ProxyConfig:
    """ProxyConfig pointing every operation at the fake carrier."""
    settings: dict[str, Any] = {
        "username": "ops@example.com",
        "password": "secret",
        "store_backend": "memory",
        "json_logs": False,
    }
    settings.update({f"{operation}_url": f"{CARRIER_BASE}/{operation}" for operation in CARRIER_OPERATIONS})
    settings.update(overrides)
    return ProxyConfig(**settings)


@pytest.fixture
def config() -> ProxyConfig:
    return carrier_config()


@pytest.fixture
def carrier() -> FakeCarrier:
    return FakeCarrier()


@pytest.fixture
def store() -> MemoryEntityStore:
    """Create a fresh memory store for each test."""
    return MemoryEntityStore()


@pytest.fixture
def gateway(config: ProxyConfig, carrier: FakeCarrier) -> CarrierGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(carrier.handler))
    return CarrierGateway(config, client=client)


@pytest.fixture
def handlers(store: MemoryEntityStore, gateway: CarrierGateway) -> ShipwayHandlers:
    return ShipwayHandlers(store=store, gateway=gateway)


@pytest.fixture
def app(config: ProxyConfig, store: MemoryEntityStore, gateway: CarrierGateway) -> FastAPI:
    return create_app(config=config, store=store, gateway=gateway)


@pytest.fixture
def client(app: FastAPI):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def order_payload() -> dict[str, Any]:
    """A complete push-order payload."""
    return {
        "order_id": "A1",
        "products": [{"product": "Mug", "price": "250", "product_quantity": "1"}],
        "payment_type": "P",
        "shipping_country": "India",
        "shipping_phone": "9999999999",
        "shipping_zipcode": "411001",
        "order_total": "250",
    }


@pytest.fixture
def warehouse_payload() -> dict[str, Any]:
    return {
        "title": "Main",
        "company": "Acme",
        "contact_person_name": "Asha",
        "email": "asha@example.com",
        "phone": "9999999999",
        "address_1": "1 Mill Road",
        "city": "Pune",
        "state": "Maharashtra",
        "country": "India",
        "pincode": "411001",
    }
