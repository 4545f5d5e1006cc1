"""HTTP routes for the Shipway proxy.

Every proxied operation is exposed under ``/api`` with the path names
existing clients already call (``pushOrders``, ``CreateOrderManifest``,
``getcarrier`` ...). Routes only translate between HTTP and
:class:`ShipwayHandlers`; all behavior lives in the handlers.
"""

from collections.abc import Awaitable
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from shipway_proxy.core.handlers import ShipwayHandlers
from shipway_proxy.core.responses import HandlerResponse
from shipway_proxy.exceptions import ShipwayProxyError, UnknownError
from shipway_proxy.observability.logging import get_logger
from shipway_proxy.observability.metrics import record_request

logger = get_logger(__name__)

router = APIRouter(prefix="/api")


def get_handlers(request: Request) -> ShipwayHandlers:
    return request.app.state.handlers  # type: ignore[no-any-return]


Handlers = Annotated[ShipwayHandlers, Depends(get_handlers)]
Payload = Annotated[dict[str, Any], Body()]


async def respond(operation: str, call: Awaitable[HandlerResponse]) -> JSONResponse:
    """Await a handler and render its response, counting the result.

    Proxy errors propagate to the application's error handler; anything
    else is logged and re-raised as UnknownError.
    """
    status_code = 500
    try:
        response = await call
        status_code = response.status
        return JSONResponse(status_code=response.status, content=jsonable_encoder(response.body))
    except ShipwayProxyError as e:
        status_code = e.status_code
        raise
    except Exception as e:
        logger.exception("request.unhandled_error", operation=operation)
        raise UnknownError(str(e) or "Internal Server Error") from e
    finally:
        record_request(operation, status_code)


@router.post("/pushOrders")
async def push_orders(payload: Payload, handlers: Handlers) -> JSONResponse:
    return await respond("push_orders", handlers.push_orders(payload))


@router.post("/labelGeneration")
async def label_generation(payload: Payload, handlers: Handlers) -> JSONResponse:
    return await respond("label_generation", handlers.label_generation(payload))


@router.post("/CreateOrderManifest")
async def create_manifest(payload: Payload, handlers: Handlers) -> JSONResponse:
    return await respond("create_manifest", handlers.create_manifest(payload))


@router.post("/createPickup")
async def create_pickup(payload: Payload, handlers: Handlers) -> JSONResponse:
    return await respond("create_pickup", handlers.create_pickup(payload))


@router.post("/OnholdOrders")
async def onhold_orders(payload: Payload, handlers: Handlers) -> JSONResponse:
    return await respond("onhold_orders", handlers.onhold_orders(payload))


@router.post("/CancelOrders")
async def cancel_orders(payload: Payload, handlers: Handlers) -> JSONResponse:
    return await respond("cancel_orders", handlers.cancel_orders(payload))


@router.post("/CancelShipment")
async def cancel_shipment(payload: Payload, handlers: Handlers) -> JSONResponse:
    return await respond("cancel_shipment", handlers.cancel_shipment(payload))


@router.get("/getOrders")
async def get_orders(handlers: Handlers) -> JSONResponse:
    return await respond("get_orders", handlers.get_orders())


@router.get("/getAllOrders")
async def get_all_orders(handlers: Handlers) -> JSONResponse:
    return await respond("get_all_orders", handlers.get_all_orders())


@router.post("/InsertOrder")
async def insert_order(payload: Payload, handlers: Handlers) -> JSONResponse:
    return await respond("insert_order", handlers.insert_order(payload))


@router.post("/ReAttempt")
async def reattempt(payload: Payload, handlers: Handlers) -> JSONResponse:
    return await respond("reattempt", handlers.reattempt(payload))


@router.post("/RTO")
async def rto(payload: Payload, handlers: Handlers) -> JSONResponse:
    return await respond("rto", handlers.rto(payload))


@router.post("/OrderDetails")
async def order_details(payload: Payload, handlers: Handlers) -> JSONResponse:
    return await respond("order_details", handlers.order_details(payload))


@router.get("/getcarrier")
async def get_carriers(handlers: Handlers) -> JSONResponse:
    return await respond("get_carriers", handlers.get_carriers())


@router.post("/warehouse")
async def warehouse(payload: Payload, handlers: Handlers) -> JSONResponse:
    return await respond("warehouse", handlers.warehouse(payload))


@router.get("/getwarehouses")
async def get_warehouses(handlers: Handlers) -> JSONResponse:
    return await respond("get_warehouses", handlers.get_warehouses())


@router.get("/pincodeserviceable")
async def pincode_serviceable(handlers: Handlers, pincode: str | None = None) -> JSONResponse:
    return await respond("pincode_serviceable", handlers.pincode_serviceable(pincode))
