"""ASGI application factory for the Shipway proxy.

This module builds the FastAPI application: it wires the entity store and
carrier gateway into :class:`ShipwayHandlers`, mounts the ``/api`` routes,
and renders every proxy error as a JSON body.

Error bodies:
    Proxy errors      -> {"success": false, "error": true, "message": ..., ...}
    Carrier failures  -> {"success": false, "error": <carrier body or message>}
    Malformed bodies  -> 400 {"success": false, "error": true, "message": ...}

Examples:
    Production app (settings from SHIPWAY_* environment variables)::

        from shipway_proxy.adapters.asgi import create_app

        app = create_app()

    Test app with injected collaborators::

        app = create_app(
            config=ProxyConfig(store_backend="memory", push_orders_url="https://carrier.test/push"),
            store=MemoryEntityStore(),
            gateway=CarrierGateway(config, client=httpx.AsyncClient(transport=transport)),
        )
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from shipway_proxy import __version__
from shipway_proxy.adapters.routes import router
from shipway_proxy.config import ProxyConfig
from shipway_proxy.core.handlers import ShipwayHandlers
from shipway_proxy.core.responses import error_body
from shipway_proxy.exceptions import ShipwayProxyError
from shipway_proxy.gateway import CarrierGateway
from shipway_proxy.models import utc_now
from shipway_proxy.observability.logging import get_logger
from shipway_proxy.storage.base import EntityStore
from shipway_proxy.storage.memory import MemoryEntityStore
from shipway_proxy.storage.mongo import MongoEntityStore

logger = get_logger(__name__)

SERVICE_NAME = "shipway-proxy"


def build_store(config: ProxyConfig) -> EntityStore:
    """Create the entity store selected by ``config.store_backend``."""
    if config.store_backend == "memory":
        return MemoryEntityStore()
    return MongoEntityStore.from_config(config)


def create_app(
    config: ProxyConfig | None = None,
    store: EntityStore | None = None,
    gateway: CarrierGateway | None = None,
) -> FastAPI:
    """Build the proxy application.

    Args:
        config: Proxy configuration. Loaded from the environment if omitted.
        store: Entity store. Built from ``config`` if omitted.
        gateway: Carrier gateway. Built from ``config`` if omitted.

    Returns:
        The FastAPI application. Collaborators created here are closed when
        the application shuts down; injected ones are left to the caller.
    """
    config = config or ProxyConfig.from_env()
    owns_store = store is None
    owns_gateway = gateway is None
    active_store = store if store is not None else build_store(config)
    active_gateway = gateway if gateway is not None else CarrierGateway(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "proxy.started",
            store_backend=type(active_store).__name__,
            read_timeout_seconds=config.read_timeout_seconds,
        )
        try:
            yield
        finally:
            if owns_gateway:
                await active_gateway.aclose()
            if owns_store and isinstance(active_store, MongoEntityStore):
                await active_store.close()
            logger.info("proxy.stopped")

    app = FastAPI(title="Shipway Proxy", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.handlers = ShipwayHandlers(store=active_store, gateway=active_gateway)

    @app.exception_handler(ShipwayProxyError)
    async def proxy_error_handler(request: Request, exc: ShipwayProxyError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("request.failed", path=request.url.path, status=exc.status_code, error=exc.message)
        else:
            logger.info("request.rejected", path=request.url.path, status=exc.status_code, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(error_body(exc)))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("request.malformed", path=request.url.path, errors=len(exc.errors()))
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": True, "message": "Request body must be a JSON object"},
        )

    @app.get("/")
    async def health() -> dict[str, object]:
        return {"ok": True, "service": SERVICE_NAME, "time": utc_now().isoformat()}

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(router)
    return app
