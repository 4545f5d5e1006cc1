"""Command-line entry point: serve the proxy with uvicorn.

Run with::

    SHIPWAY_USERNAME=ops@example.com SHIPWAY_PASSWORD=secret shipway-proxy
"""

import uvicorn

from shipway_proxy.adapters.asgi import create_app
from shipway_proxy.config import ProxyConfig
from shipway_proxy.observability.logging import configure_logging


def run() -> None:
    config = ProxyConfig.from_env()
    configure_logging(level=config.log_level, json_output=config.json_logs)
    uvicorn.run(
        create_app(config),
        host=config.http_host,
        port=config.http_port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
