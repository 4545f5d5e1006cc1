"""HTTP adapters for the Shipway proxy.

- asgi.py: FastAPI application factory and error rendering
- routes.py: the ``/api`` endpoints
"""

from shipway_proxy.adapters.asgi import create_app

__all__ = ["create_app"]
