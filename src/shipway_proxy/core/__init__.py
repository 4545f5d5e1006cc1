"""Core proxy logic.

This package contains the framework-independent behavior of the proxy:
- Reconciliation: per-operation decisions and outcome merges (pure)
- Validation: request payload checks
- Handlers: operations composing store, gateway and reconciliation
- Responses: handler results and error bodies

Adapters (FastAPI) wrap the handlers; nothing here imports a web framework.
"""

from shipway_proxy.core.handlers import ShipwayHandlers
from shipway_proxy.core.responses import HandlerResponse

__all__ = ["HandlerResponse", "ShipwayHandlers"]
