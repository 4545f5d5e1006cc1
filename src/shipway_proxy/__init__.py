"""
Shipway carrier API proxy.

This package relays order, shipment, NDR and warehouse operations to the
Shipway carrier API and reconciles every request against the outcomes
already recorded in its document store, so repeated or racing requests do
not repeat side effects at the carrier.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
