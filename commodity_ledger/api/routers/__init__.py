"""API router package for endpoint composition."""

from .contracts import api_create_contracts_router
from .health import api_create_health_router
from .inventory import api_create_inventory_router
from .reference_data import api_create_reference_data_router
from .shipments import api_create_shipments_router
from .trades import api_create_trades_router

__all__ = [
    "api_create_contracts_router",
    "api_create_health_router",
    "api_create_inventory_router",
    "api_create_reference_data_router",
    "api_create_shipments_router",
    "api_create_trades_router",
]
