"""Lifecycle managers for vehicles, customers and sales."""

from dealer_mcp.lifecycle.customers import CustomerManager
from dealer_mcp.lifecycle.sales import SaleLifecycleManager, VehicleStatusPort
from dealer_mcp.lifecycle.vehicles import VehicleLifecycleManager

__all__ = [
    "CustomerManager",
    "SaleLifecycleManager",
    "VehicleLifecycleManager",
    "VehicleStatusPort",
]
