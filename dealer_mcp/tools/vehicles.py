"""Vehicle lifecycle tool implementations."""

from __future__ import annotations

from typing import Any

from dealer_mcp.data.registry import get_store, vehicle_manager
from dealer_mcp.errors import FieldError, ValidationError
from dealer_mcp.models import VehicleStatus, parse_enum
from dealer_mcp.tools.common import run_tool


def create_vehicle_impl(vehicle: dict[str, Any]) -> str:
    return run_tool("create_vehicle", lambda: vehicle_manager().create_vehicle(vehicle))


def get_vehicle_impl(vehicle_id: str) -> str:
    return run_tool("get_vehicle", lambda: vehicle_manager().get_vehicle(vehicle_id.strip()))


def get_vehicle_by_vin_impl(vin: str) -> str:
    return run_tool("get_vehicle_by_vin", lambda: vehicle_manager().get_vehicle_by_vin(vin))


def update_vehicle_impl(vehicle_id: str, changes: dict[str, Any]) -> str:
    return run_tool(
        "update_vehicle",
        lambda: vehicle_manager().update_vehicle(vehicle_id.strip(), changes),
    )


def set_vehicle_status_impl(vehicle_id: str, status: str) -> str:
    return run_tool(
        "set_vehicle_status",
        lambda: vehicle_manager().set_status(vehicle_id.strip(), status),
    )


def delete_vehicle_impl(vehicle_id: str) -> str:
    def _delete() -> dict[str, Any]:
        vehicle_manager().delete_vehicle(vehicle_id.strip())
        return {"vehicle_id": vehicle_id.strip(), "deleted": True}

    return run_tool("delete_vehicle", _delete)


def list_vehicles_impl(status: str = "") -> str:
    """List vehicles, optionally narrowed to one status."""
    def _list() -> dict[str, Any]:
        resolved = None
        if status.strip():
            resolved = parse_enum(VehicleStatus, status)
            if resolved is None:
                allowed = ", ".join(s.value for s in VehicleStatus)
                raise ValidationError([FieldError("status", f"must be one of {allowed}")])
        vehicles = get_store().list_vehicles(status=resolved)
        return {"count": len(vehicles), "vehicles": [v.to_dict() for v in vehicles]}

    return run_tool("list_vehicles", _list)
