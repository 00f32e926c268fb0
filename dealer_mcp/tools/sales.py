"""Sale lifecycle tool implementations."""

from __future__ import annotations

from typing import Any

from dealer_mcp.data.registry import get_store, sale_manager
from dealer_mcp.errors import FieldError, ValidationError
from dealer_mcp.models import SaleStatus, parse_enum
from dealer_mcp.tools.common import run_tool


def create_sale_impl(sale: dict[str, Any]) -> str:
    """Open a PENDING sale and reserve its vehicle."""
    return run_tool("create_sale", lambda: sale_manager().create_sale(sale))


def get_sale_impl(sale_id: str) -> str:
    return run_tool("get_sale", lambda: sale_manager().get_sale(sale_id.strip()))


def update_sale_impl(sale_id: str, details: dict[str, Any]) -> str:
    return run_tool("update_sale", lambda: sale_manager().update_sale(sale_id.strip(), details))


def approve_sale_impl(sale_id: str) -> str:
    return run_tool("approve_sale", lambda: sale_manager().approve_sale(sale_id.strip()))


def complete_sale_impl(sale_id: str) -> str:
    return run_tool("complete_sale", lambda: sale_manager().complete_sale(sale_id.strip()))


def cancel_sale_impl(sale_id: str, reason: str = "") -> str:
    return run_tool(
        "cancel_sale",
        lambda: sale_manager().cancel_sale(sale_id.strip(), reason),
    )


def refund_sale_impl(sale_id: str, reason: str = "") -> str:
    return run_tool(
        "refund_sale",
        lambda: sale_manager().refund_sale(sale_id.strip(), reason),
    )


def list_sales_impl(status: str = "", vehicle_id: str = "", customer_id: str = "") -> str:
    """List sales by status, vehicle or customer.  All filters are optional and ANDed."""
    def _list() -> dict[str, Any]:
        resolved = None
        if status.strip():
            resolved = parse_enum(SaleStatus, status)
            if resolved is None:
                allowed = ", ".join(s.value for s in SaleStatus)
                raise ValidationError([FieldError("status", f"must be one of {allowed}")])
        sales = get_store().list_sales(
            status=resolved,
            vehicle_id=vehicle_id.strip() or None,
            customer_id=customer_id.strip() or None,
        )
        return {"count": len(sales), "sales": [s.to_dict() for s in sales]}

    return run_tool("list_sales", _list)
