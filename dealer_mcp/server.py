"""Dealer sales MCP server: FastMCP entry point for lifecycle and analytics tools."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from cip_protocol.orchestration.errors import (
    log_and_return_tool_error as _log_and_return_tool_error,
)
from mcp.server.fastmcp import FastMCP

from dealer_mcp.tools.analytics import (
    get_customer_analytics_impl,
    get_growth_projections_impl,
    get_inventory_analytics_impl,
    get_revenue_analytics_impl,
    get_sales_performance_impl,
)
from dealer_mcp.tools.customers import (
    create_customer_impl,
    delete_customer_impl,
    get_customer_impl,
    set_customer_active_impl,
    update_credit_score_impl,
    update_customer_impl,
)
from dealer_mcp.tools.sales import (
    approve_sale_impl,
    cancel_sale_impl,
    complete_sale_impl,
    create_sale_impl,
    get_sale_impl,
    list_sales_impl,
    refund_sale_impl,
    update_sale_impl,
)
from dealer_mcp.tools.vehicles import (
    create_vehicle_impl,
    delete_vehicle_impl,
    get_vehicle_by_vin_impl,
    get_vehicle_impl,
    list_vehicles_impl,
    set_vehicle_status_impl,
    update_vehicle_impl,
)

# Load .env from project root (no extra dependency)
_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
if _ENV_FILE.is_file():
    for line in _ENV_FILE.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            k, _, v = line.partition("=")
            os.environ.setdefault(k.strip(), v.strip())

mcp = FastMCP("DealerSales")
logger = logging.getLogger(__name__)


def _retry_message(action: str) -> str:
    return f"I am having trouble {action} right now. Please try again in a moment."


# ── Vehicles ────────────────────────────────────────────────────────


@mcp.tool()
def create_vehicle(vehicle: dict) -> str:
    """Add a vehicle to inventory.

    Requires vin (17 characters), make, model and year.  Prices are decimal
    strings or numbers.  Status defaults to AVAILABLE and condition to NEW.
    """
    try:
        return create_vehicle_impl(vehicle)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="create_vehicle", exc=exc, user_message=_retry_message("saving that vehicle"),
        )


@mcp.tool()
def get_vehicle(vehicle_id: str) -> str:
    """Get a vehicle by ID, including potential profit."""
    try:
        return get_vehicle_impl(vehicle_id)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="get_vehicle", exc=exc, user_message=_retry_message("loading that vehicle"),
        )


@mcp.tool()
def get_vehicle_by_vin(vin: str) -> str:
    """Look up a vehicle by its 17-character VIN (case-insensitive)."""
    try:
        return get_vehicle_by_vin_impl(vin)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="get_vehicle_by_vin", exc=exc, user_message=_retry_message("loading that vehicle"),
        )


@mcp.tool()
def list_vehicles(status: str = "") -> str:
    """List vehicles, optionally only those with the given status."""
    try:
        return list_vehicles_impl(status)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="list_vehicles", exc=exc, user_message=_retry_message("listing vehicles"),
        )


@mcp.tool()
def update_vehicle(vehicle_id: str, changes: dict) -> str:
    """Update descriptive and pricing fields of a vehicle. The VIN cannot change."""
    try:
        return update_vehicle_impl(vehicle_id, changes)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="update_vehicle", exc=exc, user_message=_retry_message("updating that vehicle"),
        )


@mcp.tool()
def set_vehicle_status(vehicle_id: str, status: str) -> str:
    """Set a vehicle's status: AVAILABLE, RESERVED, SOLD, MAINTENANCE or DISCONTINUED."""
    try:
        return set_vehicle_status_impl(vehicle_id, status)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="set_vehicle_status",
            exc=exc,
            user_message=_retry_message("updating that vehicle"),
        )


@mcp.tool()
def delete_vehicle(vehicle_id: str) -> str:
    """Delete a vehicle that has never been part of a sale."""
    try:
        return delete_vehicle_impl(vehicle_id)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="delete_vehicle", exc=exc, user_message=_retry_message("deleting that vehicle"),
        )


# ── Customers ───────────────────────────────────────────────────────


@mcp.tool()
def create_customer(customer: dict) -> str:
    """Register a customer. Requires first_name, last_name and a unique email."""
    try:
        return create_customer_impl(customer)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="create_customer", exc=exc, user_message=_retry_message("saving that customer"),
        )


@mcp.tool()
def get_customer(customer_id: str) -> str:
    """Get a customer by ID."""
    try:
        return get_customer_impl(customer_id)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="get_customer", exc=exc, user_message=_retry_message("loading that customer"),
        )


@mcp.tool()
def update_customer(customer_id: str, changes: dict) -> str:
    """Update customer details. A new email must not belong to another customer."""
    try:
        return update_customer_impl(customer_id, changes)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="update_customer",
            exc=exc,
            user_message=_retry_message("updating that customer"),
        )


@mcp.tool()
def set_customer_active(customer_id: str, active: bool) -> str:
    """Activate or deactivate a customer. Inactive customers cannot buy."""
    try:
        return set_customer_active_impl(customer_id, active)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="set_customer_active",
            exc=exc,
            user_message=_retry_message("updating that customer"),
        )


@mcp.tool()
def update_credit_score(customer_id: str, credit_score: int) -> str:
    """Record a customer's credit score (300-850)."""
    try:
        return update_credit_score_impl(customer_id, credit_score)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="update_credit_score",
            exc=exc,
            user_message=_retry_message("updating that customer"),
        )


@mcp.tool()
def delete_customer(customer_id: str) -> str:
    """Delete a customer with no sales on record."""
    try:
        return delete_customer_impl(customer_id)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="delete_customer",
            exc=exc,
            user_message=_retry_message("deleting that customer"),
        )


# ── Sales ───────────────────────────────────────────────────────────


@mcp.tool()
def create_sale(sale: dict) -> str:
    """Open a PENDING sale for an available vehicle and an active customer.

    Requires vehicle_id, customer_id and sale_price.  The vehicle is reserved.
    Commission is derived from commission_rate (a percentage).
    """
    try:
        return create_sale_impl(sale)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="create_sale", exc=exc, user_message=_retry_message("recording that sale"),
        )


@mcp.tool()
def get_sale(sale_id: str) -> str:
    """Get a sale by ID with net amount, remaining balance and payment state."""
    try:
        return get_sale_impl(sale_id)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="get_sale", exc=exc, user_message=_retry_message("loading that sale"),
        )


@mcp.tool()
def list_sales(status: str = "", vehicle_id: str = "", customer_id: str = "") -> str:
    """List sales, optionally filtered by status, vehicle or customer."""
    try:
        return list_sales_impl(status, vehicle_id, customer_id)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="list_sales", exc=exc, user_message=_retry_message("listing sales"),
        )


@mcp.tool()
def update_sale(sale_id: str, details: dict) -> str:
    """Change financial or administrative details of a sale that is not finalized."""
    try:
        return update_sale_impl(sale_id, details)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="update_sale", exc=exc, user_message=_retry_message("updating that sale"),
        )


@mcp.tool()
def approve_sale(sale_id: str) -> str:
    """Approve a PENDING sale."""
    try:
        return approve_sale_impl(sale_id)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="approve_sale", exc=exc, user_message=_retry_message("approving that sale"),
        )


@mcp.tool()
def complete_sale(sale_id: str) -> str:
    """Complete an APPROVED sale: finalize it and mark the vehicle SOLD."""
    try:
        return complete_sale_impl(sale_id)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="complete_sale", exc=exc, user_message=_retry_message("completing that sale"),
        )


@mcp.tool()
def cancel_sale(sale_id: str, reason: str = "") -> str:
    """Cancel a PENDING or APPROVED sale and return the vehicle to AVAILABLE."""
    try:
        return cancel_sale_impl(sale_id, reason)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="cancel_sale", exc=exc, user_message=_retry_message("cancelling that sale"),
        )


@mcp.tool()
def refund_sale(sale_id: str, reason: str = "") -> str:
    """Refund a COMPLETED sale and return the vehicle to AVAILABLE."""
    try:
        return refund_sale_impl(sale_id, reason)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="refund_sale", exc=exc, user_message=_retry_message("refunding that sale"),
        )


# ── Analytics ───────────────────────────────────────────────────────


@mcp.tool()
def get_revenue_analytics(start_date: str, end_date: str) -> str:
    """Revenue, gross profit and margin of completed sales between two ISO dates (inclusive)."""
    try:
        return get_revenue_analytics_impl(start_date, end_date)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="get_revenue_analytics",
            exc=exc,
            user_message=_retry_message("building the revenue report"),
        )


@mcp.tool()
def get_sales_performance() -> str:
    """Per-salesperson revenue and the payment-method mix."""
    try:
        return get_sales_performance_impl()
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="get_sales_performance",
            exc=exc,
            user_message=_retry_message("building the sales performance report"),
        )


@mcp.tool()
def get_inventory_analytics() -> str:
    """Inventory counts by status, turnover rate and make distribution."""
    try:
        return get_inventory_analytics_impl()
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="get_inventory_analytics",
            exc=exc,
            user_message=_retry_message("building the inventory report"),
        )


@mcp.tool()
def get_customer_analytics() -> str:
    """Customer counts, average credit score, retention and state distribution."""
    try:
        return get_customer_analytics_impl()
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="get_customer_analytics",
            exc=exc,
            user_message=_retry_message("building the customer report"),
        )


@mcp.tool()
def get_growth_projections(months_ahead: int = 12) -> str:
    """Project monthly revenue and sale counts for 1-60 months ahead."""
    try:
        return get_growth_projections_impl(months_ahead)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="get_growth_projections",
            exc=exc,
            user_message=_retry_message("building growth projections"),
        )


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
