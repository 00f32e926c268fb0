"""Analytics report tool implementations."""

from __future__ import annotations

from datetime import date

from dealer_mcp.data.registry import analytics_engine
from dealer_mcp.normalization import parse_date
from dealer_mcp.tools.common import run_tool


def get_revenue_analytics_impl(start_date: str, end_date: str) -> str:
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None:
        return "Error: start_date and end_date must be ISO dates (YYYY-MM-DD)."
    return run_tool(
        "get_revenue_analytics",
        lambda: analytics_engine().revenue_analytics(start, end),
    )


def get_sales_performance_impl() -> str:
    return run_tool("get_sales_performance", lambda: analytics_engine().sales_performance())


def get_inventory_analytics_impl() -> str:
    return run_tool("get_inventory_analytics", lambda: analytics_engine().inventory_analytics())


def get_customer_analytics_impl() -> str:
    return run_tool("get_customer_analytics", lambda: analytics_engine().customer_analytics())


def get_growth_projections_impl(months_ahead: int = 12, today: date | None = None) -> str:
    """Revenue and sale-count projections for the months after the current one."""
    return run_tool(
        "get_growth_projections",
        lambda: analytics_engine().growth_projections(months_ahead, today=today),
    )
