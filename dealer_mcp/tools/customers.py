"""Customer management tool implementations."""

from __future__ import annotations

from typing import Any

from dealer_mcp.data.registry import customer_manager
from dealer_mcp.tools.common import run_tool


def create_customer_impl(customer: dict[str, Any]) -> str:
    return run_tool("create_customer", lambda: customer_manager().create_customer(customer))


def get_customer_impl(customer_id: str) -> str:
    return run_tool("get_customer", lambda: customer_manager().get_customer(customer_id.strip()))


def update_customer_impl(customer_id: str, changes: dict[str, Any]) -> str:
    return run_tool(
        "update_customer",
        lambda: customer_manager().update_customer(customer_id.strip(), changes),
    )


def set_customer_active_impl(customer_id: str, active: bool) -> str:
    manager = customer_manager()
    action = manager.activate_customer if active else manager.deactivate_customer
    return run_tool("set_customer_active", lambda: action(customer_id.strip()))


def update_credit_score_impl(customer_id: str, credit_score: int) -> str:
    return run_tool(
        "update_credit_score",
        lambda: customer_manager().update_credit_score(customer_id.strip(), credit_score),
    )


def delete_customer_impl(customer_id: str) -> str:
    def _delete() -> dict[str, Any]:
        customer_manager().delete_customer(customer_id.strip())
        return {"customer_id": customer_id.strip(), "deleted": True}

    return run_tool("delete_customer", _delete)
