"""Response helpers shared by the tool implementations."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from dealer_mcp.errors import DealerError, ValidationError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


def build_response(tool_name: str, data: Any) -> str:
    """JSON envelope returned by every data-producing tool."""
    payload = {
        "_tool": tool_name,
        "_meta": {"schema_version": SCHEMA_VERSION},
        "data": data,
    }
    return json.dumps(payload, indent=2, default=str)


def error_text(exc: DealerError) -> str:
    if isinstance(exc, ValidationError):
        lines = "\n".join(f"- {e}" for e in exc.errors)
        return f"Error: validation failed:\n{lines}"
    return f"Error: {exc}"


def run_tool(tool_name: str, action: Callable[[], Any]) -> str:
    """Run ``action`` and wrap its result; domain errors become ``Error: ...`` text."""
    try:
        result = action()
    except DealerError as exc:
        logger.info("Tool %s rejected: %s", tool_name, exc)
        return error_text(exc)
    if hasattr(result, "to_dict"):
        result = result.to_dict()
    return build_response(tool_name, result)
