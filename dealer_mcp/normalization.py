"""Shared parsing and rounding helpers for dealer records.

Single source of truth: imported by ``models`` (payload parsing), the SQLite
store (row decoding) and ``analytics`` (rounding).  Parsers are best-effort and
return ``None`` for unparseable input; callers decide whether that is an error.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from dealer_mcp.constants import HUNDRED, MONEY_QUANTUM, RATIO_QUANTUM, ZERO


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


_PLAIN_NUMBER_RE = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


def strip_currency(raw: str) -> str:
    """Drop ``'$'``, thousands separators and surrounding whitespace."""
    return raw.strip().replace("$", "").replace(",", "").strip()


def parse_decimal(value: Any) -> Decimal | None:
    """Exact decimal parsing.  ``"$28,000.00"`` becomes ``Decimal("28000.00")``.

    Strings must be plain decimal numbers once currency marks are removed, so
    ``"1e3"`` or ``"28k500"`` are rejected rather than rewritten.  Floats go
    through ``str`` so ``0.1`` stays ``Decimal("0.1")`` rather than its binary
    expansion.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        parsed = Decimal(str(value))
        return parsed if parsed.is_finite() else None
    if isinstance(value, str):
        cleaned = strip_currency(value)
        if not _PLAIN_NUMBER_RE.fullmatch(cleaned):
            return None
        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return None
    return None


def parse_int(value: Any) -> int | None:
    """Best-effort integer parsing.  Rejects fractional values."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, (str, Decimal)):
        parsed = parse_decimal(value)
        if parsed is None or parsed != parsed.to_integral_value():
            return None
        return int(parsed)
    return None


def parse_bool(value: Any, default: bool | None = None) -> bool | None:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "y"}:
            return True
        if lowered in {"false", "0", "no", "n"}:
            return False
        if not lowered:
            return default
    return None


def parse_date(value: Any) -> date | None:
    """Accept ``date``, ``datetime`` or an ISO-8601 string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return date.fromisoformat(stripped[:10])
        except ValueError:
            return None
    return None


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            parsed = datetime.fromisoformat(stripped.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def clean_text(value: Any) -> str | None:
    """Strip strings; blank becomes ``None``."""
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    text = text.strip()
    return text or None


def money(value: Decimal | None) -> Decimal:
    """Round to cents, half-up.  ``None`` is zero."""
    if value is None:
        return ZERO.quantize(MONEY_QUANTUM)
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def percentage(numerator: Decimal | int | None, denominator: Decimal | int | None) -> Decimal:
    """``numerator / denominator`` as a percentage.

    The ratio is rounded to four places half-up before scaling; a missing or
    zero denominator yields 0.
    """
    if numerator is None or denominator is None:
        return money(ZERO)
    num = Decimal(numerator)
    den = Decimal(denominator)
    if den == 0:
        return money(ZERO)
    ratio = (num / den).quantize(RATIO_QUANTUM, rounding=ROUND_HALF_UP)
    return money(ratio * HUNDRED)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
