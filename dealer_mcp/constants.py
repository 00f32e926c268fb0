"""Shared constants used across the entity model, lifecycle managers and analytics.

Single source of truth for field bounds, patterns and rounding quanta.
"""

from __future__ import annotations

import re
from decimal import Decimal

VIN_LENGTH = 17

MIN_MODEL_YEAR = 1900
MAX_MODEL_YEAR = 2030

MIN_CREDIT_SCORE = 300
MAX_CREDIT_SCORE = 850

MIN_LOAN_TERM_MONTHS = 1
MAX_LOAN_TERM_MONTHS = 120

MAX_PERCENT = Decimal("100")

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PHONE_RE = re.compile(r"^[+]?[0-9]{10,15}$")

# Money is kept to cents, ratios to four places before scaling to a percentage.
MONEY_QUANTUM = Decimal("0.01")
RATIO_QUANTUM = Decimal("0.0001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

ID_PREFIX_VEHICLE = "veh"
ID_PREFIX_CUSTOMER = "cust"
ID_PREFIX_SALE = "sale"
