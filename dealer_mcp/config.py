"""Runtime configuration read from environment variables.

The server loads a project-root ``.env`` file into ``os.environ`` before any of
these are read, so both sources work without an extra dependency.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from dealer_mcp.normalization import parse_bool, parse_decimal, parse_int

logger = logging.getLogger(__name__)

DB_PATH_ENV = "DEALER_DB_PATH"
SEED_DEMO_DATA_ENV = "DEALER_SEED_DEMO_DATA"
GROWTH_RATE_ENV = "DEALER_PROJECTION_GROWTH_RATE"
CONFIDENCE_ENV = "DEALER_PROJECTION_CONFIDENCE"
FALLBACK_PRICE_ENV = "DEALER_PROJECTION_FALLBACK_PRICE"

DEFAULT_DB_PATH = os.path.join(os.path.dirname(__file__), "data", "dealer.db")


@dataclass(frozen=True)
class ProjectionSettings:
    """Placeholders behind the growth projection, kept explicit and overridable."""
    growth_rate: Decimal = Decimal("0.05")
    confidence_level: int = 75
    fallback_average_sale_price: Decimal = Decimal("25000")
    max_months_ahead: int = 60

    @property
    def growth_factor(self) -> Decimal:
        return Decimal("1") + self.growth_rate

    @property
    def basis(self) -> str:
        pct = (self.growth_rate * 100).normalize()
        return (
            "Geometric growth from the historical average monthly revenue "
            f"with {pct:f}% monthly growth"
        )


def _env_decimal(environ: Mapping[str, str], key: str, default: Decimal) -> Decimal:
    raw = environ.get(key)
    if raw is None or not raw.strip():
        return default
    parsed = parse_decimal(raw)
    if parsed is None or parsed < 0:
        logger.warning("Ignoring invalid %s=%r; using %s", key, raw, default)
        return default
    return parsed


def _env_int(environ: Mapping[str, str], key: str, default: int, *, lo: int, hi: int) -> int:
    raw = environ.get(key)
    if raw is None or not raw.strip():
        return default
    parsed = parse_int(raw)
    if parsed is None or not lo <= parsed <= hi:
        logger.warning("Ignoring invalid %s=%r; using %s", key, raw, default)
        return default
    return parsed


def load_projection_settings(environ: Mapping[str, str] | None = None) -> ProjectionSettings:
    env = os.environ if environ is None else environ
    defaults = ProjectionSettings()
    return ProjectionSettings(
        growth_rate=_env_decimal(env, GROWTH_RATE_ENV, defaults.growth_rate),
        confidence_level=_env_int(
            env, CONFIDENCE_ENV, defaults.confidence_level, lo=0, hi=100,
        ),
        fallback_average_sale_price=_env_decimal(
            env, FALLBACK_PRICE_ENV, defaults.fallback_average_sale_price,
        ),
    )


def db_path(environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    return env.get(DB_PATH_ENV) or DEFAULT_DB_PATH


def seed_demo_data_enabled(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    enabled = parse_bool(env.get(SEED_DEMO_DATA_ENV), default=True)
    return True if enabled is None else enabled
