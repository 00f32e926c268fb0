"""Environment configuration tests."""

from __future__ import annotations

import logging
from decimal import Decimal

from dealer_mcp.config import (
    DEFAULT_DB_PATH,
    ProjectionSettings,
    db_path,
    load_projection_settings,
    seed_demo_data_enabled,
)


class TestProjectionSettings:
    def test_defaults(self):
        settings = load_projection_settings({})
        assert settings == ProjectionSettings()
        assert settings.growth_factor == Decimal("1.05")
        assert settings.confidence_level == 75
        assert settings.fallback_average_sale_price == Decimal("25000")

    def test_overrides(self):
        settings = load_projection_settings({
            "DEALER_PROJECTION_GROWTH_RATE": "0.02",
            "DEALER_PROJECTION_CONFIDENCE": "90",
            "DEALER_PROJECTION_FALLBACK_PRICE": "31000",
        })
        assert settings.growth_rate == Decimal("0.02")
        assert settings.confidence_level == 90
        assert settings.fallback_average_sale_price == Decimal("31000")

    def test_invalid_values_fall_back_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="dealer_mcp.config"):
            settings = load_projection_settings({
                "DEALER_PROJECTION_GROWTH_RATE": "fast",
                "DEALER_PROJECTION_CONFIDENCE": "150",
            })
        assert settings.growth_rate == Decimal("0.05")
        assert settings.confidence_level == 75
        assert "DEALER_PROJECTION_GROWTH_RATE" in caplog.text
        assert "DEALER_PROJECTION_CONFIDENCE" in caplog.text


class TestStoreSettings:
    def test_db_path(self):
        assert db_path({}) == DEFAULT_DB_PATH
        assert db_path({"DEALER_DB_PATH": "/tmp/dealer.db"}) == "/tmp/dealer.db"

    def test_seed_flag(self):
        assert seed_demo_data_enabled({}) is True
        assert seed_demo_data_enabled({"DEALER_SEED_DEMO_DATA": "false"}) is False
        assert seed_demo_data_enabled({"DEALER_SEED_DEMO_DATA": "maybe"}) is True
