"""Shared test fixtures: store injection and manager wiring."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from dealer_mcp.data.registry import set_store
from dealer_mcp.data.seed import seed_demo_data
from dealer_mcp.data.store import SqliteDealerStore
from dealer_mcp.lifecycle.customers import CustomerManager
from dealer_mcp.lifecycle.sales import SaleLifecycleManager
from dealer_mcp.lifecycle.vehicles import VehicleLifecycleManager


@pytest.fixture(autouse=True)
def _inject_test_store():
    """Give every test a fresh, isolated, seeded in-memory dealer store."""
    store = SqliteDealerStore(":memory:")
    seed_demo_data(store)
    set_store(store)
    yield
    set_store(None)
    store.close()


@pytest.fixture()
def store() -> SqliteDealerStore:
    """A fresh, empty in-memory store for unit tests that count rows."""
    fresh = SqliteDealerStore(":memory:")
    yield fresh
    fresh.close()


@pytest.fixture()
def vehicles(store: SqliteDealerStore) -> VehicleLifecycleManager:
    return VehicleLifecycleManager(store)


@pytest.fixture()
def customers(store: SqliteDealerStore) -> CustomerManager:
    return CustomerManager(store)


@pytest.fixture()
def sales(store: SqliteDealerStore, vehicles: VehicleLifecycleManager) -> SaleLifecycleManager:
    return SaleLifecycleManager(store, vehicles)


@pytest.fixture()
def vehicle_payload() -> Callable[..., dict[str, Any]]:
    """Factory for valid vehicle payloads; each call gets a distinct VIN."""
    counter = iter(range(1, 10_000))

    def make(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "vin": f"1HGCM8263A{next(counter):07d}",
            "make": "Honda",
            "model": "Accord",
            "year": 2023,
            "mileage": 1200,
            "purchase_price": "25000.00",
            "selling_price": "28500.00",
        }
        payload.update(overrides)
        return payload

    return make


@pytest.fixture()
def customer_payload() -> Callable[..., dict[str, Any]]:
    """Factory for valid customer payloads; each call gets a distinct email."""
    counter = iter(range(1, 10_000))

    def make(**overrides: Any) -> dict[str, Any]:
        n = next(counter)
        payload: dict[str, Any] = {
            "first_name": "Test",
            "last_name": f"Buyer{n}",
            "email": f"buyer{n}@example.com",
            "state": "TX",
            "credit_score": 700,
        }
        payload.update(overrides)
        return payload

    return make
