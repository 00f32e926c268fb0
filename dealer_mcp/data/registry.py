"""Process-wide store singleton plus factories for the managers built on it.

Tool modules go through this facade rather than constructing stores, so tests
can inject an isolated store with :func:`set_store`.
"""

from __future__ import annotations

from dealer_mcp import config
from dealer_mcp.analytics import AnalyticsEngine
from dealer_mcp.data.store import DealerStore, SqliteDealerStore
from dealer_mcp.lifecycle import CustomerManager, SaleLifecycleManager, VehicleLifecycleManager

_store: DealerStore | None = None


def get_store() -> DealerStore:
    """Return the active DealerStore singleton, creating + seeding if needed."""
    global _store  # noqa: PLW0603
    if _store is None:
        store = SqliteDealerStore(config.db_path())
        if store.count_vehicles() == 0 and config.seed_demo_data_enabled():
            from dealer_mcp.data.seed import seed_demo_data
            seed_demo_data(store)
        _store = store
    return _store


def set_store(store: DealerStore | None) -> None:
    """Inject a store instance for testing; ``None`` resets to lazy creation."""
    global _store  # noqa: PLW0603
    _store = store


# ── Managers ───────────────────────────────────────────────────────


def vehicle_manager() -> VehicleLifecycleManager:
    return VehicleLifecycleManager(get_store())


def customer_manager() -> CustomerManager:
    return CustomerManager(get_store())


def sale_manager() -> SaleLifecycleManager:
    store = get_store()
    return SaleLifecycleManager(store, VehicleLifecycleManager(store))


def analytics_engine() -> AnalyticsEngine:
    return AnalyticsEngine(get_store(), config.load_projection_settings())
