"""Unit tests for the DealerStore protocol and SqliteDealerStore implementation."""

from __future__ import annotations

import sqlite3
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest

from dealer_mcp.data.seed import DEMO_CUSTOMERS, DEMO_VEHICLES, seed_demo_data
from dealer_mcp.data.store import DealerStore, SqliteDealerStore
from dealer_mcp.errors import ConflictError
from dealer_mcp.models import (
    Customer,
    CustomerType,
    PaymentMethod,
    Sale,
    SaleStatus,
    Vehicle,
    VehicleStatus,
)


def _vehicle(vin: str = "1HGCM82633A004352", **overrides) -> Vehicle:
    fields = {
        "vin": vin,
        "make": "Honda",
        "model": "Accord",
        "year": 2023,
        "purchase_price": Decimal("24999.99"),
        "selling_price": Decimal("28500.00"),
    }
    fields.update(overrides)
    return Vehicle(**fields)


def _customer(email: str = "ada@example.com", **overrides) -> Customer:
    fields = {"first_name": "Ada", "last_name": "Lovelace", "email": email}
    fields.update(overrides)
    return Customer(**fields)


def _sale(store: SqliteDealerStore, **overrides) -> Sale:
    vehicle = store.save_vehicle(_vehicle())
    customer = store.save_customer(_customer())
    fields = {
        "vehicle_id": vehicle.id,
        "customer_id": customer.id,
        "sale_date": date(2025, 3, 1),
        "sale_price": Decimal("28000.00"),
    }
    fields.update(overrides)
    return store.save_sale(Sale(**fields))


# ── Protocol compliance ────────────────────────────────────────


class TestProtocolCompliance:
    def test_sqlite_store_satisfies_protocol(self, store: SqliteDealerStore):
        assert isinstance(store, DealerStore)

    def test_protocol_has_required_methods(self):
        methods = {
            "transaction",
            "get_vehicle",
            "get_vehicle_by_vin",
            "save_vehicle",
            "delete_vehicle",
            "get_customer",
            "get_customer_by_email",
            "save_customer",
            "get_sale",
            "save_sale",
            "revenue_between",
            "gross_profit_between",
            "monthly_sales_report",
            "payment_method_distribution",
        }
        protocol_methods = {
            name for name in dir(DealerStore)
            if not name.startswith("_") and callable(getattr(DealerStore, name, None))
        }
        assert methods.issubset(protocol_methods)


# ── Vehicles ───────────────────────────────────────────────────


class TestVehicles:
    def test_empty_store_count(self, store: SqliteDealerStore):
        assert store.count_vehicles() == 0

    def test_save_assigns_id_and_timestamps(self, store: SqliteDealerStore):
        vehicle = store.save_vehicle(_vehicle())
        assert vehicle.id.startswith("veh-")
        assert vehicle.created_at is not None
        assert vehicle.updated_at is not None

    def test_round_trip_keeps_decimal_precision(self, store: SqliteDealerStore):
        saved = store.save_vehicle(_vehicle(purchase_date=date(2024, 5, 6)))
        got = store.get_vehicle(saved.id)
        assert got is not None
        assert got.purchase_price == Decimal("24999.99")
        assert got.purchase_date == date(2024, 5, 6)
        assert got.status is VehicleStatus.AVAILABLE

    def test_exponent_decimals_stored_in_plain_notation(self, store: SqliteDealerStore):
        saved = store.save_vehicle(_vehicle(msrp=Decimal("3.1E+4")))
        got = store.get_vehicle(saved.id)
        assert got is not None
        assert got.msrp == Decimal("31000")

    def test_get_missing_returns_none(self, store: SqliteDealerStore):
        assert store.get_vehicle("veh-missing") is None

    def test_vin_lookup_is_case_insensitive(self, store: SqliteDealerStore):
        saved = store.save_vehicle(_vehicle())
        got = store.get_vehicle_by_vin("1hgcm82633a004352")
        assert got is not None
        assert got.id == saved.id

    def test_duplicate_vin_raises_conflict(self, store: SqliteDealerStore):
        store.save_vehicle(_vehicle())
        duplicate = _vehicle()
        with pytest.raises(ConflictError):
            store.save_vehicle(duplicate)
        assert duplicate.id is None
        assert store.count_vehicles() == 1

    def test_update_persists_status(self, store: SqliteDealerStore):
        vehicle = store.save_vehicle(_vehicle())
        vehicle.status = VehicleStatus.MAINTENANCE
        store.save_vehicle(vehicle)
        assert store.get_vehicle(vehicle.id).status is VehicleStatus.MAINTENANCE

    def test_delete(self, store: SqliteDealerStore):
        vehicle = store.save_vehicle(_vehicle())
        assert store.delete_vehicle(vehicle.id) is True
        assert store.delete_vehicle(vehicle.id) is False

    def test_list_by_status(self, store: SqliteDealerStore):
        store.save_vehicle(_vehicle("AAAAAAAAAAAAAAAA1"))
        store.save_vehicle(_vehicle("AAAAAAAAAAAAAAAA2", status=VehicleStatus.SOLD))
        assert len(store.list_vehicles()) == 2
        sold = store.list_vehicles(status=VehicleStatus.SOLD)
        assert [v.vin for v in sold] == ["AAAAAAAAAAAAAAAA2"]

    def test_make_distribution_ordered_by_count(self, store: SqliteDealerStore):
        store.save_vehicle(_vehicle("AAAAAAAAAAAAAAAA1", make="Ford"))
        store.save_vehicle(_vehicle("AAAAAAAAAAAAAAAA2", make="Toyota"))
        store.save_vehicle(_vehicle("AAAAAAAAAAAAAAAA3", make="Toyota"))
        assert store.vehicle_count_by_make() == [("Toyota", 2), ("Ford", 1)]

    def test_average_selling_price_over_available_only(self, store: SqliteDealerStore):
        store.save_vehicle(_vehicle("AAAAAAAAAAAAAAAA1", selling_price=Decimal("20000")))
        store.save_vehicle(_vehicle("AAAAAAAAAAAAAAAA2", selling_price=Decimal("30001")))
        store.save_vehicle(_vehicle(
            "AAAAAAAAAAAAAAAA3", selling_price=Decimal("90000"), status=VehicleStatus.SOLD,
        ))
        assert store.average_selling_price() == Decimal("25000.50")

    def test_empty_aggregates_are_none(self, store: SqliteDealerStore):
        assert store.average_selling_price() is None
        assert store.total_potential_profit_of_sold() is None
        assert store.average_credit_score() is None
        assert store.revenue_between(date(2025, 1, 1), date(2025, 12, 31)) is None


# ── Customers ──────────────────────────────────────────────────


class TestCustomers:
    def test_save_and_get(self, store: SqliteDealerStore):
        saved = store.save_customer(_customer(credit_score=710))
        got = store.get_customer(saved.id)
        assert got is not None
        assert got.id.startswith("cust-")
        assert got.credit_score == 710
        assert got.is_active is True
        assert got.customer_type is CustomerType.INDIVIDUAL

    def test_duplicate_email_is_case_insensitive(self, store: SqliteDealerStore):
        store.save_customer(_customer("ada@example.com"))
        with pytest.raises(ConflictError):
            store.save_customer(_customer("ADA@example.com"))
        assert store.get_customer_by_email("Ada@Example.com") is not None

    def test_counts(self, store: SqliteDealerStore):
        store.save_customer(_customer("a@example.com", credit_score=700))
        store.save_customer(_customer("b@example.com", credit_score=651, is_active=False))
        store.save_customer(_customer(
            "c@example.com", customer_type=CustomerType.BUSINESS, state="TX",
        ))
        assert store.count_customers() == 3
        assert store.count_active_customers() == 2
        assert store.count_customers_by_type(CustomerType.BUSINESS) == 1
        assert store.average_credit_score() == Decimal("675.50")
        assert store.customer_count_by_state() == [("TX", 1)]


# ── Sales ──────────────────────────────────────────────────────


class TestSales:
    def test_insert_starts_at_version_one(self, store: SqliteDealerStore):
        sale = _sale(store)
        assert sale.id.startswith("sale-")
        assert sale.version == 1
        assert store.get_sale(sale.id).version == 1

    def test_update_bumps_version(self, store: SqliteDealerStore):
        sale = _sale(store)
        sale.notes = "updated"
        store.save_sale(sale)
        got = store.get_sale(sale.id)
        assert got.version == 2
        assert got.notes == "updated"

    def test_stale_version_raises_conflict(self, store: SqliteDealerStore):
        sale = _sale(store)
        first = store.get_sale(sale.id)
        second = store.get_sale(sale.id)
        first.status = SaleStatus.APPROVED
        store.save_sale(first)
        second.status = SaleStatus.CANCELLED
        with pytest.raises(ConflictError, match="modified concurrently"):
            store.save_sale(second)
        assert second.version == 1
        assert store.get_sale(sale.id).status is SaleStatus.APPROVED

    def test_sale_requires_existing_vehicle(self, store: SqliteDealerStore):
        customer = store.save_customer(_customer())
        with pytest.raises(sqlite3.IntegrityError):
            store.save_sale(Sale(
                vehicle_id="veh-missing",
                customer_id=customer.id,
                sale_date=date(2025, 1, 1),
                sale_price=Decimal("1"),
            ))

    def test_sale_counts_per_vehicle_and_customer(self, store: SqliteDealerStore):
        sale = _sale(store)
        assert store.count_sales_for_vehicle(sale.vehicle_id) == 1
        assert store.count_sales_for_customer(sale.customer_id) == 1

    def test_list_sales_filters(self, store: SqliteDealerStore):
        sale = _sale(store)
        assert [s.id for s in store.list_sales(vehicle_id=sale.vehicle_id)] == [sale.id]
        assert store.list_sales(status=SaleStatus.COMPLETED) == []

    def test_revenue_only_counts_completed_in_range(self, store: SqliteDealerStore):
        _sale(store, status=SaleStatus.COMPLETED)
        assert store.revenue_between(date(2025, 3, 1), date(2025, 3, 1)) == Decimal("28000.00")
        assert store.revenue_between(date(2025, 3, 2), date(2025, 3, 31)) is None

    def test_payment_method_distribution_counts_all_statuses(self, store: SqliteDealerStore):
        _sale(store, payment_method=PaymentMethod.LEASE, status=SaleStatus.CANCELLED)
        assert store.payment_method_distribution() == [(PaymentMethod.LEASE, 1)]


# ── Transactions ───────────────────────────────────────────────


class TestTransactions:
    def test_exception_rolls_back_everything(self, store: SqliteDealerStore):
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.save_vehicle(_vehicle())
                store.save_customer(_customer())
                raise RuntimeError("boom")
        assert store.count_vehicles() == 0
        assert store.count_customers() == 0

    def test_nested_scopes_commit_once(self, store: SqliteDealerStore):
        with store.transaction():
            with store.transaction():
                store.save_vehicle(_vehicle())
            store.save_customer(_customer())
        assert store.count_vehicles() == 1
        assert store.count_customers() == 1

    def test_inner_failure_rolls_back_outer_scope(self, store: SqliteDealerStore):
        with pytest.raises(ConflictError):
            with store.transaction():
                store.save_vehicle(_vehicle("AAAAAAAAAAAAAAAA1"))
                store.save_vehicle(_vehicle("AAAAAAAAAAAAAAAA1"))
        assert store.count_vehicles() == 0


# ── Seed data ──────────────────────────────────────────────────


class TestSeed:
    def test_seed_populates_store(self, store: SqliteDealerStore):
        summary = seed_demo_data(store)
        assert summary == {
            "vehicles": len(DEMO_VEHICLES),
            "customers": len(DEMO_CUSTOMERS),
            "sales": 3,
        }
        assert store.count_vehicles() == len(DEMO_VEHICLES)
        assert store.count_vehicles_by_status(VehicleStatus.SOLD) == 2
        assert store.count_vehicles_by_status(VehicleStatus.RESERVED) == 1
        assert len(store.list_sales(status=SaleStatus.COMPLETED)) == 2


# ── Concurrency ────────────────────────────────────────────────


class TestConcurrency:
    def test_parallel_writes_and_reads(self, store: SqliteDealerStore):
        def writer(i: int) -> None:
            store.save_vehicle(_vehicle(f"CONC{i:013d}"))

        def reader() -> int:
            return store.count_vehicles()

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = []
            for i in range(40):
                futures.append(pool.submit(writer, i))
                futures.append(pool.submit(reader))

            for future in futures:
                future.result()

        assert store.count_vehicles() == 40
