"""DealerStore protocol and SQLite implementation for vehicles, customers and sales."""

from __future__ import annotations

import sqlite3
import threading
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import fields
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import (
    Any,
    Protocol,
    TypeVar,
    runtime_checkable,
)

from dealer_mcp.constants import (
    ID_PREFIX_CUSTOMER,
    ID_PREFIX_SALE,
    ID_PREFIX_VEHICLE,
    ZERO,
)
from dealer_mcp.errors import ConflictError
from dealer_mcp.models import (
    ContactMethod,
    Customer,
    CustomerType,
    PaymentMethod,
    Sale,
    SaleStatus,
    Vehicle,
    VehicleCondition,
    VehicleStatus,
)
from dealer_mcp.normalization import money, parse_date, parse_datetime, parse_decimal, utc_now

R = TypeVar("R", Vehicle, Customer, Sale)

VEHICLE_COLUMNS = tuple(f.name for f in fields(Vehicle))
CUSTOMER_COLUMNS = tuple(f.name for f in fields(Customer))
SALE_COLUMNS = tuple(f.name for f in fields(Sale))

_COMPLETED = SaleStatus.COMPLETED.value


def _identity(value: Any) -> Any:
    return value


def _bool(value: Any) -> bool:
    return bool(value)


_DECODERS: dict[type, dict[str, Callable[[Any], Any]]] = {
    Vehicle: {
        "purchase_price": parse_decimal,
        "selling_price": parse_decimal,
        "msrp": parse_decimal,
        "status": VehicleStatus,
        "condition": VehicleCondition,
        "purchase_date": parse_date,
        "created_at": parse_datetime,
        "updated_at": parse_datetime,
    },
    Customer: {
        "date_of_birth": parse_date,
        "customer_type": CustomerType,
        "preferred_contact_method": ContactMethod,
        "is_active": _bool,
        "created_at": parse_datetime,
        "updated_at": parse_datetime,
    },
    Sale: {
        "sale_date": parse_date,
        "sale_price": parse_decimal,
        "down_payment": parse_decimal,
        "trade_in_value": parse_decimal,
        "financing_amount": parse_decimal,
        "interest_rate": parse_decimal,
        "monthly_payment": parse_decimal,
        "payment_method": PaymentMethod,
        "status": SaleStatus,
        "commission_rate": parse_decimal,
        "commission_amount": parse_decimal,
        "extended_warranty": _bool,
        "extended_warranty_cost": parse_decimal,
        "delivery_date": parse_date,
        "contract_signed_at": parse_datetime,
        "is_finalized": _bool,
        "created_at": parse_datetime,
        "updated_at": parse_datetime,
    },
}


def _encode(value: Any) -> Any:
    """Python value -> SQLite value.  Money stays TEXT so no precision is lost."""
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, date):
        return value.isoformat()
    return value


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _sum_decimals(values: list[Any]) -> Decimal | None:
    parsed = [d for d in (parse_decimal(v) for v in values) if d is not None]
    if not parsed:
        return None
    return sum(parsed, ZERO)


def _avg_decimals(values: list[Any]) -> Decimal | None:
    parsed = [d for d in (parse_decimal(v) for v in values) if d is not None]
    if not parsed:
        return None
    return money(sum(parsed, ZERO) / len(parsed))


# ── Protocol ────────────────────────────────────────────────────────


@runtime_checkable
class DealerStore(Protocol):
    """Minimal data-access interface the lifecycle managers and analytics need.

    Lookups by identifier return ``None`` when absent; callers translate that
    into ``NotFoundError``.
    """

    def transaction(self) -> Any: ...

    def get_vehicle(self, vehicle_id: str) -> Vehicle | None: ...
    def get_vehicle_by_vin(self, vin: str) -> Vehicle | None: ...
    def save_vehicle(self, vehicle: Vehicle) -> Vehicle: ...
    def delete_vehicle(self, vehicle_id: str) -> bool: ...
    def list_vehicles(self, *, status: VehicleStatus | None = None) -> list[Vehicle]: ...
    def count_vehicles(self) -> int: ...
    def count_vehicles_by_status(self, status: VehicleStatus) -> int: ...
    def average_selling_price(self) -> Decimal | None: ...
    def total_potential_profit_of_sold(self) -> Decimal | None: ...
    def vehicle_count_by_make(self) -> list[tuple[str, int]]: ...
    def count_sales_for_vehicle(self, vehicle_id: str) -> int: ...

    def get_customer(self, customer_id: str) -> Customer | None: ...
    def get_customer_by_email(self, email: str) -> Customer | None: ...
    def save_customer(self, customer: Customer) -> Customer: ...
    def delete_customer(self, customer_id: str) -> bool: ...
    def count_customers(self) -> int: ...
    def count_active_customers(self) -> int: ...
    def count_customers_by_type(self, customer_type: CustomerType) -> int: ...
    def average_credit_score(self) -> Decimal | None: ...
    def customer_count_by_state(self) -> list[tuple[str, int]]: ...
    def count_sales_for_customer(self, customer_id: str) -> int: ...

    def get_sale(self, sale_id: str) -> Sale | None: ...
    def save_sale(self, sale: Sale) -> Sale: ...
    def list_sales(
        self,
        *,
        status: SaleStatus | None = None,
        vehicle_id: str | None = None,
        customer_id: str | None = None,
    ) -> list[Sale]: ...
    def revenue_between(self, start: date, end: date) -> Decimal | None: ...
    def gross_profit_between(self, start: date, end: date) -> Decimal | None: ...
    def average_sale_price(self) -> Decimal | None: ...
    def salesperson_performance(self) -> list[tuple[str | None, int, Decimal]]: ...
    def monthly_sales_report(self) -> list[tuple[int, int, int, Decimal]]: ...
    def payment_method_distribution(self) -> list[tuple[PaymentMethod, int]]: ...


class SqliteDealerStore:
    """SQLite-backed dealer store with WAL mode, NOCASE unique keys and a re-entrant transaction scope."""

    def __init__(self, db_path: str = ":memory:") -> None:
        self._lock = threading.RLock()
        self._tx_depth = 0
        self._conn = sqlite3.connect(db_path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        with self._lock:
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.execute("PRAGMA temp_store=MEMORY")
            self._create_schema()

    # ── Schema ─────────────────────────────────────────────────────

    def _create_schema(self) -> None:
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS vehicles (
                id              TEXT PRIMARY KEY,
                vin             TEXT NOT NULL UNIQUE COLLATE NOCASE,
                make            TEXT NOT NULL COLLATE NOCASE,
                model           TEXT NOT NULL COLLATE NOCASE,
                year            INTEGER NOT NULL,
                color           TEXT,
                engine_type     TEXT,
                transmission    TEXT,
                fuel_type       TEXT,
                mileage         INTEGER,
                purchase_price  TEXT,
                selling_price   TEXT,
                msrp            TEXT,
                status          TEXT NOT NULL DEFAULT 'AVAILABLE',
                condition       TEXT NOT NULL DEFAULT 'NEW',
                purchase_date   TEXT,
                description     TEXT,
                location        TEXT,
                created_at      TEXT NOT NULL,
                updated_at      TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS customers (
                id              TEXT PRIMARY KEY,
                first_name      TEXT NOT NULL,
                last_name       TEXT NOT NULL,
                email           TEXT NOT NULL UNIQUE COLLATE NOCASE,
                phone           TEXT,
                date_of_birth   TEXT,
                address         TEXT,
                city            TEXT,
                state           TEXT,
                zip_code        TEXT,
                country         TEXT,
                driver_license  TEXT,
                customer_type   TEXT NOT NULL DEFAULT 'INDIVIDUAL',
                company_name    TEXT,
                tax_id          TEXT,
                credit_score    INTEGER,
                preferred_contact_method TEXT NOT NULL DEFAULT 'EMAIL',
                notes           TEXT,
                is_active       INTEGER NOT NULL DEFAULT 1,
                created_at      TEXT NOT NULL,
                updated_at      TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS sales (
                id              TEXT PRIMARY KEY,
                vehicle_id      TEXT NOT NULL REFERENCES vehicles(id),
                customer_id     TEXT NOT NULL REFERENCES customers(id),
                sale_date       TEXT NOT NULL,
                sale_price      TEXT NOT NULL,
                down_payment    TEXT,
                trade_in_value  TEXT,
                financing_amount TEXT,
                interest_rate   TEXT,
                loan_term_months INTEGER,
                monthly_payment TEXT,
                payment_method  TEXT NOT NULL DEFAULT 'CASH',
                status          TEXT NOT NULL DEFAULT 'PENDING',
                salesperson_name  TEXT,
                salesperson_email TEXT,
                commission_rate   TEXT,
                commission_amount TEXT,
                warranty_months   INTEGER,
                extended_warranty INTEGER NOT NULL DEFAULT 0,
                extended_warranty_cost TEXT,
                delivery_date   TEXT,
                delivery_address TEXT,
                notes           TEXT,
                contract_signed_at TEXT,
                is_finalized    INTEGER NOT NULL DEFAULT 0,
                version         INTEGER NOT NULL DEFAULT 1,
                created_at      TEXT NOT NULL,
                updated_at      TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_vehicles_status
                ON vehicles(status);
            CREATE INDEX IF NOT EXISTS idx_vehicles_make
                ON vehicles(make COLLATE NOCASE);
            CREATE INDEX IF NOT EXISTS idx_customers_state
                ON customers(state);
            CREATE INDEX IF NOT EXISTS idx_customers_type
                ON customers(customer_type);
            CREATE INDEX IF NOT EXISTS idx_sales_status_date
                ON sales(status, sale_date);
            CREATE INDEX IF NOT EXISTS idx_sales_vehicle_id
                ON sales(vehicle_id);
            CREATE INDEX IF NOT EXISTS idx_sales_customer_id
                ON sales(customer_id);
            CREATE INDEX IF NOT EXISTS idx_sales_salesperson
                ON sales(salesperson_email);
        """)

    # ── Transactions ───────────────────────────────────────────────

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """All-or-nothing unit of work.

        Holds the store lock for the whole scope.  Nested scopes join the
        outermost one; only the outermost commits, and any exception rolls
        back everything written inside it.
        """
        with self._lock:
            outermost = self._tx_depth == 0
            if outermost:
                self._conn.execute("BEGIN IMMEDIATE")
            self._tx_depth += 1
            try:
                yield
            except BaseException:
                self._tx_depth -= 1
                if outermost:
                    self._conn.execute("ROLLBACK")
                raise
            self._tx_depth -= 1
            if outermost:
                self._conn.execute("COMMIT")

    # ── Row helpers ────────────────────────────────────────────────

    @staticmethod
    def _row_to_record(cls: type[R], row: sqlite3.Row) -> R:
        decoders = _DECODERS[cls]
        kwargs: dict[str, Any] = {}
        for key in row.keys():
            value = row[key]
            kwargs[key] = None if value is None else decoders.get(key, _identity)(value)
        return cls(**kwargs)

    def _fetch_one(self, cls: type[R], sql: str, params: tuple[Any, ...]) -> R | None:
        with self._lock:
            row = self._conn.execute(sql, params).fetchone()
        return self._row_to_record(cls, row) if row else None

    def _insert(self, table: str, columns: tuple[str, ...], record: Any) -> None:
        placeholders = ", ".join("?" for _ in columns)
        self._conn.execute(
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
            tuple(_encode(getattr(record, c)) for c in columns),
        )

    def _update(
        self,
        table: str,
        columns: tuple[str, ...],
        record: Any,
        *,
        extra_where: str = "",
        extra_params: tuple[Any, ...] = (),
    ) -> int:
        cols = [c for c in columns if c not in {"id", "created_at"}]
        assignments = ", ".join(f"{c} = ?" for c in cols)
        cursor = self._conn.execute(
            f"UPDATE {table} SET {assignments} WHERE id = ?{extra_where}",
            (*(_encode(getattr(record, c)) for c in cols), record.id, *extra_params),
        )
        return cursor.rowcount

    def _scalar(self, sql: str, params: tuple[Any, ...] = ()) -> Any:
        with self._lock:
            row = self._conn.execute(sql, params).fetchone()
        return row[0] if row else None

    def _column(self, sql: str, params: tuple[Any, ...] = ()) -> list[Any]:
        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()
        return [r[0] for r in rows]

    # ── Vehicles ───────────────────────────────────────────────────

    def get_vehicle(self, vehicle_id: str) -> Vehicle | None:
        return self._fetch_one(Vehicle, "SELECT * FROM vehicles WHERE id = ?", (vehicle_id,))

    def get_vehicle_by_vin(self, vin: str) -> Vehicle | None:
        return self._fetch_one(
            Vehicle,
            "SELECT * FROM vehicles WHERE vin = ? COLLATE NOCASE",
            (vin.strip().upper(),),
        )

    def save_vehicle(self, vehicle: Vehicle) -> Vehicle:
        now = utc_now()
        with self.transaction():
            vehicle.updated_at = now
            is_new = vehicle.id is None
            try:
                if is_new:
                    vehicle.id = _new_id(ID_PREFIX_VEHICLE)
                    vehicle.created_at = now
                    self._insert("vehicles", VEHICLE_COLUMNS, vehicle)
                else:
                    self._update("vehicles", VEHICLE_COLUMNS, vehicle)
            except sqlite3.IntegrityError as exc:
                if is_new:
                    vehicle.id = None
                raise ConflictError(f"Vehicle with VIN {vehicle.vin} already exists") from exc
        return vehicle

    def delete_vehicle(self, vehicle_id: str) -> bool:
        with self.transaction():
            cursor = self._conn.execute("DELETE FROM vehicles WHERE id = ?", (vehicle_id,))
        return cursor.rowcount > 0

    def list_vehicles(self, *, status: VehicleStatus | None = None) -> list[Vehicle]:
        with self._lock:
            if status is None:
                rows = self._conn.execute("SELECT * FROM vehicles ORDER BY created_at").fetchall()
            else:
                rows = self._conn.execute(
                    "SELECT * FROM vehicles WHERE status = ? ORDER BY created_at",
                    (status.value,),
                ).fetchall()
        return [self._row_to_record(Vehicle, r) for r in rows]

    def count_vehicles(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM vehicles") or 0

    def count_vehicles_by_status(self, status: VehicleStatus) -> int:
        return self._scalar(
            "SELECT COUNT(*) FROM vehicles WHERE status = ?", (status.value,)
        ) or 0

    def average_selling_price(self) -> Decimal | None:
        return _avg_decimals(self._column(
            """SELECT selling_price FROM vehicles
               WHERE status = ? AND selling_price IS NOT NULL""",
            (VehicleStatus.AVAILABLE.value,),
        ))

    def total_potential_profit_of_sold(self) -> Decimal | None:
        with self._lock:
            rows = self._conn.execute(
                """SELECT selling_price, purchase_price FROM vehicles
                   WHERE status = ?
                     AND selling_price IS NOT NULL
                     AND purchase_price IS NOT NULL""",
                (VehicleStatus.SOLD.value,),
            ).fetchall()
        if not rows:
            return None
        return sum(
            (parse_decimal(r["selling_price"]) - parse_decimal(r["purchase_price"]) for r in rows),
            ZERO,
        )

    def vehicle_count_by_make(self) -> list[tuple[str, int]]:
        with self._lock:
            rows = self._conn.execute(
                """SELECT make, COUNT(*) AS n FROM vehicles
                   GROUP BY make
                   ORDER BY n DESC, make ASC"""
            ).fetchall()
        return [(r["make"], r["n"]) for r in rows]

    def count_sales_for_vehicle(self, vehicle_id: str) -> int:
        return self._scalar(
            "SELECT COUNT(*) FROM sales WHERE vehicle_id = ?", (vehicle_id,)
        ) or 0

    # ── Customers ──────────────────────────────────────────────────

    def get_customer(self, customer_id: str) -> Customer | None:
        return self._fetch_one(Customer, "SELECT * FROM customers WHERE id = ?", (customer_id,))

    def get_customer_by_email(self, email: str) -> Customer | None:
        return self._fetch_one(
            Customer,
            "SELECT * FROM customers WHERE email = ? COLLATE NOCASE",
            (email.strip(),),
        )

    def save_customer(self, customer: Customer) -> Customer:
        now = utc_now()
        with self.transaction():
            customer.updated_at = now
            is_new = customer.id is None
            try:
                if is_new:
                    customer.id = _new_id(ID_PREFIX_CUSTOMER)
                    customer.created_at = now
                    self._insert("customers", CUSTOMER_COLUMNS, customer)
                else:
                    self._update("customers", CUSTOMER_COLUMNS, customer)
            except sqlite3.IntegrityError as exc:
                if is_new:
                    customer.id = None
                raise ConflictError(
                    f"Customer with email {customer.email} already exists"
                ) from exc
        return customer

    def delete_customer(self, customer_id: str) -> bool:
        with self.transaction():
            cursor = self._conn.execute("DELETE FROM customers WHERE id = ?", (customer_id,))
        return cursor.rowcount > 0

    def count_customers(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM customers") or 0

    def count_active_customers(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM customers WHERE is_active = 1") or 0

    def count_customers_by_type(self, customer_type: CustomerType) -> int:
        return self._scalar(
            "SELECT COUNT(*) FROM customers WHERE customer_type = ?", (customer_type.value,)
        ) or 0

    def average_credit_score(self) -> Decimal | None:
        with self._lock:
            total, count = self._conn.execute(
                """SELECT SUM(credit_score), COUNT(credit_score) FROM customers
                   WHERE credit_score IS NOT NULL"""
            ).fetchone()
        if not count:
            return None
        return money(Decimal(total) / Decimal(count))

    def customer_count_by_state(self) -> list[tuple[str, int]]:
        with self._lock:
            rows = self._conn.execute(
                """SELECT state, COUNT(*) AS n FROM customers
                   WHERE state IS NOT NULL
                   GROUP BY state
                   ORDER BY n DESC, state ASC"""
            ).fetchall()
        return [(r["state"], r["n"]) for r in rows]

    def count_sales_for_customer(self, customer_id: str) -> int:
        return self._scalar(
            "SELECT COUNT(*) FROM sales WHERE customer_id = ?", (customer_id,)
        ) or 0

    # ── Sales ──────────────────────────────────────────────────────

    def get_sale(self, sale_id: str) -> Sale | None:
        return self._fetch_one(Sale, "SELECT * FROM sales WHERE id = ?", (sale_id,))

    def save_sale(self, sale: Sale) -> Sale:
        """Insert or update a sale with an optimistic version check.

        An update only applies when the stored version still matches
        ``sale.version``; otherwise another writer got there first and
        ``ConflictError`` is raised.
        """
        now = utc_now()
        with self.transaction():
            if sale.id is None:
                sale.id = _new_id(ID_PREFIX_SALE)
                sale.created_at = now
                sale.updated_at = now
                sale.version = 1
                self._insert("sales", SALE_COLUMNS, sale)
                return sale

            expected = sale.version
            sale.version = expected + 1
            sale.updated_at = now
            changed = self._update(
                "sales",
                SALE_COLUMNS,
                sale,
                extra_where=" AND version = ?",
                extra_params=(expected,),
            )
            if changed == 0:
                sale.version = expected
                raise ConflictError(f"Sale {sale.id} was modified concurrently; reload and retry")
        return sale

    def list_sales(
        self,
        *,
        status: SaleStatus | None = None,
        vehicle_id: str | None = None,
        customer_id: str | None = None,
    ) -> list[Sale]:
        clauses: list[str] = []
        params: list[Any] = []
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        if vehicle_id is not None:
            clauses.append("vehicle_id = ?")
            params.append(vehicle_id)
        if customer_id is not None:
            clauses.append("customer_id = ?")
            params.append(customer_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT * FROM sales {where} ORDER BY sale_date, created_at",
                params,
            ).fetchall()
        return [self._row_to_record(Sale, r) for r in rows]

    def revenue_between(self, start: date, end: date) -> Decimal | None:
        return _sum_decimals(self._column(
            """SELECT sale_price FROM sales
               WHERE status = ? AND sale_date BETWEEN ? AND ?""",
            (_COMPLETED, start.isoformat(), end.isoformat()),
        ))

    def gross_profit_between(self, start: date, end: date) -> Decimal | None:
        with self._lock:
            rows = self._conn.execute(
                """SELECT s.sale_price, v.purchase_price
                   FROM sales s JOIN vehicles v ON v.id = s.vehicle_id
                   WHERE s.status = ?
                     AND s.sale_date BETWEEN ? AND ?
                     AND v.purchase_price IS NOT NULL""",
                (_COMPLETED, start.isoformat(), end.isoformat()),
            ).fetchall()
        if not rows:
            return None
        return sum(
            (parse_decimal(r["sale_price"]) - parse_decimal(r["purchase_price"]) for r in rows),
            ZERO,
        )

    def average_sale_price(self) -> Decimal | None:
        return _avg_decimals(self._column(
            "SELECT sale_price FROM sales WHERE status = ?", (_COMPLETED,)
        ))

    def salesperson_performance(self) -> list[tuple[str | None, int, Decimal]]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT salesperson_email, sale_price FROM sales WHERE status = ?",
                (_COMPLETED,),
            ).fetchall()
        grouped: dict[str | None, list[Decimal]] = {}
        for row in rows:
            grouped.setdefault(row["salesperson_email"], []).append(
                parse_decimal(row["sale_price"]) or ZERO
            )
        report = [(email, len(prices), sum(prices, ZERO)) for email, prices in grouped.items()]
        report.sort(key=lambda item: (-item[2], item[0] or ""))
        return report

    def monthly_sales_report(self) -> list[tuple[int, int, int, Decimal]]:
        with self._lock:
            rows = self._conn.execute(
                """SELECT CAST(substr(sale_date, 1, 4) AS INTEGER) AS y,
                          CAST(substr(sale_date, 6, 2) AS INTEGER) AS m,
                          sale_price
                   FROM sales WHERE status = ?""",
                (_COMPLETED,),
            ).fetchall()
        buckets: dict[tuple[int, int], list[Decimal]] = {}
        for row in rows:
            buckets.setdefault((row["y"], row["m"]), []).append(
                parse_decimal(row["sale_price"]) or ZERO
            )
        return [
            (year, month, len(prices), sum(prices, ZERO))
            for (year, month), prices in sorted(buckets.items())
        ]

    def payment_method_distribution(self) -> list[tuple[PaymentMethod, int]]:
        with self._lock:
            rows = self._conn.execute(
                """SELECT payment_method, COUNT(*) AS n FROM sales
                   GROUP BY payment_method
                   ORDER BY n DESC, payment_method ASC"""
            ).fetchall()
        return [(PaymentMethod(r["payment_method"]), r["n"]) for r in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()
