"""Read-only business metrics over persisted vehicles, customers and sales.

Every report is a frozen dataclass with ``to_dict()``.  Missing aggregates
(no rows) are reported as zero or as an empty list, never as ``None``.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from dealer_mcp.config import ProjectionSettings
from dealer_mcp.data.store import DealerStore
from dealer_mcp.errors import FieldError, ValidationError
from dealer_mcp.models import CustomerType, VehicleStatus
from dealer_mcp.normalization import money, percentage

logger = logging.getLogger(__name__)

_WHOLE = Decimal("1")


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class _Report:
    def to_dict(self) -> dict[str, Any]:
        return _jsonable(asdict(self))  # type: ignore[call-overload]


# ── Report value objects ────────────────────────────────────────────


@dataclass(frozen=True)
class MonthlySales(_Report):
    year: int
    month: int
    sales_count: int
    revenue: Decimal


@dataclass(frozen=True)
class RevenueAnalytics(_Report):
    start_date: str
    end_date: str
    total_revenue: Decimal
    total_profit: Decimal
    profit_margin: Decimal
    average_sale_price: Decimal
    monthly_sales: list[MonthlySales] = field(default_factory=list)


@dataclass(frozen=True)
class SalespersonPerformance(_Report):
    salesperson_email: str | None
    sales_count: int
    total_revenue: Decimal
    average_sale_value: Decimal


@dataclass(frozen=True)
class SalesPerformanceAnalytics(_Report):
    salespeople: list[SalespersonPerformance] = field(default_factory=list)
    payment_method_distribution: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class InventoryAnalytics(_Report):
    available_vehicles: int
    sold_vehicles: int
    reserved_vehicles: int
    maintenance_vehicles: int
    discontinued_vehicles: int
    average_selling_price: Decimal
    total_potential_profit: Decimal
    inventory_turnover_rate: Decimal
    vehicles_by_make: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class CustomerAnalytics(_Report):
    total_customers: int
    active_customers: int
    business_customers: int
    individual_customers: int
    average_credit_score: Decimal
    customer_retention_rate: Decimal
    customers_by_state: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ProjectedMonth(_Report):
    year: int
    month: int
    projected_revenue: Decimal
    projected_sales: int


@dataclass(frozen=True)
class GrowthProjections(_Report):
    projected_months: list[ProjectedMonth]
    projection_basis: str
    confidence_level: int
    average_monthly_revenue: Decimal


def _add_months(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


# ── Engine ──────────────────────────────────────────────────────────


class AnalyticsEngine:
    """Aggregates store data into reports.  Never writes."""

    def __init__(self, store: DealerStore, settings: ProjectionSettings | None = None) -> None:
        self._store = store
        self._settings = settings or ProjectionSettings()

    @property
    def settings(self) -> ProjectionSettings:
        return self._settings

    def _monthly_sales(self) -> list[MonthlySales]:
        return [
            MonthlySales(year=y, month=m, sales_count=n, revenue=money(revenue))
            for y, m, n, revenue in self._store.monthly_sales_report()
        ]

    def revenue_analytics(self, start: date, end: date) -> RevenueAnalytics:
        """Revenue and gross profit of completed sales dated within ``[start, end]``.

        The average sale price and the monthly breakdown cover every completed
        sale, not just the requested range.
        """
        if start > end:
            raise ValidationError([FieldError("start_date", "must not be after end_date")])
        logger.info("Revenue analytics for %s to %s", start, end)

        revenue = self._store.revenue_between(start, end)
        profit = self._store.gross_profit_between(start, end)
        return RevenueAnalytics(
            start_date=start.isoformat(),
            end_date=end.isoformat(),
            total_revenue=money(revenue),
            total_profit=money(profit),
            profit_margin=percentage(profit or 0, revenue),
            average_sale_price=money(self._store.average_sale_price()),
            monthly_sales=self._monthly_sales(),
        )

    def sales_performance(self) -> SalesPerformanceAnalytics:
        salespeople = [
            SalespersonPerformance(
                salesperson_email=email,
                sales_count=count,
                total_revenue=money(revenue),
                average_sale_value=money(revenue / count),
            )
            for email, count, revenue in self._store.salesperson_performance()
            if count
        ]
        distribution = {
            method.value: count for method, count in self._store.payment_method_distribution()
        }
        return SalesPerformanceAnalytics(
            salespeople=salespeople,
            payment_method_distribution=distribution,
        )

    def inventory_analytics(self) -> InventoryAnalytics:
        counts = {s: self._store.count_vehicles_by_status(s) for s in VehicleStatus}
        sold = counts[VehicleStatus.SOLD]
        # Discontinued units are reported but left out of the turnover base.
        turnover_base = (
            counts[VehicleStatus.AVAILABLE]
            + sold
            + counts[VehicleStatus.RESERVED]
            + counts[VehicleStatus.MAINTENANCE]
        )
        return InventoryAnalytics(
            available_vehicles=counts[VehicleStatus.AVAILABLE],
            sold_vehicles=sold,
            reserved_vehicles=counts[VehicleStatus.RESERVED],
            maintenance_vehicles=counts[VehicleStatus.MAINTENANCE],
            discontinued_vehicles=counts[VehicleStatus.DISCONTINUED],
            average_selling_price=money(self._store.average_selling_price()),
            total_potential_profit=money(self._store.total_potential_profit_of_sold()),
            inventory_turnover_rate=percentage(sold, turnover_base),
            vehicles_by_make=dict(self._store.vehicle_count_by_make()),
        )

    def customer_analytics(self) -> CustomerAnalytics:
        total = self._store.count_customers()
        active = self._store.count_active_customers()
        return CustomerAnalytics(
            total_customers=total,
            active_customers=active,
            business_customers=self._store.count_customers_by_type(CustomerType.BUSINESS),
            individual_customers=self._store.count_customers_by_type(CustomerType.INDIVIDUAL),
            average_credit_score=money(self._store.average_credit_score()),
            customer_retention_rate=percentage(active, total),
            customers_by_state=dict(self._store.customer_count_by_state()),
        )

    def growth_projections(self, months_ahead: int, *, today: date | None = None) -> GrowthProjections:
        """Project revenue and sale counts for the ``months_ahead`` months after the current one.

        Revenue compounds from the historical average monthly revenue by the
        configured growth factor; the running value is carried unrounded and
        each reported month is rounded to cents.  With no completed sales
        there is nothing to extrapolate and no months are returned.
        """
        limit = self._settings.max_months_ahead
        if isinstance(months_ahead, bool) or not isinstance(months_ahead, int) or not (
            1 <= months_ahead <= limit
        ):
            raise ValidationError([FieldError("months_ahead", f"must be between 1 and {limit}")])
        logger.info("Growth projections for %d months ahead", months_ahead)

        history = self._store.monthly_sales_report()
        average_monthly = (
            money(sum((row[3] for row in history), Decimal(0)) / len(history))
            if history else money(None)
        )

        months: list[ProjectedMonth] = []
        if history:
            unit_price = self._store.average_sale_price()
            if not unit_price:
                unit_price = self._settings.fallback_average_sale_price
            factor = self._settings.growth_factor
            anchor = today or date.today()
            projected = average_monthly
            for offset in range(1, months_ahead + 1):
                projected = projected * factor
                year, month = _add_months(anchor.year, anchor.month, offset)
                sales = (
                    int((projected / unit_price).quantize(_WHOLE, rounding=ROUND_HALF_UP))
                    if unit_price else 0
                )
                months.append(ProjectedMonth(
                    year=year,
                    month=month,
                    projected_revenue=money(projected),
                    projected_sales=sales,
                ))

        return GrowthProjections(
            projected_months=months,
            projection_basis=self._settings.basis,
            confidence_level=self._settings.confidence_level,
            average_monthly_revenue=average_monthly,
        )
