"""Sale lifecycle: PENDING -> APPROVED -> COMPLETED, with cancel and refund branches.

Every transition that also moves the vehicle runs inside one store transaction,
so the sale row and the vehicle status commit or roll back together.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any, Protocol

from dealer_mcp.data.store import DealerStore
from dealer_mcp.errors import ConflictError, NotFoundError
from dealer_mcp.models import SALE_MUTABLE_FIELDS, Sale, SaleStatus, VehicleStatus
from dealer_mcp.normalization import clean_text, utc_now

logger = logging.getLogger(__name__)

_SELLABLE_VEHICLE_STATUSES = frozenset({VehicleStatus.AVAILABLE, VehicleStatus.RESERVED})


class VehicleStatusPort(Protocol):
    """The slice of the vehicle lifecycle a sale is allowed to drive."""

    def reserve(self, vehicle_id: str) -> Any: ...
    def mark_sold(self, vehicle_id: str) -> Any: ...
    def make_available(self, vehicle_id: str) -> Any: ...


class SaleLifecycleManager:
    def __init__(self, store: DealerStore, vehicles: VehicleStatusPort) -> None:
        self._store = store
        self._vehicles = vehicles

    def get_sale(self, sale_id: str) -> Sale:
        sale = self._store.get_sale(sale_id)
        if sale is None:
            raise NotFoundError("Sale", sale_id)
        return sale

    # ── Creation & edits ───────────────────────────────────────────

    def create_sale(self, payload: Mapping[str, Any] | Sale) -> Sale:
        """Validate, check the vehicle and customer, reserve the vehicle and persist.

        Status and finalization always start at PENDING / not finalized,
        whatever the payload says.
        """
        if isinstance(payload, Sale):
            sale = payload
            sale.validate()
        else:
            sale = Sale.from_payload(payload)

        with self._store.transaction():
            vehicle = self._store.get_vehicle(sale.vehicle_id)
            if vehicle is None:
                raise NotFoundError("Vehicle", sale.vehicle_id)
            customer = self._store.get_customer(sale.customer_id)
            if customer is None:
                raise NotFoundError("Customer", sale.customer_id)
            if vehicle.status not in _SELLABLE_VEHICLE_STATUSES:
                raise ConflictError(
                    f"Vehicle {vehicle.id} is not available for sale (status {vehicle.status.value})"
                )
            if not customer.is_active:
                raise ConflictError(f"Customer {customer.id} is inactive")

            if sale.sale_date is None:
                sale.sale_date = date.today()
            sale.status = SaleStatus.PENDING
            sale.is_finalized = False
            sale.contract_signed_at = None
            sale.recompute_commission()

            self._vehicles.reserve(vehicle.id)
            saved = self._store.save_sale(sale)
        logger.info(
            "Sale %s created for vehicle %s and customer %s",
            saved.id, saved.vehicle_id, saved.customer_id,
        )
        return saved

    def update_sale(self, sale_id: str, details: Mapping[str, Any]) -> Sale:
        """Overwrite the financial and administrative fields present in ``details``."""
        with self._store.transaction():
            sale = self.get_sale(sale_id)
            if sale.is_finalized:
                raise ConflictError("Cannot update finalized sale")
            sale.apply_payload(details, SALE_MUTABLE_FIELDS)
            sale.recompute_commission()
            saved = self._store.save_sale(sale)
        logger.info("Sale %s updated", sale_id)
        return saved

    # ── Transitions ────────────────────────────────────────────────

    def _transition(self, sale: Sale, target: SaleStatus) -> None:
        logger.info("Sale %s status %s -> %s", sale.id, sale.status.value, target.value)
        sale.status = target

    def approve_sale(self, sale_id: str) -> Sale:
        with self._store.transaction():
            sale = self.get_sale(sale_id)
            if sale.status is not SaleStatus.PENDING:
                raise ConflictError("Only pending sales can be approved")
            self._transition(sale, SaleStatus.APPROVED)
            return self._store.save_sale(sale)

    def complete_sale(self, sale_id: str) -> Sale:
        with self._store.transaction():
            sale = self.get_sale(sale_id)
            if sale.status is not SaleStatus.APPROVED:
                raise ConflictError("Only approved sales can be completed")
            self._transition(sale, SaleStatus.COMPLETED)
            sale.is_finalized = True
            sale.contract_signed_at = utc_now()
            saved = self._store.save_sale(sale)
            self._vehicles.mark_sold(sale.vehicle_id)
        return saved

    def cancel_sale(self, sale_id: str, reason: str | None = None) -> Sale:
        with self._store.transaction():
            sale = self.get_sale(sale_id)
            if sale.status is SaleStatus.COMPLETED:
                raise ConflictError("Cannot cancel completed sale")
            if sale.status.is_terminal:
                raise ConflictError(f"Sale is already {sale.status.value.lower()}")
            self._transition(sale, SaleStatus.CANCELLED)
            text = clean_text(reason)
            if text:
                sale.append_note(f"Cancellation reason: {text}")
            saved = self._store.save_sale(sale)
            self._vehicles.make_available(sale.vehicle_id)
        return saved

    def refund_sale(self, sale_id: str, reason: str | None = None) -> Sale:
        """Reverse a completed sale.  The record stays finalized; the vehicle returns to stock."""
        with self._store.transaction():
            sale = self.get_sale(sale_id)
            if sale.status is not SaleStatus.COMPLETED:
                raise ConflictError("Only completed sales can be refunded")
            self._transition(sale, SaleStatus.REFUNDED)
            text = clean_text(reason)
            if text:
                sale.append_note(f"Refund reason: {text}")
            saved = self._store.save_sale(sale)
            self._vehicles.make_available(sale.vehicle_id)
        return saved
