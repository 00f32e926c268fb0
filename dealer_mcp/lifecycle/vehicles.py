"""Vehicle lifecycle: creation, descriptive updates, status changes and guarded deletion.

Vehicle status transitions are deliberately unconstrained; the named operations
exist so callers (chiefly the sale lifecycle) state their intent.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any

from dealer_mcp.data.store import DealerStore
from dealer_mcp.errors import ConflictError, FieldError, NotFoundError, ValidationError
from dealer_mcp.models import Vehicle, VehicleStatus, parse_enum

logger = logging.getLogger(__name__)

VEHICLE_UPDATABLE_FIELDS = (
    "make",
    "model",
    "year",
    "color",
    "engine_type",
    "transmission",
    "fuel_type",
    "mileage",
    "purchase_price",
    "selling_price",
    "msrp",
    "status",
    "condition",
    "purchase_date",
    "description",
    "location",
)


class VehicleLifecycleManager:
    def __init__(self, store: DealerStore) -> None:
        self._store = store

    def get_vehicle(self, vehicle_id: str) -> Vehicle:
        vehicle = self._store.get_vehicle(vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle", vehicle_id)
        return vehicle

    def get_vehicle_by_vin(self, vin: str) -> Vehicle:
        vehicle = self._store.get_vehicle_by_vin(vin)
        if vehicle is None:
            raise NotFoundError("Vehicle with VIN", vin.strip().upper())
        return vehicle

    def create_vehicle(self, payload: Mapping[str, Any] | Vehicle) -> Vehicle:
        """Validate and persist a new vehicle.  VINs are unique case-insensitively."""
        if isinstance(payload, Vehicle):
            vehicle = payload
            vehicle.validate()
        else:
            vehicle = Vehicle.from_payload(payload)
        if vehicle.purchase_date is None:
            vehicle.purchase_date = date.today()

        with self._store.transaction():
            if self._store.get_vehicle_by_vin(vehicle.vin) is not None:
                raise ConflictError(f"Vehicle with VIN {vehicle.vin} already exists")
            saved = self._store.save_vehicle(vehicle)
        logger.info("Vehicle %s created with VIN %s", saved.id, saved.vin)
        return saved

    def update_vehicle(self, vehicle_id: str, payload: Mapping[str, Any]) -> Vehicle:
        """Overwrite descriptive and pricing fields present in ``payload``.  The VIN is immutable."""
        with self._store.transaction():
            vehicle = self.get_vehicle(vehicle_id)
            vehicle.apply_payload(payload, VEHICLE_UPDATABLE_FIELDS)
            saved = self._store.save_vehicle(vehicle)
        logger.info("Vehicle %s updated", vehicle_id)
        return saved

    def set_status(self, vehicle_id: str, status: VehicleStatus | str) -> Vehicle:
        resolved = parse_enum(VehicleStatus, status)
        if resolved is None:
            allowed = ", ".join(s.value for s in VehicleStatus)
            raise ValidationError([FieldError("status", f"must be one of {allowed}")])
        with self._store.transaction():
            vehicle = self.get_vehicle(vehicle_id)
            previous = vehicle.status
            vehicle.status = resolved
            saved = self._store.save_vehicle(vehicle)
        logger.info("Vehicle %s status %s -> %s", vehicle_id, previous.value, resolved.value)
        return saved

    def reserve(self, vehicle_id: str) -> Vehicle:
        return self.set_status(vehicle_id, VehicleStatus.RESERVED)

    def mark_sold(self, vehicle_id: str) -> Vehicle:
        return self.set_status(vehicle_id, VehicleStatus.SOLD)

    def make_available(self, vehicle_id: str) -> Vehicle:
        return self.set_status(vehicle_id, VehicleStatus.AVAILABLE)

    def mark_for_maintenance(self, vehicle_id: str) -> Vehicle:
        return self.set_status(vehicle_id, VehicleStatus.MAINTENANCE)

    def delete_vehicle(self, vehicle_id: str) -> None:
        """Delete a vehicle that has never been part of a sale, cancelled or not."""
        with self._store.transaction():
            self.get_vehicle(vehicle_id)
            if self._store.count_sales_for_vehicle(vehicle_id) > 0:
                raise ConflictError("Cannot delete vehicle with existing sales records")
            self._store.delete_vehicle(vehicle_id)
        logger.info("Vehicle %s deleted", vehicle_id)
