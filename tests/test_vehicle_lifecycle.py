"""Vehicle lifecycle manager tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from dealer_mcp.errors import ConflictError, NotFoundError, ValidationError
from dealer_mcp.models import Vehicle, VehicleCondition, VehicleStatus


class TestCreateVehicle:
    def test_defaults_applied(self, vehicles, vehicle_payload):
        vehicle = vehicles.create_vehicle(vehicle_payload())
        assert vehicle.id is not None
        assert vehicle.status is VehicleStatus.AVAILABLE
        assert vehicle.condition is VehicleCondition.NEW
        assert vehicle.purchase_date == date.today()

    def test_explicit_purchase_date_kept(self, vehicles, vehicle_payload):
        vehicle = vehicles.create_vehicle(vehicle_payload(purchase_date="2024-02-29"))
        assert vehicle.purchase_date == date(2024, 2, 29)

    def test_accepts_record_instance(self, vehicles):
        vehicle = vehicles.create_vehicle(Vehicle(
            vin="1HGCM82633A004352", make="Honda", model="Accord", year=2003,
        ))
        assert vehicles.get_vehicle(vehicle.id).vin == "1HGCM82633A004352"

    def test_duplicate_vin_conflicts(self, vehicles, vehicle_payload):
        vehicles.create_vehicle(vehicle_payload(vin="1HGCM82633A004352"))
        with pytest.raises(ConflictError, match="already exists"):
            vehicles.create_vehicle(vehicle_payload(vin="1hgcm82633a004352"))

    def test_invalid_payload_lists_every_field(self, vehicles):
        with pytest.raises(ValidationError) as exc_info:
            vehicles.create_vehicle({"vin": "123", "year": 3000})
        assert set(exc_info.value.fields) == {"vin", "make", "model", "year"}


class TestGetAndUpdate:
    def test_get_missing_raises(self, vehicles):
        with pytest.raises(NotFoundError, match="Vehicle veh-missing not found"):
            vehicles.get_vehicle("veh-missing")

    def test_get_by_vin(self, vehicles, vehicle_payload):
        vehicle = vehicles.create_vehicle(vehicle_payload(vin="1HGCM82633A004352"))
        assert vehicles.get_vehicle_by_vin("1hgcm82633a004352").id == vehicle.id

    def test_get_by_vin_missing_raises(self, vehicles):
        with pytest.raises(NotFoundError, match="Vehicle with VIN 1HGCM82633A004352 not found"):
            vehicles.get_vehicle_by_vin("1hgcm82633a004352")

    def test_update_overwrites_present_fields(self, vehicles, vehicle_payload):
        vehicle = vehicles.create_vehicle(vehicle_payload(color="Red"))
        updated = vehicles.update_vehicle(vehicle.id, {"sellingPrice": "29999.99", "location": "Lot B"})
        assert updated.selling_price == Decimal("29999.99")
        assert updated.location == "Lot B"
        assert updated.color == "Red"
        assert vehicles.get_vehicle(vehicle.id).selling_price == Decimal("29999.99")

    def test_update_ignores_vin(self, vehicles, vehicle_payload):
        vehicle = vehicles.create_vehicle(vehicle_payload())
        updated = vehicles.update_vehicle(vehicle.id, {"vin": "ZZZZZZZZZZZZZZZZZ"})
        assert updated.vin == vehicle.vin

    def test_update_revalidates(self, vehicles, vehicle_payload):
        vehicle = vehicles.create_vehicle(vehicle_payload())
        with pytest.raises(ValidationError) as exc_info:
            vehicles.update_vehicle(vehicle.id, {"selling_price": "-10"})
        assert exc_info.value.fields == ["selling_price"]
        assert vehicles.get_vehicle(vehicle.id).selling_price == Decimal("28500.00")

    def test_update_missing_raises(self, vehicles):
        with pytest.raises(NotFoundError):
            vehicles.update_vehicle("veh-missing", {"color": "Blue"})


class TestStatusChanges:
    def test_named_transitions(self, vehicles, vehicle_payload):
        vehicle = vehicles.create_vehicle(vehicle_payload())
        assert vehicles.reserve(vehicle.id).status is VehicleStatus.RESERVED
        assert vehicles.mark_sold(vehicle.id).status is VehicleStatus.SOLD
        assert vehicles.make_available(vehicle.id).status is VehicleStatus.AVAILABLE
        assert vehicles.mark_for_maintenance(vehicle.id).status is VehicleStatus.MAINTENANCE
        assert vehicles.get_vehicle(vehicle.id).status is VehicleStatus.MAINTENANCE

    def test_transitions_are_unconstrained(self, vehicles, vehicle_payload):
        vehicle = vehicles.create_vehicle(vehicle_payload())
        vehicles.mark_sold(vehicle.id)
        assert vehicles.set_status(vehicle.id, "discontinued").status is VehicleStatus.DISCONTINUED
        assert vehicles.set_status(vehicle.id, "available").status is VehicleStatus.AVAILABLE

    def test_unknown_status_rejected(self, vehicles, vehicle_payload):
        vehicle = vehicles.create_vehicle(vehicle_payload())
        with pytest.raises(ValidationError):
            vehicles.set_status(vehicle.id, "flying")

    def test_missing_vehicle_raises(self, vehicles):
        with pytest.raises(NotFoundError):
            vehicles.reserve("veh-missing")


class TestDeleteVehicle:
    def test_delete_unsold_vehicle(self, vehicles, vehicle_payload):
        vehicle = vehicles.create_vehicle(vehicle_payload())
        vehicles.delete_vehicle(vehicle.id)
        with pytest.raises(NotFoundError):
            vehicles.get_vehicle(vehicle.id)

    def test_delete_missing_raises(self, vehicles):
        with pytest.raises(NotFoundError):
            vehicles.delete_vehicle("veh-missing")

    def test_delete_blocked_by_cancelled_sale(
        self, vehicles, customers, sales, vehicle_payload, customer_payload,
    ):
        vehicle = vehicles.create_vehicle(vehicle_payload())
        customer = customers.create_customer(customer_payload())
        sale = sales.create_sale({
            "vehicle_id": vehicle.id, "customer_id": customer.id, "sale_price": "28000",
        })
        sales.cancel_sale(sale.id, "Changed mind")
        with pytest.raises(ConflictError, match="existing sales records"):
            vehicles.delete_vehicle(vehicle.id)
        assert vehicles.get_vehicle(vehicle.id).status is VehicleStatus.AVAILABLE
