"""Customer manager tests."""

from __future__ import annotations

import pytest

from dealer_mcp.errors import ConflictError, NotFoundError, ValidationError
from dealer_mcp.models import ContactMethod, CustomerType


class TestCreateCustomer:
    def test_defaults(self, customers, customer_payload):
        customer = customers.create_customer(customer_payload())
        assert customer.id.startswith("cust-")
        assert customer.customer_type is CustomerType.INDIVIDUAL
        assert customer.preferred_contact_method is ContactMethod.EMAIL
        assert customer.is_active is True

    def test_duplicate_email_conflicts(self, customers, customer_payload):
        customers.create_customer(customer_payload(email="ada@example.com"))
        with pytest.raises(ConflictError, match="already exists"):
            customers.create_customer(customer_payload(email="ADA@example.com"))

    def test_duplicate_email_of_inactive_customer_conflicts(self, customers, customer_payload):
        existing = customers.create_customer(customer_payload(email="ada@example.com"))
        customers.deactivate_customer(existing.id)
        with pytest.raises(ConflictError):
            customers.create_customer(customer_payload(email="ada@example.com"))

    def test_validation_errors(self, customers):
        with pytest.raises(ValidationError) as exc_info:
            customers.create_customer({"email": "bad"})
        assert set(exc_info.value.fields) == {"first_name", "last_name", "email"}


class TestUpdateCustomer:
    def test_update_fields(self, customers, customer_payload):
        customer = customers.create_customer(customer_payload())
        updated = customers.update_customer(customer.id, {"city": "Austin", "customerType": "fleet"})
        assert updated.city == "Austin"
        assert updated.customer_type is CustomerType.FLEET

    def test_update_to_taken_email_conflicts(self, customers, customer_payload):
        customers.create_customer(customer_payload(email="taken@example.com"))
        customer = customers.create_customer(customer_payload())
        with pytest.raises(ConflictError):
            customers.update_customer(customer.id, {"email": "Taken@example.com"})

    def test_keeping_own_email_is_fine(self, customers, customer_payload):
        customer = customers.create_customer(customer_payload(email="own@example.com"))
        updated = customers.update_customer(customer.id, {"email": "own@example.com", "state": "CA"})
        assert updated.state == "CA"

    def test_missing_customer(self, customers):
        with pytest.raises(NotFoundError, match="Customer cust-missing not found"):
            customers.update_customer("cust-missing", {"city": "Austin"})


class TestActivationAndCredit:
    def test_deactivate_and_activate(self, customers, customer_payload):
        customer = customers.create_customer(customer_payload())
        assert customers.deactivate_customer(customer.id).is_active is False
        assert customers.get_customer(customer.id).is_active is False
        assert customers.activate_customer(customer.id).is_active is True

    def test_update_credit_score(self, customers, customer_payload):
        customer = customers.create_customer(customer_payload())
        assert customers.update_credit_score(customer.id, 812).credit_score == 812
        assert customers.get_customer(customer.id).credit_score == 812

    @pytest.mark.parametrize("score", [299, 851])
    def test_credit_score_out_of_range(self, customers, customer_payload, score):
        customer = customers.create_customer(customer_payload())
        with pytest.raises(ValidationError) as exc_info:
            customers.update_credit_score(customer.id, score)
        assert exc_info.value.fields == ["credit_score"]

    def test_credit_score_bounds_inclusive(self, customers, customer_payload):
        customer = customers.create_customer(customer_payload())
        assert customers.update_credit_score(customer.id, 300).credit_score == 300
        assert customers.update_credit_score(customer.id, 850).credit_score == 850


class TestDeleteCustomer:
    def test_delete(self, customers, customer_payload):
        customer = customers.create_customer(customer_payload())
        customers.delete_customer(customer.id)
        with pytest.raises(NotFoundError):
            customers.get_customer(customer.id)

    def test_delete_blocked_by_sale(
        self, vehicles, customers, sales, vehicle_payload, customer_payload,
    ):
        vehicle = vehicles.create_vehicle(vehicle_payload())
        customer = customers.create_customer(customer_payload())
        sales.create_sale({
            "vehicle_id": vehicle.id, "customer_id": customer.id, "sale_price": "28000",
        })
        with pytest.raises(ConflictError, match="existing sales records"):
            customers.delete_customer(customer.id)
