"""Customer records: creation defaults, email uniqueness, activation and guarded deletion."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from dealer_mcp.constants import MAX_CREDIT_SCORE, MIN_CREDIT_SCORE
from dealer_mcp.data.store import DealerStore
from dealer_mcp.errors import ConflictError, FieldError, NotFoundError, ValidationError
from dealer_mcp.models import Customer

logger = logging.getLogger(__name__)

CUSTOMER_UPDATABLE_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "date_of_birth",
    "address",
    "city",
    "state",
    "zip_code",
    "country",
    "driver_license",
    "customer_type",
    "company_name",
    "tax_id",
    "credit_score",
    "preferred_contact_method",
    "notes",
    "is_active",
)


class CustomerManager:
    def __init__(self, store: DealerStore) -> None:
        self._store = store

    def get_customer(self, customer_id: str) -> Customer:
        customer = self._store.get_customer(customer_id)
        if customer is None:
            raise NotFoundError("Customer", customer_id)
        return customer

    def _ensure_email_free(self, email: str, *, owner_id: str | None = None) -> None:
        # Uniqueness spans active and inactive customers alike.
        existing = self._store.get_customer_by_email(email)
        if existing is not None and existing.id != owner_id:
            raise ConflictError(f"Customer with email {email} already exists")

    def create_customer(self, payload: Mapping[str, Any] | Customer) -> Customer:
        if isinstance(payload, Customer):
            customer = payload
            customer.validate()
        else:
            customer = Customer.from_payload(payload)

        with self._store.transaction():
            self._ensure_email_free(customer.email)
            saved = self._store.save_customer(customer)
        logger.info("Customer %s created", saved.id)
        return saved

    def update_customer(self, customer_id: str, payload: Mapping[str, Any]) -> Customer:
        with self._store.transaction():
            customer = self.get_customer(customer_id)
            customer.apply_payload(payload, CUSTOMER_UPDATABLE_FIELDS)
            self._ensure_email_free(customer.email, owner_id=customer_id)
            saved = self._store.save_customer(customer)
        logger.info("Customer %s updated", customer_id)
        return saved

    def _set_active(self, customer_id: str, active: bool) -> Customer:
        with self._store.transaction():
            customer = self.get_customer(customer_id)
            customer.is_active = active
            saved = self._store.save_customer(customer)
        logger.info("Customer %s %s", customer_id, "activated" if active else "deactivated")
        return saved

    def activate_customer(self, customer_id: str) -> Customer:
        return self._set_active(customer_id, True)

    def deactivate_customer(self, customer_id: str) -> Customer:
        return self._set_active(customer_id, False)

    def update_credit_score(self, customer_id: str, credit_score: int) -> Customer:
        if isinstance(credit_score, bool) or not isinstance(credit_score, int) or not (
            MIN_CREDIT_SCORE <= credit_score <= MAX_CREDIT_SCORE
        ):
            raise ValidationError([
                FieldError(
                    "credit_score",
                    f"must be between {MIN_CREDIT_SCORE} and {MAX_CREDIT_SCORE}",
                )
            ])
        with self._store.transaction():
            customer = self.get_customer(customer_id)
            customer.credit_score = credit_score
            saved = self._store.save_customer(customer)
        return saved

    def delete_customer(self, customer_id: str) -> None:
        with self._store.transaction():
            self.get_customer(customer_id)
            if self._store.count_sales_for_customer(customer_id) > 0:
                raise ConflictError("Cannot delete customer with existing sales records")
            self._store.delete_customer(customer_id)
        logger.info("Customer %s deleted", customer_id)
