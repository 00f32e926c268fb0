"""Vehicle, Customer and Sale records with validation and derived financials.

Records are plain mutable dataclasses.  ``from_payload`` parses loosely typed
input (JSON numbers, strings such as ``"$28,000"``, camelCase keys) and raises
a single :class:`ValidationError` listing every problem it found.  Derived
amounts are properties over the current field values and are never cached.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar

from dealer_mcp.constants import (
    EMAIL_RE,
    HUNDRED,
    MAX_CREDIT_SCORE,
    MAX_LOAN_TERM_MONTHS,
    MAX_MODEL_YEAR,
    MAX_PERCENT,
    MIN_CREDIT_SCORE,
    MIN_LOAN_TERM_MONTHS,
    MIN_MODEL_YEAR,
    PHONE_RE,
    VIN_LENGTH,
    ZERO,
)
from dealer_mcp.errors import FieldError, ValidationError
from dealer_mcp.normalization import (
    clean_text,
    is_blank,
    money,
    parse_bool,
    parse_date,
    parse_datetime,
    parse_decimal,
    parse_int,
)

# ── Enums ───────────────────────────────────────────────────────


class VehicleStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    SOLD = "SOLD"
    MAINTENANCE = "MAINTENANCE"
    DISCONTINUED = "DISCONTINUED"


class VehicleCondition(str, Enum):
    NEW = "NEW"
    USED = "USED"
    CERTIFIED_PRE_OWNED = "CERTIFIED_PRE_OWNED"
    DAMAGED = "DAMAGED"


class CustomerType(str, Enum):
    INDIVIDUAL = "INDIVIDUAL"
    BUSINESS = "BUSINESS"
    FLEET = "FLEET"


class ContactMethod(str, Enum):
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    SMS = "SMS"
    MAIL = "MAIL"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    FINANCING = "FINANCING"
    LEASE = "LEASE"
    TRADE_IN = "TRADE_IN"
    COMBINATION = "COMBINATION"


class SaleStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_SALE_STATUSES


_TERMINAL_SALE_STATUSES = frozenset({
    SaleStatus.COMPLETED,
    SaleStatus.CANCELLED,
    SaleStatus.REFUNDED,
})

E = TypeVar("E", bound=Enum)


def parse_enum(enum_cls: type[E], value: Any) -> E | None:
    """Case-insensitive enum lookup; ``"certified pre-owned"`` matches ``CERTIFIED_PRE_OWNED``."""
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return None
    key = re.sub(r"[\s-]+", "_", value.strip()).upper()
    try:
        return enum_cls[key]
    except KeyError:
        return None


# ── Payload parsing ─────────────────────────────────────────────

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _canonical_key(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key.strip()).lower()


class _PayloadReader:
    """Parses raw payload values field by field, collecting parse failures."""

    def __init__(self, payload: Mapping[str, Any]) -> None:
        self._values = {_canonical_key(str(k)): v for k, v in payload.items()}
        self.errors: list[FieldError] = []

    def has(self, key: str) -> bool:
        return key in self._values

    def _fail(self, key: str, message: str) -> None:
        self.errors.append(FieldError(key, message))

    def text(self, key: str) -> str | None:
        return clean_text(self._values.get(key))

    def decimal(self, key: str) -> Decimal | None:
        raw = self._values.get(key)
        if is_blank(raw):
            return None
        parsed = parse_decimal(raw)
        if parsed is None:
            self._fail(key, "must be a number")
        return parsed

    def integer(self, key: str) -> int | None:
        raw = self._values.get(key)
        if is_blank(raw):
            return None
        parsed = parse_int(raw)
        if parsed is None:
            self._fail(key, "must be a whole number")
        return parsed

    def day(self, key: str) -> date | None:
        raw = self._values.get(key)
        if is_blank(raw):
            return None
        parsed = parse_date(raw)
        if parsed is None:
            self._fail(key, "must be an ISO date (YYYY-MM-DD)")
        return parsed

    def timestamp(self, key: str) -> datetime | None:
        raw = self._values.get(key)
        if is_blank(raw):
            return None
        parsed = parse_datetime(raw)
        if parsed is None:
            self._fail(key, "must be an ISO-8601 datetime")
        return parsed

    def flag(self, key: str) -> bool | None:
        raw = self._values.get(key)
        if is_blank(raw):
            return None
        parsed = parse_bool(raw)
        if parsed is None:
            self._fail(key, "must be true or false")
        return parsed

    def choice(self, key: str, enum_cls: type[E]) -> E | None:
        raw = self._values.get(key)
        if is_blank(raw):
            return None
        parsed = parse_enum(enum_cls, raw)
        if parsed is None:
            allowed = ", ".join(m.value for m in enum_cls)
            self._fail(key, f"must be one of {allowed}")
        return parsed


_Parser = Callable[[_PayloadReader, str], Any]


def _text(reader: _PayloadReader, key: str) -> Any:
    return reader.text(key)


def _decimal(reader: _PayloadReader, key: str) -> Any:
    return reader.decimal(key)


def _int(reader: _PayloadReader, key: str) -> Any:
    return reader.integer(key)


def _date(reader: _PayloadReader, key: str) -> Any:
    return reader.day(key)


def _datetime(reader: _PayloadReader, key: str) -> Any:
    return reader.timestamp(key)


def _bool(reader: _PayloadReader, key: str) -> Any:
    return reader.flag(key)


def _enum(enum_cls: type[Enum]) -> _Parser:
    def parse(reader: _PayloadReader, key: str) -> Any:
        return reader.choice(key, enum_cls)
    return parse


# Fields whose dataclass default applies when the payload leaves them blank.
_DEFAULTED_KINDS = (_bool,)


def _parse_fields(
    payload: Mapping[str, Any],
    parsers: Mapping[str, _Parser],
    *,
    allowed: Iterable[str] | None = None,
) -> tuple[dict[str, Any], list[FieldError]]:
    reader = _PayloadReader(payload)
    names = set(parsers) if allowed is None else set(allowed) & set(parsers)
    parsed: dict[str, Any] = {}
    for name in sorted(names):
        if not reader.has(name):
            continue
        value = parsers[name](reader, name)
        if value is None and (parsers[name] in _DEFAULTED_KINDS or name in _ENUM_FIELDS):
            continue
        parsed[name] = value
    return parsed, reader.errors


_ENUM_FIELDS = frozenset({
    "status", "condition", "customer_type", "preferred_contact_method", "payment_method",
})


def _merge_errors(parse_errors: list[FieldError], violations: list[FieldError]) -> list[FieldError]:
    failed = {e.field for e in parse_errors}
    return parse_errors + [v for v in violations if v.field not in failed]


def _check_non_negative(errors: list[FieldError], name: str, value: Decimal | int | None) -> None:
    if value is not None and value < 0:
        errors.append(FieldError(name, "cannot be negative"))


def _check_percent(errors: list[FieldError], name: str, value: Decimal | None) -> None:
    if value is not None and not ZERO <= value <= MAX_PERCENT:
        errors.append(FieldError(name, "must be between 0 and 100"))


def _require(errors: list[FieldError], name: str, value: Any) -> bool:
    if value is None or (isinstance(value, str) and not value.strip()):
        errors.append(FieldError(name, "is required"))
        return False
    return True


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class _Record:
    """Shared behaviour for the three record dataclasses."""

    _PARSERS: Mapping[str, _Parser] = {}

    def violations(self) -> list[FieldError]:
        raise NotImplementedError

    def validate(self) -> None:
        errors = self.violations()
        if errors:
            raise ValidationError(errors)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]):
        parsed, parse_errors = _parse_fields(payload, cls._PARSERS)
        record = cls(**parsed)
        errors = _merge_errors(parse_errors, record.violations())
        if errors:
            raise ValidationError(errors)
        return record

    def apply_payload(self, payload: Mapping[str, Any], allowed: Iterable[str]) -> list[str]:
        """Overwrite ``allowed`` fields present in ``payload``; revalidate.  Returns changed names."""
        parsed, parse_errors = _parse_fields(payload, self._PARSERS, allowed=allowed)
        if parse_errors:
            raise ValidationError(parse_errors)
        for name, value in parsed.items():
            setattr(self, name, value)
        self.validate()
        return sorted(parsed)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: _jsonable(getattr(self, f.name)) for f in fields(self)}  # type: ignore[arg-type]


# ── Vehicle ─────────────────────────────────────────────────────


@dataclass
class Vehicle(_Record):
    id: str | None = None
    vin: str | None = None
    make: str | None = None
    model: str | None = None
    year: int | None = None
    color: str | None = None
    engine_type: str | None = None
    transmission: str | None = None
    fuel_type: str | None = None
    mileage: int | None = None
    purchase_price: Decimal | None = None
    selling_price: Decimal | None = None
    msrp: Decimal | None = None
    status: VehicleStatus = VehicleStatus.AVAILABLE
    condition: VehicleCondition = VehicleCondition.NEW
    purchase_date: date | None = None
    description: str | None = None
    location: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    _PARSERS = {
        "vin": _text,
        "make": _text,
        "model": _text,
        "year": _int,
        "color": _text,
        "engine_type": _text,
        "transmission": _text,
        "fuel_type": _text,
        "mileage": _int,
        "purchase_price": _decimal,
        "selling_price": _decimal,
        "msrp": _decimal,
        "status": _enum(VehicleStatus),
        "condition": _enum(VehicleCondition),
        "purchase_date": _date,
        "description": _text,
        "location": _text,
    }

    def __post_init__(self) -> None:
        if self.vin is not None:
            self.vin = self.vin.strip().upper()

    def violations(self) -> list[FieldError]:
        errors: list[FieldError] = []
        if _require(errors, "vin", self.vin) and len(self.vin) != VIN_LENGTH:
            errors.append(FieldError("vin", f"must be exactly {VIN_LENGTH} characters"))
        _require(errors, "make", self.make)
        _require(errors, "model", self.model)
        if _require(errors, "year", self.year) and not MIN_MODEL_YEAR <= self.year <= MAX_MODEL_YEAR:
            errors.append(
                FieldError("year", f"must be between {MIN_MODEL_YEAR} and {MAX_MODEL_YEAR}")
            )
        _check_non_negative(errors, "mileage", self.mileage)
        _check_non_negative(errors, "purchase_price", self.purchase_price)
        _check_non_negative(errors, "selling_price", self.selling_price)
        _check_non_negative(errors, "msrp", self.msrp)
        return errors

    @property
    def potential_profit(self) -> Decimal:
        if self.selling_price is None or self.purchase_price is None:
            return money(ZERO)
        return money(self.selling_price - self.purchase_price)

    @property
    def full_name(self) -> str:
        return f"{self.year} {self.make} {self.model}"

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["potential_profit"] = str(self.potential_profit)
        data["full_name"] = self.full_name
        return data


# ── Customer ────────────────────────────────────────────────────


@dataclass
class Customer(_Record):
    id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    date_of_birth: date | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None
    driver_license: str | None = None
    customer_type: CustomerType = CustomerType.INDIVIDUAL
    company_name: str | None = None
    tax_id: str | None = None
    credit_score: int | None = None
    preferred_contact_method: ContactMethod = ContactMethod.EMAIL
    notes: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    _PARSERS = {
        "first_name": _text,
        "last_name": _text,
        "email": _text,
        "phone": _text,
        "date_of_birth": _date,
        "address": _text,
        "city": _text,
        "state": _text,
        "zip_code": _text,
        "country": _text,
        "driver_license": _text,
        "customer_type": _enum(CustomerType),
        "company_name": _text,
        "tax_id": _text,
        "credit_score": _int,
        "preferred_contact_method": _enum(ContactMethod),
        "notes": _text,
        "is_active": _bool,
    }

    def violations(self) -> list[FieldError]:
        errors: list[FieldError] = []
        _require(errors, "first_name", self.first_name)
        _require(errors, "last_name", self.last_name)
        if _require(errors, "email", self.email) and not EMAIL_RE.match(self.email):
            errors.append(FieldError("email", "must be a valid email address"))
        if self.phone is not None and not PHONE_RE.match(self.phone):
            errors.append(FieldError("phone", "must be 10-15 digits, optionally prefixed with +"))
        if self.date_of_birth is not None and self.date_of_birth >= date.today():
            errors.append(FieldError("date_of_birth", "must be in the past"))
        if self.credit_score is not None and not (
            MIN_CREDIT_SCORE <= self.credit_score <= MAX_CREDIT_SCORE
        ):
            errors.append(
                FieldError(
                    "credit_score",
                    f"must be between {MIN_CREDIT_SCORE} and {MAX_CREDIT_SCORE}",
                )
            )
        return errors

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def display_name(self) -> str:
        if self.customer_type is CustomerType.BUSINESS and self.company_name:
            return f"{self.company_name} ({self.full_name})"
        return self.full_name

    @property
    def full_address(self) -> str:
        parts = self.address or ""
        if self.city:
            parts += f", {self.city}"
        if self.state:
            parts += f", {self.state}"
        if self.zip_code:
            parts += f" {self.zip_code}"
        if self.country:
            parts += f", {self.country}"
        return parts

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["full_name"] = self.full_name
        data["display_name"] = self.display_name
        return data


# ── Sale ────────────────────────────────────────────────────────

SALE_MUTABLE_FIELDS = (
    "sale_date",
    "sale_price",
    "down_payment",
    "trade_in_value",
    "financing_amount",
    "interest_rate",
    "loan_term_months",
    "monthly_payment",
    "payment_method",
    "salesperson_name",
    "salesperson_email",
    "commission_rate",
    "warranty_months",
    "extended_warranty",
    "extended_warranty_cost",
    "delivery_date",
    "delivery_address",
    "notes",
)


@dataclass
class Sale(_Record):
    id: str | None = None
    vehicle_id: str | None = None
    customer_id: str | None = None
    sale_date: date | None = None
    sale_price: Decimal | None = None
    down_payment: Decimal | None = None
    trade_in_value: Decimal | None = None
    financing_amount: Decimal | None = None
    interest_rate: Decimal | None = None
    loan_term_months: int | None = None
    monthly_payment: Decimal | None = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    status: SaleStatus = SaleStatus.PENDING
    salesperson_name: str | None = None
    salesperson_email: str | None = None
    commission_rate: Decimal | None = None
    commission_amount: Decimal | None = None
    warranty_months: int | None = None
    extended_warranty: bool = False
    extended_warranty_cost: Decimal | None = None
    delivery_date: date | None = None
    delivery_address: str | None = None
    notes: str | None = None
    contract_signed_at: datetime | None = None
    is_finalized: bool = False
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    _PARSERS = {
        "vehicle_id": _text,
        "customer_id": _text,
        "sale_date": _date,
        "sale_price": _decimal,
        "down_payment": _decimal,
        "trade_in_value": _decimal,
        "financing_amount": _decimal,
        "interest_rate": _decimal,
        "loan_term_months": _int,
        "monthly_payment": _decimal,
        "payment_method": _enum(PaymentMethod),
        "salesperson_name": _text,
        "salesperson_email": _text,
        "commission_rate": _decimal,
        "warranty_months": _int,
        "extended_warranty": _bool,
        "extended_warranty_cost": _decimal,
        "delivery_date": _date,
        "delivery_address": _text,
        "notes": _text,
    }

    def violations(self) -> list[FieldError]:
        errors: list[FieldError] = []
        _require(errors, "vehicle_id", self.vehicle_id)
        _require(errors, "customer_id", self.customer_id)
        # New sales get today's date on creation; stored sales must keep one.
        if self.id is not None:
            _require(errors, "sale_date", self.sale_date)
        if _require(errors, "sale_price", self.sale_price):
            _check_non_negative(errors, "sale_price", self.sale_price)
        for name in (
            "down_payment",
            "trade_in_value",
            "financing_amount",
            "monthly_payment",
            "extended_warranty_cost",
            "commission_amount",
            "warranty_months",
        ):
            _check_non_negative(errors, name, getattr(self, name))
        _check_percent(errors, "interest_rate", self.interest_rate)
        _check_percent(errors, "commission_rate", self.commission_rate)
        if self.loan_term_months is not None and not (
            MIN_LOAN_TERM_MONTHS <= self.loan_term_months <= MAX_LOAN_TERM_MONTHS
        ):
            errors.append(
                FieldError(
                    "loan_term_months",
                    f"must be between {MIN_LOAN_TERM_MONTHS} and {MAX_LOAN_TERM_MONTHS}",
                )
            )
        if self.salesperson_email is not None and not EMAIL_RE.match(self.salesperson_email):
            errors.append(FieldError("salesperson_email", "must be a valid email address"))
        return errors

    def recompute_commission(self) -> Decimal | None:
        """Derive ``commission_amount`` from the current price and rate."""
        if self.commission_rate is None or self.sale_price is None:
            self.commission_amount = None
        else:
            self.commission_amount = money(self.sale_price * self.commission_rate / HUNDRED)
        return self.commission_amount

    def append_note(self, line: str) -> None:
        self.notes = f"{self.notes}\n{line}" if self.notes else line

    @property
    def net_amount(self) -> Decimal:
        """Sale price less trade-in credit plus extended warranty, before down payment."""
        total = (
            (self.sale_price or ZERO)
            - (self.trade_in_value or ZERO)
            + (self.extended_warranty_cost or ZERO)
        )
        return money(total)

    @property
    def remaining_balance(self) -> Decimal:
        return money(max(ZERO, self.net_amount - (self.down_payment or ZERO)))

    @property
    def is_fully_paid(self) -> bool:
        return self.payment_method is PaymentMethod.CASH or self.remaining_balance == ZERO

    def total_profit(self, vehicle_purchase_price: Decimal | None) -> Decimal:
        """Margin over the vehicle's cost plus warranty revenue, net of commission."""
        profit = ZERO
        if self.sale_price is not None and vehicle_purchase_price is not None:
            profit = self.sale_price - vehicle_purchase_price
        profit += self.extended_warranty_cost or ZERO
        profit -= self.commission_amount or ZERO
        return money(profit)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["net_amount"] = str(self.net_amount)
        data["remaining_balance"] = str(self.remaining_balance)
        data["is_fully_paid"] = self.is_fully_paid
        return data
