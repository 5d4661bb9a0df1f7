"""Ledger database models: vendors, customers, and their offerings.

The database is the source of truth for vendor onboarding state and for the
provider references attached to each offering.
"""

import random
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from domopay.common.db import Base
from domopay.common.fees import vendor_payout
from domopay.common.security import DEFAULT_HASH_ROUNDS, check_password, hash_password

VENDOR_TYPES = ("individual", "company")
ROUTING_DESTINATION_CHARGE = "destination_charge"
ROUTING_SEPARATE_TRANSFER = "separate_transfer"
ROUTING_PAYMENT_INTENT = "payment_intent"

DEFAULT_ORIGIN = [37.7765030, -122.3920385]
DEFAULT_DESTINATION = [37.8199286, -122.4782551]

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _random_dropoff() -> datetime:
    return _utcnow() + timedelta(minutes=random.randint(0, 9))


class Vendor(Base):
    """A service vendor and its onboarding state."""

    __tablename__ = "vendors"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column("password", String)
    type: Mapped[str] = mapped_column(String, default="company")
    first_name: Mapped[str | None] = mapped_column(String, nullable=True)
    last_name: Mapped[str | None] = mapped_column(String, nullable=True)
    business_name: Mapped[str | None] = mapped_column(String, nullable=True)
    address: Mapped[str | None] = mapped_column(String, nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String, nullable=True)
    city: Mapped[str | None] = mapped_column(String, nullable=True)
    state: Mapped[str | None] = mapped_column(String, nullable=True)
    country: Mapped[str] = mapped_column(String(2), default="DE")
    certification_rate: Mapped[int | None] = mapped_column(Integer, nullable=True)
    key_rate: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hour_rate: Mapped[int | None] = mapped_column(Integer, nullable=True)
    stripe_account_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    onboarding_complete: Mapped[bool] = mapped_column(Boolean, default=False)
    api_key: Mapped[str] = mapped_column(String, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    offerings: Mapped[list["Offering"]] = relationship(back_populates="vendor")

    @validates("email")
    def _normalize_email(self, _key, value):
        return value.strip().lower() if value is not None else value

    @validates("type")
    def _check_type(self, _key, value):
        if value not in VENDOR_TYPES:
            raise ValueError(f"unknown vendor type: {value!r}")
        self.clear_other_type_fields(value)
        return value

    def clear_other_type_fields(self, vendor_type: str | None = None) -> None:
        """Drop the name fields that do not belong to `vendor_type` (default: the current type)."""

        # Name fields are mutually exclusive by vendor type.
        if (vendor_type or self.type) == "individual":
            self.business_name = None
        else:
            self.first_name = None
            self.last_name = None

    @validates("api_key")
    def _freeze_api_key(self, _key, value):
        current = self.__dict__.get("api_key")
        if current is not None and value != current:
            raise ValueError("api key cannot be changed once set")
        return value

    @property
    def password(self):
        raise AttributeError("plaintext password is not stored")

    @password.setter
    def password(self, plaintext: str) -> None:
        self.set_password(plaintext)

    def set_password(self, plaintext: str, rounds: int = DEFAULT_HASH_ROUNDS) -> None:
        self.password_hash = hash_password(plaintext, rounds=rounds)

    def validate_password(self, plaintext: str) -> bool:
        return check_password(plaintext, self.password_hash)

    def display_name(self) -> str:
        if self.type == "company":
            return self.business_name or ""
        return f"{self.first_name} {self.last_name}"


class Customer(Base):
    """A paying customer holding a provider-side customer record."""

    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    first_name: Mapped[str | None] = mapped_column(String, nullable=True)
    last_name: Mapped[str | None] = mapped_column(String, nullable=True)
    stripe_customer_id: Mapped[str] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    def display_name(self) -> str:
        last_initial = (self.last_name or "")[:1]
        return f"{self.first_name} {last_initial}."


class Offering(Base):
    """One payment between a vendor and a customer."""

    __tablename__ = "offerings"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_offerings_amount_positive"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    vendor_id: Mapped[str] = mapped_column(ForeignKey("vendors.id"), index=True)
    customer_id: Mapped[str] = mapped_column(ForeignKey("customers.id"), index=True)
    origin: Mapped[list] = mapped_column(JSONType, default=lambda: list(DEFAULT_ORIGIN))
    destination: Mapped[list] = mapped_column(JSONType, default=lambda: list(DEFAULT_DESTINATION))
    amount: Mapped[int] = mapped_column(Integer)
    currency: Mapped[str] = mapped_column(String(3), default="eur")
    pickup_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    dropoff_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_random_dropoff)
    routing: Mapped[str | None] = mapped_column(String, nullable=True)
    stripe_charge_id: Mapped[str | None] = mapped_column(String, nullable=True)
    stripe_transfer_id: Mapped[str | None] = mapped_column(String, nullable=True)
    stripe_payment_intent_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), index=True
    )

    vendor: Mapped[Vendor] = relationship(back_populates="offerings")
    customer: Mapped[Customer] = relationship()

    @validates("amount")
    def _check_amount(self, _key, value):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValueError("offering amount must be a positive integer")
        return value

    def amount_for_vendor(self) -> int:
        """Offering amount left for the vendor after the platform fee."""

        return vendor_payout(self.amount)

    @property
    def payment_reference(self) -> str | None:
        return self.stripe_charge_id or self.stripe_payment_intent_id

    @property
    def is_paid(self) -> bool:
        if self.routing == ROUTING_SEPARATE_TRANSFER:
            return self.stripe_charge_id is not None and self.stripe_transfer_id is not None
        return self.payment_reference is not None
