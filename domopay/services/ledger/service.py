"""Persistence access for vendors, customers, and offerings.

Every method opens its own short session from the injected factory and returns
detached ORM objects (the factory keeps them readable after commit).
"""

import random
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from domopay.common.errors import EmailTaken, NotFound
from domopay.common.logging import logger
from domopay.common.security import DEFAULT_HASH_ROUNDS, generate_api_key
from domopay.services.ledger.models import ROUTING_SEPARATE_TRANSFER, Customer, Offering, Vendor

DEFAULT_CUSTOMERS = [
    {"first_name": "Jenny", "last_name": "Rosen", "email": "jenny.rosen@example.com"},
    {"first_name": "Kathleen", "last_name": "Banks", "email": "kathleen.banks@example.com"},
    {"first_name": "Victoria", "last_name": "Thompson", "email": "victoria.thompson@example.com"},
    {"first_name": "Ruth", "last_name": "Hamilton", "email": "ruth.hamilton@example.com"},
    {"first_name": "Emma", "last_name": "Lane", "email": "emma.lane@example.com"},
]

RECENT_OFFERINGS_DAYS = 7


class LedgerService:
    """Owns reads and writes of ledger entities."""

    def __init__(self, session_factory, password_hash_rounds: int = DEFAULT_HASH_ROUNDS) -> None:
        self.session_factory = session_factory
        self.password_hash_rounds = password_hash_rounds

    # Vendors

    def get_vendor(self, vendor_id: str) -> Vendor | None:
        with self.session_factory() as db:
            return db.get(Vendor, vendor_id)

    def find_vendor_by_email(self, email: str) -> Vendor | None:
        with self.session_factory() as db:
            return db.execute(
                select(Vendor).where(Vendor.email == email.strip().lower())
            ).scalar_one_or_none()

    def find_vendor_by_api_key(self, api_key: str) -> Vendor | None:
        """Resolve an API key to its vendor; unknown keys yield `None`."""

        with self.session_factory() as db:
            return db.execute(select(Vendor).where(Vendor.api_key == api_key)).scalar_one_or_none()

    def email_taken(self, email: str) -> bool:
        return self.find_vendor_by_email(email) is not None

    def register_vendor(self, fields: dict, password: str) -> Vendor:
        """Insert a new vendor after checking email uniqueness up front."""

        email = fields["email"]
        if self.email_taken(email):
            raise EmailTaken(email)
        vendor = Vendor(api_key=generate_api_key(), **fields)
        vendor.set_password(password, rounds=self.password_hash_rounds)
        with self.session_factory() as db:
            db.add(vendor)
            db.commit()
        logger.info("vendor registered vendor_id=%s type=%s", vendor.id, vendor.type)
        return vendor

    def update_vendor(self, vendor_id: str, fields: dict) -> Vendor:
        """Apply an explicit field mapping to a stored vendor.

        `type` is applied first so the name fields that follow are not cleared by
        the type change; name fields of the other type are dropped afterwards.
        """

        with self.session_factory() as db:
            vendor = db.get(Vendor, vendor_id)
            if vendor is None:
                raise NotFound(f"vendor {vendor_id} not found")
            remaining = dict(fields)
            if "type" in remaining:
                vendor.type = remaining.pop("type")
            if "email" in remaining:
                email = remaining.pop("email").strip().lower()
                if email != vendor.email:
                    if self.email_taken(email):
                        raise EmailTaken(email)
                    vendor.email = email
            if "password" in remaining:
                vendor.set_password(remaining.pop("password"), rounds=self.password_hash_rounds)
            for key, value in remaining.items():
                setattr(vendor, key, value)
            vendor.clear_other_type_fields()
            db.commit()
            return vendor

    def set_stripe_account(self, vendor_id: str, account_id: str) -> Vendor:
        with self.session_factory() as db:
            vendor = db.get(Vendor, vendor_id)
            if vendor is None:
                raise NotFound(f"vendor {vendor_id} not found")
            vendor.stripe_account_id = account_id
            db.commit()
            return vendor

    def mark_onboarding_complete(self, vendor_id: str) -> Vendor:
        with self.session_factory() as db:
            vendor = db.get(Vendor, vendor_id)
            if vendor is None:
                raise NotFound(f"vendor {vendor_id} not found")
            vendor.onboarding_complete = True
            db.commit()
            return vendor

    def first_onboarded_vendor(self) -> Vendor | None:
        with self.session_factory() as db:
            return db.execute(
                select(Vendor)
                .where(Vendor.stripe_account_id.is_not(None))
                .order_by(Vendor.created_at.asc())
                .limit(1)
            ).scalar_one_or_none()

    def latest_onboarded_vendor(self) -> Vendor | None:
        with self.session_factory() as db:
            return db.execute(
                select(Vendor)
                .where(Vendor.stripe_account_id.is_not(None))
                .order_by(Vendor.created_at.desc())
                .limit(1)
            ).scalar_one_or_none()

    # Customers

    def count_customers(self) -> int:
        with self.session_factory() as db:
            return db.execute(select(func.count()).select_from(Customer)).scalar_one()

    def insert_default_customers(self, provider) -> list[Customer]:
        """Seed demo customers, each backed by a provider customer record."""

        created = []
        with self.session_factory() as db:
            for data in DEFAULT_CUSTOMERS:
                customer = Customer(**data)
                external = provider.create_customer(
                    email=customer.email, description=customer.display_name()
                )
                customer.stripe_customer_id = external["id"]
                db.add(customer)
                created.append(customer)
            db.commit()
        logger.info("default customers inserted count=%s", len(created))
        return created

    def _ensure_customers(self, provider) -> int:
        count = self.count_customers()
        if count == 0:
            count = len(self.insert_default_customers(provider))
        return count

    def latest_customer(self, provider) -> Customer | None:
        self._ensure_customers(provider)
        with self.session_factory() as db:
            return db.execute(
                select(Customer).order_by(Customer.created_at.desc()).limit(1)
            ).scalar_one_or_none()

    def random_customer(self, provider) -> Customer | None:
        count = self._ensure_customers(provider)
        with self.session_factory() as db:
            return db.execute(
                select(Customer).order_by(Customer.id).offset(random.randrange(count)).limit(1)
            ).scalar_one_or_none()

    # Offerings

    def create_offering(
        self,
        vendor_id: str,
        customer_id: str,
        amount: int,
        currency: str = "eur",
        routing: str | None = None,
    ) -> Offering:
        """Persist an offering before any provider call is made for it."""

        with self.session_factory() as db:
            offering = Offering(
                vendor_id=vendor_id,
                customer_id=customer_id,
                amount=amount,
                currency=currency.lower(),
                routing=routing,
            )
            db.add(offering)
            db.commit()
            return offering

    def attach_references(self, offering_id: str, **references) -> Offering:
        """Record provider references on an offering.

        A reference that is already set is never overwritten.
        """

        with self.session_factory() as db:
            offering = db.get(Offering, offering_id)
            if offering is None:
                raise NotFound(f"offering {offering_id} not found")
            for key, value in references.items():
                if getattr(offering, key) is not None:
                    raise ValueError(f"offering {offering_id} already has {key}")
                setattr(offering, key, value)
            db.commit()
            return offering

    def get_offering(self, offering_id: str) -> Offering | None:
        with self.session_factory() as db:
            return db.get(Offering, offering_id)

    def list_recent_offerings(self, vendor_id: str, days: int = RECENT_OFFERINGS_DAYS) -> list[Offering]:
        """Offerings of the past `days` for one vendor, newest first."""

        since = datetime.now(timezone.utc) - timedelta(days=days)
        with self.session_factory() as db:
            return list(
                db.execute(
                    select(Offering)
                    .options(selectinload(Offering.customer))
                    .where(Offering.vendor_id == vendor_id, Offering.created_at >= since)
                    .order_by(Offering.created_at.desc())
                ).scalars()
            )

    def find_unpaired_charges(self, limit: int = 1000) -> list[Offering]:
        """Separate-transfer offerings whose charge went through but whose transfer did not."""

        with self.session_factory() as db:
            return list(
                db.execute(
                    select(Offering)
                    .where(
                        Offering.routing == ROUTING_SEPARATE_TRANSFER,
                        Offering.stripe_charge_id.is_not(None),
                        Offering.stripe_transfer_id.is_(None),
                    )
                    .order_by(Offering.created_at)
                    .limit(limit)
                ).scalars()
            )
