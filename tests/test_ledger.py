"""Ledger service persistence behaviour."""

from datetime import datetime, timedelta, timezone

import pytest

from domopay.common.errors import EmailTaken, NotFound
from domopay.services.ledger.models import ROUTING_SEPARATE_TRANSFER, Offering
from domopay.services.ledger.service import DEFAULT_CUSTOMERS


def test_register_vendor_hashes_password_and_issues_api_key(ledger):
    vendor = ledger.register_vendor({"email": "Owner@Example.com", "type": "company"}, "pw")

    stored = ledger.find_vendor_by_email("owner@example.com")
    assert stored.id == vendor.id
    assert stored.password_hash != "pw"
    assert stored.validate_password("pw")
    assert len(stored.api_key) == 40
    assert stored.country == "DE"
    assert stored.onboarding_complete is False


def test_duplicate_email_is_rejected(ledger):
    ledger.register_vendor({"email": "dup@example.com"}, "pw")
    with pytest.raises(EmailTaken):
        ledger.register_vendor({"email": "DUP@example.com"}, "other")


def test_api_keys_are_unique_and_resolve_to_their_vendor(ledger, make_vendor):
    first = make_vendor()
    second = make_vendor()
    assert first.api_key != second.api_key
    assert ledger.find_vendor_by_api_key(second.api_key).id == second.id
    assert ledger.find_vendor_by_api_key("not-a-key") is None


def test_update_vendor_applies_type_before_names(ledger, make_vendor):
    vendor = make_vendor(type="company", business_name="Acme")
    updated = ledger.update_vendor(
        vendor.id, {"first_name": "Ada", "last_name": "Lovelace", "type": "individual"}
    )
    assert updated.type == "individual"
    assert updated.first_name == "Ada"
    assert updated.business_name is None


def test_update_vendor_drops_leftover_fields_of_the_other_type(ledger, make_vendor):
    """Names submitted alongside a type change cannot outlive it."""

    vendor = make_vendor(type="company", business_name="Acme")
    updated = ledger.update_vendor(
        vendor.id,
        {"type": "individual", "first_name": "Ada", "last_name": "Lovelace", "business_name": "Acme GmbH"},
    )
    assert updated.business_name is None
    assert ledger.get_vendor(vendor.id).business_name is None

    updated = ledger.update_vendor(
        vendor.id, {"type": "company", "business_name": "Acme", "first_name": "Ada", "last_name": "Lovelace"}
    )
    assert updated.business_name == "Acme"
    assert updated.first_name is None
    assert updated.last_name is None


def test_update_vendor_rehashes_password_and_checks_email(ledger, make_vendor):
    taken = make_vendor()
    vendor = make_vendor(password="old")
    updated = ledger.update_vendor(vendor.id, {"password": "new"})
    assert updated.validate_password("new")
    assert not updated.validate_password("old")
    with pytest.raises(EmailTaken):
        ledger.update_vendor(vendor.id, {"email": taken.email})


def test_update_unknown_vendor(ledger):
    with pytest.raises(NotFound):
        ledger.update_vendor("missing", {"city": "Berlin"})


def test_first_and_latest_onboarded_vendor(ledger, make_vendor):
    assert ledger.first_onboarded_vendor() is None
    make_vendor()
    first = make_vendor(onboarded=True)
    latest = make_vendor(onboarded=True)
    assert ledger.first_onboarded_vendor().id == first.id
    assert ledger.latest_onboarded_vendor().id == latest.id


def test_default_customers_are_seeded_once(ledger, provider):
    customer = ledger.latest_customer(provider)
    assert customer is not None
    assert ledger.count_customers() == len(DEFAULT_CUSTOMERS)
    assert len(provider.calls_to("customers.create")) == len(DEFAULT_CUSTOMERS)

    ledger.random_customer(provider)
    assert len(provider.calls_to("customers.create")) == len(DEFAULT_CUSTOMERS)
    assert customer.stripe_customer_id.startswith("cus_")


def test_references_are_never_overwritten(ledger, provider, make_vendor):
    vendor = make_vendor(onboarded=True)
    customer = ledger.latest_customer(provider)
    offering = ledger.create_offering(vendor.id, customer.id, amount=5000, currency="EUR")
    assert offering.currency == "eur"

    ledger.attach_references(offering.id, stripe_charge_id="ch_1")
    with pytest.raises(ValueError):
        ledger.attach_references(offering.id, stripe_charge_id="ch_2")
    assert ledger.get_offering(offering.id).stripe_charge_id == "ch_1"


def test_recent_offerings_are_newest_first_and_limited_to_a_week(ledger, provider, make_vendor, session_factory):
    vendor = make_vendor(onboarded=True)
    other = make_vendor(onboarded=True)
    customer = ledger.latest_customer(provider)
    older = ledger.create_offering(vendor.id, customer.id, amount=1000)
    newer = ledger.create_offering(vendor.id, customer.id, amount=2000)
    stale = ledger.create_offering(vendor.id, customer.id, amount=3000)
    ledger.create_offering(other.id, customer.id, amount=4000)

    now = datetime.now(timezone.utc)
    with session_factory() as db:
        db.get(Offering, older.id).created_at = now - timedelta(days=2)
        db.get(Offering, newer.id).created_at = now - timedelta(days=1)
        db.get(Offering, stale.id).created_at = now - timedelta(days=8)
        db.commit()

    recent = ledger.list_recent_offerings(vendor.id)
    assert [o.id for o in recent] == [newer.id, older.id]
    assert recent[0].customer.email == customer.email


def test_unpaired_charges_only_lists_charged_untransferred_offerings(ledger, provider, make_vendor):
    vendor = make_vendor(onboarded=True, country="FR")
    customer = ledger.latest_customer(provider)

    unpaired = ledger.create_offering(vendor.id, customer.id, amount=1000, routing=ROUTING_SEPARATE_TRANSFER)
    ledger.attach_references(unpaired.id, stripe_charge_id="ch_1")

    paired = ledger.create_offering(vendor.id, customer.id, amount=1000, routing=ROUTING_SEPARATE_TRANSFER)
    ledger.attach_references(paired.id, stripe_charge_id="ch_2", stripe_transfer_id="tr_2")

    ledger.create_offering(vendor.id, customer.id, amount=1000, routing=ROUTING_SEPARATE_TRANSFER)

    assert [o.id for o in ledger.find_unpaired_charges()] == [unpaired.id]
