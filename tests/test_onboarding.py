"""Unit tests for onboarding step resolution."""

from types import SimpleNamespace

from domopay.common.onboarding import ONBOARDING_STEPS, is_profile_complete, resolve_onboarding_step
from domopay.services.ledger.models import Vendor


def _vendor(**fields):
    defaults = {
        "type": "company",
        "first_name": None,
        "last_name": None,
        "business_name": None,
        "onboarding_complete": False,
    }
    defaults.update(fields)
    return SimpleNamespace(**defaults)


def test_anonymous_caller_is_on_account_step():
    assert resolve_onboarding_step(None) == "account"


def test_company_without_business_name_is_on_profile_step():
    assert resolve_onboarding_step(_vendor(type="company")) == "profile"


def test_individual_needs_both_names():
    assert resolve_onboarding_step(_vendor(type="individual", first_name="Ada")) == "profile"
    assert resolve_onboarding_step(_vendor(type="individual", last_name="Lovelace")) == "profile"
    assert (
        resolve_onboarding_step(_vendor(type="individual", first_name="Ada", last_name="Lovelace"))
        == "payments"
    )


def test_done_only_when_profile_complete_and_onboarded():
    assert resolve_onboarding_step(_vendor(business_name="Acme", onboarding_complete=True)) == "done"
    assert resolve_onboarding_step(_vendor(business_name="Acme", onboarding_complete=False)) == "payments"
    assert resolve_onboarding_step(_vendor(onboarding_complete=True)) == "profile"


def test_every_combination_resolves_to_a_known_step():
    for vendor_type in ("individual", "company"):
        for first in (None, "Ada"):
            for business in (None, "Acme"):
                for complete in (False, True, None):
                    vendor = _vendor(
                        type=vendor_type,
                        first_name=first,
                        last_name=first,
                        business_name=business,
                        onboarding_complete=complete,
                    )
                    step = resolve_onboarding_step(vendor)
                    assert step in ONBOARDING_STEPS
                    assert (step == "done") == (is_profile_complete(vendor) and complete is True)


def test_type_change_is_reevaluated_against_new_fields():
    vendor = Vendor(email="a@example.com", type="company", business_name="Acme", onboarding_complete=True)
    assert resolve_onboarding_step(vendor) == "done"
    vendor.type = "individual"
    assert vendor.business_name is None
    assert resolve_onboarding_step(vendor) == "profile"
    vendor.first_name = "Ada"
    vendor.last_name = "Lovelace"
    assert resolve_onboarding_step(vendor) == "done"
