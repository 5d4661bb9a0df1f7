"""Vendor onboarding steps derived from vendor record fields.

The current step is never stored; it is recomputed from the vendor on every
request.
"""

ONBOARDING_STEPS: tuple[str, ...] = ("account", "profile", "payments", "done")


def is_profile_complete(vendor) -> bool:
    """Check the name fields required by the vendor's type."""

    if vendor.type == "individual":
        return bool(vendor.first_name) and bool(vendor.last_name)
    return bool(vendor.business_name)


def resolve_onboarding_step(vendor) -> str:
    """Return which signup step the vendor (or anonymous caller) is on."""

    if vendor is None:
        return "account"
    if not is_profile_complete(vendor):
        return "profile"
    if not vendor.onboarding_complete:
        return "payments"
    return "done"
