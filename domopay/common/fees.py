"""Platform fee / vendor payout split for offering amounts.

Amounts are integers in minor currency units. Two fee models coexist: the
percentage platform fee that determines the vendor payout, and a fixed
application fee charged on payment-intent offerings. They are reported as
separate line items and never merged.
"""

from dataclasses import dataclass

PLATFORM_FEE_PERCENT = 20
APPLICATION_FEE_AMOUNT = 300


@dataclass(frozen=True)
class FeeSplit:
    amount: int
    vendor_payout: int
    platform_fee: int
    application_fee: int = APPLICATION_FEE_AMOUNT


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValueError(f"amount must be a positive integer in minor units, got {amount!r}")


def vendor_payout(amount: int, fee_percent: int = PLATFORM_FEE_PERCENT) -> int:
    """Vendor share after the percentage platform fee, truncated toward zero."""

    _check_amount(amount)
    return amount * (100 - fee_percent) // 100


def platform_fee(amount: int, fee_percent: int = PLATFORM_FEE_PERCENT) -> int:
    return amount - vendor_payout(amount, fee_percent)


def split(amount: int, fee_percent: int = PLATFORM_FEE_PERCENT) -> FeeSplit:
    payout = vendor_payout(amount, fee_percent)
    return FeeSplit(amount=amount, vendor_payout=payout, platform_fee=amount - payout)
