"""Public API used by the companion client.

For this demo the customer is always the latest one and the vendor is the first
onboarded vendor; there is no customer authentication.
"""

from fastapi import APIRouter, Request

from domopay.common.fees import APPLICATION_FEE_AMOUNT
from domopay.services.payments.schemas import ApiOfferingRequest
from domopay.services.web.auth import get_orchestrator

router = APIRouter(prefix="/api")


@router.post("/offerings")
def create_offering(req: ApiOfferingRequest, request: Request):
    """Create and pay an offering with the amount and currency sent by the client."""

    offering, vendor = get_orchestrator(request).create_api_offering(req.amount, req.currency)
    return {
        "offering_id": offering.id,
        "vendor_name": vendor.display_name(),
        "amount": offering.amount,
        "currency": offering.currency,
        "vendor_payout": offering.amount_for_vendor(),
        "application_fee": APPLICATION_FEE_AMOUNT,
        "payment_intent_id": offering.stripe_payment_intent_id,
    }
