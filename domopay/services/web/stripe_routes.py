"""Provider onboarding, Express dashboard, payout and payment-link routes."""

import secrets
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from domopay.common.errors import InvalidRequest, ProviderError
from domopay.common.logging import logger
from domopay.services.ledger.models import Vendor
from domopay.services.payments.service import DASHBOARD_PATH
from domopay.services.web.auth import get_orchestrator, require_vendor

router = APIRouter(prefix="/vendors/stripe")


@router.get("/authorize")
def authorize(request: Request, vendor: Vendor = Depends(require_vendor)):
    """Send the vendor to the provider's hosted onboarding flow."""

    request.session["state"] = secrets.token_urlsafe(8)
    try:
        url = get_orchestrator(request).create_onboarding_link(vendor)
    except ProviderError:
        logger.error("failed to create a provider account or onboarding link vendor_id=%s", vendor.id)
        raise
    return RedirectResponse(url, status_code=302)


@router.get("/onboarded")
def onboarded(request: Request, vendor: Vendor = Depends(require_vendor)):
    """Return endpoint of the hosted onboarding flow."""

    target = get_orchestrator(request).finalize_onboarding(vendor)
    if target == DASHBOARD_PATH:
        request.session["show_banner"] = True
    return RedirectResponse(target, status_code=302)


@router.get("/dashboard")
def express_dashboard(request: Request, account: bool = False, vendor: Vendor = Depends(require_vendor)):
    if not vendor.onboarding_complete:
        return RedirectResponse("/vendors/signup", status_code=302)
    try:
        url = get_orchestrator(request).express_dashboard_link(vendor, account_tab=account)
    except ProviderError:
        logger.error("failed to create a provider login link vendor_id=%s", vendor.id)
        return RedirectResponse("/vendors/signup", status_code=302)
    return RedirectResponse(url, status_code=302)


@router.post("/payout")
def payout(request: Request, vendor: Vendor = Depends(require_vendor)):
    get_orchestrator(request).payout(vendor)
    return RedirectResponse(DASHBOARD_PATH, status_code=303)


@router.post("/payment-link")
async def payment_link(request: Request, vendor: Vendor = Depends(require_vendor)):
    """Create a payment link for a price and show it on the dashboard."""

    form = await request.form()
    try:
        url, _ = get_orchestrator(request).create_payment_link(
            vendor, form.get("priceId"), form.get("quantity")
        )
    except (ProviderError, InvalidRequest) as exc:
        logger.error("error creating payment link vendor_id=%s error=%s", vendor.id, exc)
        return RedirectResponse(DASHBOARD_PATH, status_code=303)
    return RedirectResponse(f"{DASHBOARD_PATH}?paymentLink={quote(url, safe='')}", status_code=303)
