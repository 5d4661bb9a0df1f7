"""Vendor signup, login, dashboard and API-key routes."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError

from domopay.common.errors import EmailTaken
from domopay.common.logging import logger
from domopay.common.onboarding import resolve_onboarding_step
from domopay.services.ledger.models import Vendor
from domopay.services.payments.schemas import (
    CustomProductLinkRequest,
    PaymentLinkResponse,
    ProductLinkRequest,
    SignupAccountForm,
    SignupProfileForm,
    first_error_message,
    form_fields,
)
from domopay.services.web.auth import (
    authenticate_credentials,
    get_ledger,
    get_orchestrator,
    login,
    logout,
    optional_vendor,
    require_api_vendor,
    require_vendor,
)

router = APIRouter(prefix="/vendors")


@router.get("/signup")
def signup_step(vendor: Vendor | None = Depends(optional_vendor)):
    """Which signup step to show, recomputed from the vendor record."""

    return {"step": resolve_onboarding_step(vendor)}


@router.post("/signup")
async def signup(request: Request, vendor: Vendor | None = Depends(optional_vendor)):
    """Create a vendor account, or update the profile of the logged-in vendor."""

    fields = form_fields(await request.form())
    ledger = get_ledger(request)

    if vendor is None:
        try:
            form = SignupAccountForm.model_validate(fields)
            vendor = ledger.register_vendor(form.to_vendor_fields(), form.password)
        except ValidationError as exc:
            return JSONResponse({"step": "account", "error": first_error_message(exc)}, status_code=400)
        except EmailTaken as exc:
            return JSONResponse({"step": "account", "error": exc.message}, status_code=400)
        login(request, vendor)
        return RedirectResponse("/vendors/signup", status_code=303)

    try:
        form = SignupProfileForm.model_validate(fields)
    except ValidationError as exc:
        return JSONResponse(
            {"step": resolve_onboarding_step(vendor), "error": first_error_message(exc)}, status_code=400
        )
    ledger.update_vendor(vendor.id, form.to_vendor_fields())
    return RedirectResponse("/vendors/stripe/authorize", status_code=303)


@router.get("/login")
def login_page(request: Request):
    return {"error": request.session.pop("login_error", None)}


@router.post("/login")
async def login_submit(request: Request):
    form = await request.form()
    vendor, error = authenticate_credentials(get_ledger(request), form.get("email"), form.get("password"))
    if vendor is None:
        request.session["login_error"] = error
        return RedirectResponse("/vendors/login", status_code=303)
    login(request, vendor)
    logger.info("vendor logged in vendor_id=%s", vendor.id)
    return RedirectResponse("/vendors/dashboard", status_code=303)


@router.get("/logout")
def logout_route(request: Request):
    logout(request)
    return RedirectResponse("/", status_code=302)


@router.get("/dashboard")
def dashboard(
    request: Request,
    vendor: Vendor = Depends(require_vendor),
    paymentLink: str | None = None,
    showBanner: bool = False,
):
    """Balance, recent offerings and products for the logged-in vendor."""

    if not vendor.onboarding_complete:
        return RedirectResponse("/vendors/signup", status_code=302)
    summary = get_orchestrator(request).dashboard(vendor)
    summary["show_banner"] = bool(request.session.pop("show_banner", False)) or showBanner
    summary["payment_link"] = paymentLink
    return summary


@router.post("/offerings")
async def generate_offering(request: Request, vendor: Vendor = Depends(require_vendor)):
    """Generate a test offering for the logged-in vendor and a random customer."""

    form = await request.form()
    behavior = None
    if form.get("immediate_balance"):
        behavior = "immediate_balance"
    elif form.get("payout_limit"):
        behavior = "payout_limit"
    get_orchestrator(request).generate_test_offering(vendor, behavior)
    return RedirectResponse("/vendors/dashboard", status_code=303)


@router.get("/offerings")
def list_products(request: Request, vendor: Vendor = Depends(require_api_vendor)):
    """All provider products of the API caller's connected account."""

    return {"products": get_orchestrator(request).list_products(vendor)}


@router.post(
    "/payment-link/custom-product",
    response_model=PaymentLinkResponse,
)
def custom_product_link(
    req: CustomProductLinkRequest,
    request: Request,
    vendor: Vendor = Depends(require_api_vendor),
):
    url, link_id = get_orchestrator(request).create_custom_product_link(
        vendor,
        title=req.product_title,
        description=req.product_description,
        unit_price=req.unit_price,
        quantity=req.quantity,
    )
    return PaymentLinkResponse(payment_link=url, payment_link_id=link_id)


@router.post("/payment-link/product", response_model=PaymentLinkResponse)
def product_link(
    req: ProductLinkRequest,
    request: Request,
    vendor: Vendor = Depends(require_api_vendor),
):
    url, link_id = get_orchestrator(request).create_product_link(
        vendor,
        product_id=req.product_id,
        unit_price=req.unit_price,
        quantity=req.quantity,
    )
    return PaymentLinkResponse(payment_link=url, payment_link_id=link_id)
