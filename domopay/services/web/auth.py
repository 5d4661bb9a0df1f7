"""Vendor authentication guards.

Two independent mechanisms: a signed session cookie holding the vendor id for
the dashboard and signup wizard, and a static per-vendor API key presented as
`Authorization: Api-Key <key>` by programmatic clients.
"""

from fastapi import Depends, Header, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from domopay.common.errors import LoginRequired
from domopay.common.logging import vendor_id_ctx
from domopay.services.ledger.models import Vendor
from domopay.services.ledger.service import LedgerService
from domopay.services.payments.service import PaymentOrchestrator

API_KEY_PREFIX = "Api-Key "
SESSION_VENDOR_KEY = "vendor_id"


def get_ledger(request: Request) -> LedgerService:
    return request.app.state.ledger


def get_orchestrator(request: Request) -> PaymentOrchestrator:
    return request.app.state.orchestrator


def authenticate_credentials(ledger: LedgerService, email: str, password: str) -> tuple[Vendor | None, str | None]:
    """Check email + password; returns the vendor or a failure message."""

    vendor = ledger.find_vendor_by_email(email or "")
    if vendor is None:
        return None, "Unknown user"
    if not vendor.validate_password(password or ""):
        return None, "Wrong password"
    return vendor, None


def login(request: Request, vendor: Vendor) -> None:
    request.session[SESSION_VENDOR_KEY] = vendor.id


def logout(request: Request) -> None:
    request.session.clear()


async def optional_vendor(request: Request) -> Vendor | None:
    """Vendor stored in the session, if any.

    Sets `vendor_id_ctx` for the endpoint and its log records.
    """

    vendor_id = request.session.get(SESSION_VENDOR_KEY)
    if not vendor_id:
        return None
    vendor = await run_in_threadpool(get_ledger(request).get_vendor, vendor_id)
    if vendor is None:
        request.session.pop(SESSION_VENDOR_KEY, None)
        return None
    vendor_id_ctx.set(vendor.id)
    return vendor


def require_vendor(vendor: Vendor | None = Depends(optional_vendor)) -> Vendor:
    if vendor is None:
        raise LoginRequired()
    return vendor


def parse_api_key(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith(API_KEY_PREFIX):
        return None
    return authorization[len(API_KEY_PREFIX):].strip() or None


async def require_api_vendor(request: Request, authorization: str | None = Header(default=None)) -> Vendor:
    """Resolve the API key header to a vendor without touching the session.

    Malformed and unknown keys are rejected identically.
    """

    api_key = parse_api_key(authorization)
    vendor = await run_in_threadpool(get_ledger(request).find_vendor_by_api_key, api_key) if api_key else None
    if vendor is None:
        raise HTTPException(status_code=401, detail="unauthenticated")
    vendor_id_ctx.set(vendor.id)
    return vendor
