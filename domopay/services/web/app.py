"""FastAPI application factory.

Collaborators (session factory, payments provider) are built once by the
process entrypoint and injected here; handlers reach the services through
`app.state`.
"""

from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from domopay.common.config import Settings
from domopay.common.errors import InvalidRequest, LoginRequired, NotFound, PaymentRejected, ProviderError
from domopay.common.logging import logger, request_id_ctx, vendor_id_ctx
from domopay.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from domopay.services.ledger.service import LedgerService
from domopay.services.payments.service import PaymentOrchestrator
from domopay.services.provider.client import PaymentsProvider
from domopay.services.web import api, stripe_routes, vendors


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid request"
    error = errors[0]
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    return f"{location}: {error['msg']}" if location else error["msg"]


def register_exception_handlers(app: FastAPI) -> None:
    """Map service errors to HTTP responses."""

    @app.exception_handler(LoginRequired)
    async def login_required(_: Request, __: LoginRequired):
        return RedirectResponse("/vendors/login", status_code=303)

    @app.exception_handler(InvalidRequest)
    async def invalid_request(_: Request, exc: InvalidRequest):
        return JSONResponse({"error": exc.message, "field": exc.field}, status_code=400)

    @app.exception_handler(RequestValidationError)
    async def request_validation(_: Request, exc: RequestValidationError):
        return JSONResponse({"error": _validation_message(exc)}, status_code=400)

    @app.exception_handler(NotFound)
    async def not_found(_: Request, exc: NotFound):
        return JSONResponse({"error": str(exc)}, status_code=404)

    @app.exception_handler(PaymentRejected)
    async def payment_rejected(_: Request, exc: PaymentRejected):
        logger.warning("payment rejected offering_id=%s reason=%s", exc.offering_id, exc.reason)
        return JSONResponse(
            {"error": "Payment Required", "offering_id": exc.offering_id}, status_code=402
        )

    @app.exception_handler(ProviderError)
    async def provider_error(_: Request, exc: ProviderError):
        logger.error("provider error operation=%s error=%s", exc.operation, exc.message)
        return JSONResponse({"error": "Internal Server Error"}, status_code=500)

    @app.exception_handler(SQLAlchemyError)
    async def persistence_error(_: Request, exc: SQLAlchemyError):
        logger.error("persistence error: %s", exc)
        return JSONResponse({"error": "Internal Server Error"}, status_code=500)


def create_app(
    settings: Settings,
    session_factory,
    provider: PaymentsProvider,
    lifespan=None,
) -> FastAPI:
    """Build the web app around injected persistence and provider clients."""

    app = FastAPI(title="domopay", lifespan=lifespan)
    ledger = LedgerService(session_factory, password_hash_rounds=settings.password_hash_rounds)
    app.state.settings = settings
    app.state.ledger = ledger
    app.state.orchestrator = PaymentOrchestrator(
        ledger, provider, public_domain=settings.public_domain, app_name=settings.app_name
    )

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Record request count and latency for every HTTP call."""

        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        request_token = request_id_ctx.set(request.headers.get("x-request-id") or str(uuid4()))
        vendor_token = vendor_id_ctx.set("")
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()
            request_id_ctx.reset(request_token)
            vendor_id_ctx.reset(vendor_token)

    # Added last so it wraps the metrics middleware and sessions are available everywhere.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        max_age=settings.session_max_age_seconds,
        same_site="lax",
    )
    register_exception_handlers(app)

    app.include_router(vendors.router)
    app.include_router(stripe_routes.router)
    app.include_router(api.router)

    @app.get("/")
    def index():
        return {"app": settings.app_name}

    @app.get("/health")
    def health():
        """Health probe endpoint."""

        return PlainTextResponse("ok")

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    return app
