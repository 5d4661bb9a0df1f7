"""Process entrypoint: builds shared clients once and exposes the ASGI app.

Run with `uvicorn domopay.services.web.main:app`.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from domopay.common.config import get_settings
from domopay.common.db import Base, build_engine, build_session_factory, wait_for_database
from domopay.common.logging import configure_logging, logger
from domopay.common.startup import log_startup_config
from domopay.common.tracing import instrument_app, setup_tracing
from domopay.services.ledger import models  # noqa: F401  (registers tables on Base.metadata)
from domopay.services.provider.client import StripeProvider
from domopay.services.web.app import create_app

settings = get_settings()
configure_logging(settings.service_name, settings.log_level)
setup_tracing(settings.service_name, settings.otel_exporter_otlp_endpoint)
log_startup_config(
    settings.service_name,
    ["SERVICE_NAME", "PUBLIC_DOMAIN", "DATABASE_URL", "STRIPE_SECRET_KEY", "STRIPE_API_VERSION", "SESSION_SECRET"],
)
engine = build_engine(settings.database_url)
SessionLocal = build_session_factory(engine)
provider = StripeProvider(settings.stripe_secret_key, settings.stripe_api_version)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Wait for the database before serving; dispose the pool on shutdown."""

    wait_for_database(
        engine,
        attempts=settings.database_connect_attempts,
        backoff_seconds=settings.database_connect_backoff_seconds,
    )
    if settings.create_schema:
        Base.metadata.create_all(engine)
    logger.info("domopay server started public_domain=%s", settings.public_domain)
    yield
    engine.dispose()


app = create_app(settings, SessionLocal, provider, lifespan=lifespan)
instrument_app(app)
