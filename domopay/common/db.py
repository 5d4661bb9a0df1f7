"""Database bootstrap helpers.

The engine and session factory are built once by the process entrypoint and
handed to every service that needs persistence.
"""

import time

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from domopay.common.logging import logger


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""

    pass


def build_engine(database_url: str) -> Engine:
    """Create the single SQLAlchemy engine for this process."""

    if database_url.startswith("sqlite") and ":memory:" in database_url:
        # In-memory SQLite needs one shared connection across threads.
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    # `expire_on_commit=False` keeps ORM objects readable after commit in handlers.
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def wait_for_database(engine: Engine, attempts: int = 10, backoff_seconds: float = 5.0) -> None:
    """Block until the database accepts connections or attempts run out."""

    for attempt in range(1, attempts + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return
        except OperationalError as exc:
            if attempt == attempts:
                raise
            logger.warning(
                "database connection failed attempt=%s backoff_s=%s error=%s",
                attempt,
                backoff_seconds,
                exc,
            )
            time.sleep(backoff_seconds)
