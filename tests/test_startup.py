"""Startup config logging redaction."""

from domopay.common.startup import _safe_env


def test_database_url_credentials_are_redacted(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg://domopay:hunter2@db:5432/domopay")
    assert _safe_env("DATABASE_URL") == "postgresql+psycopg://<redacted>@db:5432/domopay"


def test_secret_like_names_are_redacted(monkeypatch):
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_live_123")
    monkeypatch.setenv("PUBLIC_DOMAIN", "https://pay.example.com")
    monkeypatch.delenv("SESSION_SECRET", raising=False)

    assert _safe_env("STRIPE_SECRET_KEY") == "<redacted>"
    assert _safe_env("PUBLIC_DOMAIN") == "https://pay.example.com"
    assert _safe_env("SESSION_SECRET") == "<unset>"
