"""Shared fixtures: in-memory database, recording provider, and app client."""

import pytest
from fastapi.testclient import TestClient

from domopay.common.config import Settings
from domopay.common.db import Base, build_engine, build_session_factory
from domopay.common.errors import ProviderError
from domopay.services.ledger import models  # noqa: F401
from domopay.services.ledger.service import LedgerService
from domopay.services.payments.service import PaymentOrchestrator
from domopay.services.web.app import create_app


class FakeProvider:
    """Records every provider call and answers with canned objects."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.fail_on: set[str] = set()
        self.details_submitted = True
        self.products: list[dict] = []
        self.prices: dict[str, list[dict]] = {}
        self.payment_methods: list[dict] = [{"id": "pm_card_visa"}]
        self.balance = {
            "available": [{"amount": 12000, "currency": "eur"}],
            "pending": [{"amount": 3000, "currency": "eur"}],
        }
        self._counter = 0

    def _record(self, operation: str, **kwargs) -> str:
        self.calls.append((operation, kwargs))
        if operation in self.fail_on:
            raise ProviderError(operation, "declined")
        self._counter += 1
        return str(self._counter)

    def calls_to(self, operation: str) -> list[dict]:
        return [kwargs for op, kwargs in self.calls if op == operation]

    def create_account(self, params):
        return {"id": "acct_" + self._record("accounts.create", params=params)}

    def create_account_link(self, account_id, refresh_url, return_url):
        n = self._record(
            "account_links.create", account=account_id, refresh_url=refresh_url, return_url=return_url
        )
        return {"url": f"https://connect.example.com/setup/{account_id}/{n}"}

    def retrieve_account(self, account_id):
        self._record("accounts.retrieve", account=account_id)
        return {"id": account_id, "details_submitted": self.details_submitted}

    def create_login_link(self, account_id):
        self._record("accounts.create_login_link", account=account_id)
        return {"url": f"https://connect.example.com/express/{account_id}"}

    def retrieve_balance(self, account_id):
        self._record("balance.retrieve", account=account_id)
        return self.balance

    def create_charge(self, params):
        return {"id": "ch_" + self._record("charges.create", params=params)}

    def create_transfer(self, params):
        return {"id": "tr_" + self._record("transfers.create", params=params)}

    def create_payment_intent(self, params):
        return {"id": "pi_" + self._record("payment_intents.create", params=params)}

    def list_payment_methods(self, customer_id, type="card"):
        self._record("payment_methods.list", customer=customer_id, type=type)
        return self.payment_methods

    def create_customer(self, email, description):
        return {"id": "cus_" + self._record("customers.create", email=email, description=description)}

    def list_products(self, account_id):
        self._record("products.list", account=account_id)
        return self.products

    def retrieve_product(self, product_id, account_id):
        self._record("products.retrieve", product=product_id, account=account_id)
        for product in self.products:
            if product["id"] == product_id:
                return product
        raise ProviderError("products.retrieve", "No such product")

    def create_product(self, params, account_id):
        return {"id": "prod_" + self._record("products.create", params=params, account=account_id)}

    def list_prices(self, product_id, account_id):
        self._record("prices.list", product=product_id, account=account_id)
        return self.prices.get(product_id, [])

    def retrieve_price(self, price_id, account_id):
        self._record("prices.retrieve", price=price_id, account=account_id)
        return {"id": price_id, "unit_amount": 2000}

    def create_price(self, params, account_id):
        return {"id": "price_" + self._record("prices.create", params=params, account=account_id)}

    def create_payment_link(self, params, account_id):
        n = self._record("payment_links.create", params=params, account=account_id)
        return {"id": f"plink_{n}", "url": f"https://buy.example.com/{n}"}

    def create_payout(self, params, account_id):
        return {"id": "po_" + self._record("payouts.create", params=params, account=account_id)}


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite:///:memory:",
        session_secret="test-secret",
        password_hash_rounds=4,
        public_domain="http://testserver",
        stripe_secret_key="sk_test",
    )


@pytest.fixture
def session_factory(settings):
    engine = build_engine(settings.database_url)
    Base.metadata.create_all(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def ledger(session_factory) -> LedgerService:
    return LedgerService(session_factory, password_hash_rounds=4)


@pytest.fixture
def orchestrator(ledger, provider) -> PaymentOrchestrator:
    return PaymentOrchestrator(ledger, provider, public_domain="http://testserver")


@pytest.fixture
def make_vendor(ledger):
    """Register a vendor and optionally fill profile/onboarding fields."""

    counter = {"n": 0}

    def _make(type="company", password="s3cret", onboarded=False, **fields):
        counter["n"] += 1
        email = fields.pop("email", f"vendor{counter['n']}@example.com")
        vendor = ledger.register_vendor({"email": email, "type": type}, password)
        if fields:
            vendor = ledger.update_vendor(vendor.id, fields)
        if onboarded:
            vendor = ledger.set_stripe_account(vendor.id, f"acct_vendor{counter['n']}")
            vendor = ledger.mark_onboarding_complete(vendor.id)
        return vendor

    return _make


@pytest.fixture
def client(settings, session_factory, provider):
    app = create_app(settings, session_factory, provider)
    with TestClient(app) as test_client:
        yield test_client
