"""Payments provider client.

`PaymentsProvider` is the narrow surface the orchestrator depends on;
`StripeProvider` implements it against Stripe Connect. Every call returns plain
dicts and raises `ProviderError` on failure. Calls scoped to a connected
account pass its id as `stripe_account`.
"""

import time
from typing import Any, Protocol

import stripe

from domopay.common.errors import ProviderError
from domopay.common.logging import logger
from domopay.common.metrics import provider_calls_total, provider_latency_seconds


class PaymentsProvider(Protocol):
    """Provider operations consumed by the payment orchestrator."""

    def create_account(self, params: dict[str, Any]) -> dict[str, Any]: ...

    def create_account_link(self, account_id: str, refresh_url: str, return_url: str) -> dict[str, Any]: ...

    def retrieve_account(self, account_id: str) -> dict[str, Any]: ...

    def create_login_link(self, account_id: str) -> dict[str, Any]: ...

    def retrieve_balance(self, account_id: str) -> dict[str, Any]: ...

    def create_charge(self, params: dict[str, Any]) -> dict[str, Any]: ...

    def create_transfer(self, params: dict[str, Any]) -> dict[str, Any]: ...

    def create_payment_intent(self, params: dict[str, Any]) -> dict[str, Any]: ...

    def list_payment_methods(self, customer_id: str, type: str = "card") -> list[dict[str, Any]]: ...

    def create_customer(self, email: str, description: str) -> dict[str, Any]: ...

    def list_products(self, account_id: str) -> list[dict[str, Any]]: ...

    def retrieve_product(self, product_id: str, account_id: str) -> dict[str, Any]: ...

    def create_product(self, params: dict[str, Any], account_id: str) -> dict[str, Any]: ...

    def list_prices(self, product_id: str, account_id: str) -> list[dict[str, Any]]: ...

    def retrieve_price(self, price_id: str, account_id: str) -> dict[str, Any]: ...

    def create_price(self, params: dict[str, Any], account_id: str) -> dict[str, Any]: ...

    def create_payment_link(self, params: dict[str, Any], account_id: str) -> dict[str, Any]: ...

    def create_payout(self, params: dict[str, Any], account_id: str) -> dict[str, Any]: ...


class StripeProvider:
    """`PaymentsProvider` backed by the Stripe API.

    Credentials travel with each request instead of through the module-level
    `stripe.api_key`, so one instance is built at startup and shared.
    """

    def __init__(self, secret_key: str, api_version: str) -> None:
        self.secret_key = secret_key
        self.api_version = api_version

    def _options(self, account_id: str | None = None) -> dict[str, Any]:
        options: dict[str, Any] = {"api_key": self.secret_key, "stripe_version": self.api_version}
        if account_id:
            options["stripe_account"] = account_id
        return options

    def _call(self, operation: str, fn, *args, **kwargs) -> Any:
        start = time.perf_counter()
        try:
            result = fn(*args, **kwargs)
        except stripe.StripeError as exc:
            provider_calls_total.labels(operation=operation, outcome="error").inc()
            logger.error("provider call failed operation=%s error=%s", operation, exc)
            raise ProviderError(operation, getattr(exc, "user_message", None) or str(exc)) from exc
        finally:
            provider_latency_seconds.labels(operation=operation).observe(
                max(0.0, time.perf_counter() - start)
            )
        provider_calls_total.labels(operation=operation, outcome="ok").inc()
        return result.to_dict()

    def _list(self, operation: str, fn, **kwargs) -> list[dict[str, Any]]:
        return self._call(operation, fn, **kwargs).get("data", [])

    def create_account(self, params):
        return self._call("accounts.create", stripe.Account.create, **params, **self._options())

    def create_account_link(self, account_id, refresh_url, return_url):
        return self._call(
            "account_links.create",
            stripe.AccountLink.create,
            account=account_id,
            refresh_url=refresh_url,
            return_url=return_url,
            type="account_onboarding",
            **self._options(),
        )

    def retrieve_account(self, account_id):
        return self._call("accounts.retrieve", stripe.Account.retrieve, account_id, **self._options())

    def create_login_link(self, account_id):
        return self._call(
            "accounts.create_login_link", stripe.Account.create_login_link, account_id, **self._options()
        )

    def retrieve_balance(self, account_id):
        return self._call("balance.retrieve", stripe.Balance.retrieve, **self._options(account_id))

    def create_charge(self, params):
        return self._call("charges.create", stripe.Charge.create, **params, **self._options())

    def create_transfer(self, params):
        return self._call("transfers.create", stripe.Transfer.create, **params, **self._options())

    def create_payment_intent(self, params):
        return self._call("payment_intents.create", stripe.PaymentIntent.create, **params, **self._options())

    def list_payment_methods(self, customer_id, type="card"):
        return self._list(
            "payment_methods.list",
            stripe.PaymentMethod.list,
            customer=customer_id,
            type=type,
            **self._options(),
        )

    def create_customer(self, email, description):
        return self._call(
            "customers.create",
            stripe.Customer.create,
            email=email,
            description=description,
            **self._options(),
        )

    def list_products(self, account_id):
        return self._list("products.list", stripe.Product.list, **self._options(account_id))

    def retrieve_product(self, product_id, account_id):
        return self._call(
            "products.retrieve", stripe.Product.retrieve, product_id, **self._options(account_id)
        )

    def create_product(self, params, account_id):
        return self._call("products.create", stripe.Product.create, **params, **self._options(account_id))

    def list_prices(self, product_id, account_id):
        return self._list(
            "prices.list", stripe.Price.list, product=product_id, **self._options(account_id)
        )

    def retrieve_price(self, price_id, account_id):
        return self._call("prices.retrieve", stripe.Price.retrieve, price_id, **self._options(account_id))

    def create_price(self, params, account_id):
        return self._call("prices.create", stripe.Price.create, **params, **self._options(account_id))

    def create_payment_link(self, params, account_id):
        return self._call(
            "payment_links.create", stripe.PaymentLink.create, **params, **self._options(account_id)
        )

    def create_payout(self, params, account_id):
        return self._call("payouts.create", stripe.Payout.create, **params, **self._options(account_id))
