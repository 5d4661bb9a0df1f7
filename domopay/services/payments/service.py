"""Payment orchestration for vendors.

Drives provider account creation and onboarding, routes offering payments by
vendor country, and creates payment links. Provider references are written
back through the ledger service once the matching provider call succeeds.
"""

import random

from domopay.common.errors import InvalidRequest, NotFound, PaymentRejected, ProviderError
from domopay.common.fees import APPLICATION_FEE_AMOUNT
from domopay.common.logging import logger
from domopay.common.metrics import charges_total, onboarding_completed_total, payment_links_total
from domopay.services.ledger.models import (
    ROUTING_DESTINATION_CHARGE,
    ROUTING_PAYMENT_INTENT,
    ROUTING_SEPARATE_TRANSFER,
    Offering,
    Vendor,
)
from domopay.services.ledger.service import LedgerService
from domopay.services.payments.schemas import ProductWithPrice, normalize_quantity, to_minor_units
from domopay.services.provider.client import PaymentsProvider

# Countries whose accounts use the `full` service agreement and take destination charges.
DESTINATION_CHARGE_COUNTRIES = {"DE"}

TEST_SOURCES = {
    "immediate_balance": "tok_bypassPending",
    "payout_limit": "tok_visa_triggerTransferBlock",
}
DEFAULT_TEST_SOURCE = "tok_visa"

TEST_OFFERING_MIN_AMOUNT = 1000
TEST_OFFERING_MAX_AMOUNT = 10000

PAYMENT_LINK_METHOD_TYPES = ["card", "bancontact", "sofort", "giropay", "ideal", "p24", "sepa_debit", "eps"]

DEMO_PRODUCTS = [
    {
        "name": "Bescheinigung",
        "description": "Wohungsgeberbescheinigung, Mietschuldenfreiheitsbescheinigung, etc.",
        "default_price_data": {"currency": "eur", "unit_amount": 2000},
    },
]

CURRENCY_SYMBOLS = {"eur": "€", "usd": "$", "gbp": "£", "chf": "CHF", "jpy": "¥"}

SIGNUP_PATH = "/vendors/signup"
DASHBOARD_PATH = "/vendors/dashboard"


def source_for_behavior(behavior: str | None) -> str:
    """Static test card token triggering the requested provider behavior."""

    return TEST_SOURCES.get(behavior or "", DEFAULT_TEST_SOURCE)


def currency_symbol(currency: str) -> str:
    return CURRENCY_SYMBOLS.get(currency.lower(), currency.upper())


def account_params(vendor: Vendor) -> dict:
    """Provider account-creation payload shaped by vendor type."""

    business_type = vendor.type or "individual"
    params = {
        "type": "express",
        "country": vendor.country or None,
        "email": vendor.email or None,
        "business_type": business_type,
    }
    if business_type == "company":
        params["company"] = {"name": vendor.business_name or None}
    else:
        params["individual"] = {
            "first_name": vendor.first_name or None,
            "last_name": vendor.last_name or None,
            "email": vendor.email or None,
        }
    return _drop_none(params)


def _first_balance(balance: dict, kind: str) -> dict:
    """First entry of an `available`/`pending` balance list; zero euros when empty."""

    entries = balance.get(kind) or []
    return entries[0] if entries else {"amount": 0, "currency": "eur"}


def _drop_none(params: dict) -> dict:
    cleaned = {}
    for key, value in params.items():
        if isinstance(value, dict):
            value = _drop_none(value)
        if value is not None:
            cleaned[key] = value
    return cleaned


class PaymentOrchestrator:
    """Vendor-facing payment operations over the provider and the ledger."""

    def __init__(
        self,
        ledger: LedgerService,
        provider: PaymentsProvider,
        public_domain: str,
        app_name: str = "domopay",
    ) -> None:
        self.ledger = ledger
        self.provider = provider
        self.public_domain = public_domain.rstrip("/")
        self.app_name = app_name

    # Onboarding

    def ensure_account(self, vendor: Vendor) -> str:
        """Return the vendor's provider account id, creating the account once."""

        if vendor.stripe_account_id:
            return vendor.stripe_account_id
        account = self.provider.create_account(account_params(vendor))
        self.ledger.set_stripe_account(vendor.id, account["id"])
        vendor.stripe_account_id = account["id"]
        logger.info("provider account created vendor_id=%s account_id=%s", vendor.id, account["id"])
        return account["id"]

    def create_onboarding_link(self, vendor: Vendor) -> str:
        """Fresh, time-limited onboarding URL for the vendor's account."""

        account_id = self.ensure_account(vendor)
        link = self.provider.create_account_link(
            account_id,
            refresh_url=f"{self.public_domain}/vendors/stripe/authorize",
            return_url=f"{self.public_domain}/vendors/stripe/onboarded",
        )
        return link["url"]

    def finalize_onboarding(self, vendor: Vendor) -> str:
        """Confirm onboarding with the provider and return where to send the vendor.

        This is the only place `onboarding_complete` is written.
        """

        if not vendor.stripe_account_id:
            logger.info("onboarding finalize without account vendor_id=%s", vendor.id)
            return SIGNUP_PATH
        account = self.provider.retrieve_account(vendor.stripe_account_id)
        if not account.get("details_submitted"):
            logger.info("the onboarding process was not completed vendor_id=%s", vendor.id)
            return SIGNUP_PATH
        self.ledger.mark_onboarding_complete(vendor.id)
        vendor.onboarding_complete = True
        onboarding_completed_total.inc()
        for product in DEMO_PRODUCTS:
            self.provider.create_product(dict(product), vendor.stripe_account_id)
        return DASHBOARD_PATH

    def express_dashboard_link(self, vendor: Vendor, account_tab: bool = False) -> str:
        url = self.provider.create_login_link(vendor.stripe_account_id)["url"]
        if account_tab:
            url = url + "#/account"
        return url

    # Offerings

    def generate_test_offering(
        self, vendor: Vendor, behavior: str | None = None, amount: int | None = None
    ) -> Offering:
        """Create a random-amount offering for a random customer and pay it out.

        DE vendors get one destination charge. Other vendors get a platform
        charge followed by a separate transfer sharing the offering id as
        transfer group. The two calls are not atomic: a failed transfer leaves
        the charge reference attached and no transfer reference.
        """

        customer = self.ledger.random_customer(self.provider)
        if customer is None:
            raise NotFound("no customer available")
        direct = vendor.country in DESTINATION_CHARGE_COUNTRIES
        routing = ROUTING_DESTINATION_CHARGE if direct else ROUTING_SEPARATE_TRANSFER
        offering = self.ledger.create_offering(
            vendor.id,
            customer.id,
            amount=amount or random.randint(TEST_OFFERING_MIN_AMOUNT, TEST_OFFERING_MAX_AMOUNT),
            routing=routing,
        )
        source = source_for_behavior(behavior)
        if direct:
            return self._destination_charge(vendor, offering, source)
        return self._charge_then_transfer(vendor, offering, source)

    def _destination_charge(self, vendor: Vendor, offering: Offering, source: str) -> Offering:
        try:
            charge = self.provider.create_charge(
                {
                    "source": source,
                    "amount": offering.amount,
                    "currency": offering.currency,
                    "description": self.app_name,
                    "statement_descriptor": self.app_name,
                    "on_behalf_of": vendor.stripe_account_id,
                    "transfer_data": {
                        "amount": offering.amount_for_vendor(),
                        "destination": vendor.stripe_account_id,
                    },
                }
            )
        except ProviderError as exc:
            charges_total.labels(routing=ROUTING_DESTINATION_CHARGE, outcome="rejected").inc()
            raise PaymentRejected(offering.id, exc.message) from exc
        offering = self.ledger.attach_references(offering.id, stripe_charge_id=charge["id"])
        charges_total.labels(routing=ROUTING_DESTINATION_CHARGE, outcome="ok").inc()
        return offering

    def _charge_then_transfer(self, vendor: Vendor, offering: Offering, source: str) -> Offering:
        try:
            charge = self.provider.create_charge(
                {
                    "source": source,
                    "amount": offering.amount,
                    "currency": offering.currency,
                    "description": self.app_name,
                    "statement_descriptor": self.app_name,
                    "transfer_group": offering.id,
                }
            )
        except ProviderError as exc:
            charges_total.labels(routing=ROUTING_SEPARATE_TRANSFER, outcome="rejected").inc()
            raise PaymentRejected(offering.id, exc.message) from exc
        offering = self.ledger.attach_references(offering.id, stripe_charge_id=charge["id"])

        try:
            transfer = self.provider.create_transfer(
                {
                    "amount": offering.amount_for_vendor(),
                    "currency": offering.currency,
                    "destination": vendor.stripe_account_id,
                    "transfer_group": offering.id,
                }
            )
        except ProviderError as exc:
            charges_total.labels(routing=ROUTING_SEPARATE_TRANSFER, outcome="transfer_failed").inc()
            logger.error(
                "transfer failed after charge offering_id=%s charge_id=%s",
                offering.id,
                charge["id"],
            )
            raise PaymentRejected(offering.id, exc.message) from exc
        offering = self.ledger.attach_references(offering.id, stripe_transfer_id=transfer["id"])
        charges_total.labels(routing=ROUTING_SEPARATE_TRANSFER, outcome="ok").inc()
        return offering

    def create_api_offering(self, amount: int, currency: str = "eur") -> tuple[Offering, Vendor]:
        """Charge the latest customer's card for the first onboarded vendor.

        The fixed application fee and the percentage-based vendor payout are
        sent as separate fields of the same payment intent.
        """

        vendor = self.ledger.first_onboarded_vendor()
        customer = self.ledger.latest_customer(self.provider)
        if vendor is None or customer is None:
            missing = "service-vendor" if vendor is None else "customer"
            raise NotFound(f"Could not get {missing} details.")

        offering = self.ledger.create_offering(
            vendor.id, customer.id, amount=amount, currency=currency, routing=ROUTING_PAYMENT_INTENT
        )
        try:
            methods = self.provider.list_payment_methods(customer.stripe_customer_id, type="card")
            if not methods:
                raise PaymentRejected(offering.id, "customer has no card on file")
            intent = self.provider.create_payment_intent(
                {
                    "amount": offering.amount,
                    "currency": offering.currency,
                    "description": self.app_name,
                    "statement_descriptor_suffix": self.app_name,
                    "customer": customer.stripe_customer_id,
                    "payment_method": methods[0]["id"],
                    "confirm": True,
                    "application_fee_amount": APPLICATION_FEE_AMOUNT,
                    "transfer_data": {
                        "amount": offering.amount_for_vendor(),
                        "destination": vendor.stripe_account_id,
                    },
                }
            )
        except ProviderError as exc:
            charges_total.labels(routing=ROUTING_PAYMENT_INTENT, outcome="rejected").inc()
            raise PaymentRejected(offering.id, exc.message) from exc
        offering = self.ledger.attach_references(offering.id, stripe_payment_intent_id=intent["id"])
        charges_total.labels(routing=ROUTING_PAYMENT_INTENT, outcome="ok").inc()
        return offering, vendor

    # Products and payment links

    def list_products(self, vendor: Vendor) -> list[dict]:
        return self.provider.list_products(vendor.stripe_account_id)

    def resolve_price(self, product: dict, account_id: str) -> dict | None:
        """Default price when set, else the first listed price. Never by amount."""

        if product.get("default_price"):
            default_price = product["default_price"]
            if isinstance(default_price, dict):
                return default_price
            return self.provider.retrieve_price(default_price, account_id)
        prices = self.provider.list_prices(product["id"], account_id)
        return prices[0] if prices else None

    def resolve_products(self, vendor: Vendor) -> list[ProductWithPrice]:
        resolved = []
        for product in self.list_products(vendor):
            price = self.resolve_price(product, vendor.stripe_account_id)
            resolved.append(
                ProductWithPrice(
                    name=product.get("name", ""),
                    id=product["id"],
                    price=price.get("unit_amount") if price else None,
                    price_id=price.get("id") if price else None,
                )
            )
        return resolved

    def create_payment_link(
        self, vendor: Vendor, price_id: str, quantity=None, source: str = "dashboard"
    ) -> tuple[str, str]:
        """Provider-hosted payment link on the vendor account; returns `(url, id)`."""

        if not price_id:
            raise InvalidRequest("Price ID is required", field="price_id")
        link = self.provider.create_payment_link(
            {
                "line_items": [{"price": price_id, "quantity": normalize_quantity(quantity)}],
                "billing_address_collection": "required",
                "invoice_creation": {"enabled": True},
                "payment_method_types": PAYMENT_LINK_METHOD_TYPES,
                "restrictions": {"completed_sessions": {"limit": 1}},
            },
            vendor.stripe_account_id,
        )
        payment_links_total.labels(source=source).inc()
        logger.info("payment link created vendor_id=%s link_id=%s source=%s", vendor.id, link["id"], source)
        return link["url"], link["id"]

    def create_custom_product_link(
        self,
        vendor: Vendor,
        title: str,
        description: str,
        unit_price: float,
        quantity=None,
    ) -> tuple[str, str]:
        logger.info(
            "creating custom payment link title=%s unit_price=%s quantity=%s", title, unit_price, quantity
        )
        price = self.provider.create_price(
            {
                "unit_amount": to_minor_units(unit_price),
                "currency": "eur",
                "product_data": {"name": title},
            },
            vendor.stripe_account_id,
        )
        return self.create_payment_link(vendor, price["id"], quantity, source="custom_product")

    def create_product_link(
        self,
        vendor: Vendor,
        product_id: str,
        unit_price: float | None = None,
        quantity=None,
    ) -> tuple[str, str]:
        """Payment link for an existing product.

        A positive `unit_price` creates a new price for the product; otherwise
        the product's default price is used, falling back to its first listed
        price.
        """

        account_id = vendor.stripe_account_id
        if unit_price is not None and unit_price > 0:
            price = self.provider.create_price(
                {"unit_amount": to_minor_units(unit_price), "currency": "eur", "product": product_id},
                account_id,
            )
            price_id = price["id"]
        else:
            product = self.provider.retrieve_product(product_id, account_id)
            if not product:
                raise NotFound("Product not found")
            price = self.resolve_price(product, account_id)
            if price is None:
                raise InvalidRequest("No existing price found for the specified product.", field="productId")
            price_id = price["id"]
        return self.create_payment_link(vendor, price_id, quantity, source="product")

    # Balance and payouts

    def payout(self, vendor: Vendor) -> dict | None:
        """Pay out the first available balance; failures are logged, not raised."""

        try:
            balance = self.provider.retrieve_balance(vendor.stripe_account_id)
            available = balance["available"][0]
            return self.provider.create_payout(
                {
                    "amount": available["amount"],
                    "currency": available["currency"],
                    "statement_descriptor": self.app_name,
                },
                vendor.stripe_account_id,
            )
        except (ProviderError, KeyError, IndexError) as exc:
            logger.error("payout failed vendor_id=%s error=%s", vendor.id, exc)
            return None

    def dashboard(self, vendor: Vendor) -> dict:
        """Balance, past-week offerings and priced products for one vendor."""

        balance = self.provider.retrieve_balance(vendor.stripe_account_id)
        available = _first_balance(balance, "available")
        pending = _first_balance(balance, "pending")
        offerings = self.ledger.list_recent_offerings(vendor.id)
        return {
            "vendor": {
                "id": vendor.id,
                "display_name": vendor.display_name(),
                "email": vendor.email,
                "country": vendor.country,
                "api_key": vendor.api_key,
            },
            "balance_available": available["amount"],
            "balance_pending": pending["amount"],
            "balance_currency": currency_symbol(available["currency"]),
            "offerings_total_amount": sum(o.amount_for_vendor() for o in offerings),
            "offerings": [
                {
                    "id": o.id,
                    "customer": o.customer.display_name() if o.customer else None,
                    "amount": o.amount,
                    "amount_for_vendor": o.amount_for_vendor(),
                    "currency": o.currency,
                    "created_at": o.created_at.isoformat() if o.created_at else None,
                    "paid": o.is_paid,
                }
                for o in offerings
            ],
            "products": [p.model_dump() for p in self.resolve_products(vendor)],
        }
