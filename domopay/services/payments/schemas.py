"""Request/response schemas for vendor and payment endpoints."""

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError


def normalize_quantity(value: Any) -> int:
    """Positive integer quantity; absent or unusable values fall back to 1."""

    if value is None or isinstance(value, bool):
        return 1
    try:
        quantity = int(float(value))
    except (TypeError, ValueError):
        return 1
    return quantity if quantity > 0 else 1


def to_minor_units(unit_price: float) -> int:
    """Whole-currency unit price to cents."""

    return int(round(unit_price * 100))


class SignupAccountForm(BaseModel):
    """First signup step: credentials, vendor type and product rates."""

    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=1)
    type: Literal["individual", "company"] = Field(
        default="company", validation_alias=AliasChoices("vendor-type", "type")
    )
    certification_rate: int | None = Field(default=None, ge=0)
    key_rate: int | None = Field(default=None, ge=0)
    hour_rate: int | None = Field(default=None, ge=0)

    def to_vendor_fields(self) -> dict[str, Any]:
        return {
            "email": self.email.lower(),
            "type": self.type,
            "certification_rate": self.certification_rate,
            "key_rate": self.key_rate,
            "hour_rate": self.hour_rate,
        }


class SignupProfileForm(BaseModel):
    """Later signup submissions by a logged-in vendor."""

    type: Literal["individual", "company"] | None = Field(
        default=None, validation_alias=AliasChoices("vendor-type", "type")
    )
    first_name: str | None = None
    last_name: str | None = None
    business_name: str | None = None
    address: str | None = None
    postal_code: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = Field(default=None, min_length=2, max_length=2)
    certification_rate: int | None = Field(default=None, ge=0)
    key_rate: int | None = Field(default=None, ge=0)
    hour_rate: int | None = Field(default=None, ge=0)

    def to_vendor_fields(self) -> dict[str, Any]:
        """Only the fields that were submitted, `type` first."""

        fields: dict[str, Any] = {}
        if self.type is not None:
            fields["type"] = self.type
        for name in (
            "first_name",
            "last_name",
            "business_name",
            "address",
            "postal_code",
            "city",
            "state",
            "certification_rate",
            "key_rate",
            "hour_rate",
        ):
            value = getattr(self, name)
            if value is not None:
                fields[name] = value
        if self.country is not None:
            fields["country"] = self.country.upper()
        return fields


class CustomProductLinkRequest(BaseModel):
    """Payment link for an ad-hoc product priced by the caller."""

    model_config = ConfigDict(populate_by_name=True)

    product_title: str = Field(alias="productTitle", min_length=1)
    product_description: str = Field(alias="productDescription", min_length=1)
    unit_price: float = Field(alias="unitPrice", gt=0)
    quantity: Any = None


class ProductLinkRequest(BaseModel):
    """Payment link for an existing product, optionally at a new price."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(alias="productId", min_length=1)
    unit_price: float | None = Field(default=None, alias="unitPrice")
    quantity: Any = None


class PaymentLinkResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    payment_link: str = Field(serialization_alias="paymentLink")
    payment_link_id: str = Field(serialization_alias="paymentLinkId")


class ApiOfferingRequest(BaseModel):
    """Offering created by the companion client for the latest customer."""

    amount: int = Field(gt=0)
    currency: str = Field(default="eur", min_length=3, max_length=3)


class ProductWithPrice(BaseModel):
    name: str
    id: str
    price: int | None
    price_id: str | None


def form_fields(form) -> dict[str, Any]:
    """Submitted form values with blank inputs dropped."""

    return {key: value for key, value in form.items() if value != ""}


def first_error_message(exc: ValidationError) -> str:
    """Field-level message for the first validation error."""

    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    return f"{location}: {error['msg']}" if location else error["msg"]
