"""Error taxonomy shared by services and the HTTP layer."""


class DomopayError(Exception):
    """Base class for errors raised by domopay services."""


class InvalidRequest(DomopayError):
    """Rejected input, raised before any external call."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class EmailTaken(InvalidRequest):
    def __init__(self, email: str) -> None:
        super().__init__("This email is already registered.", field="email")
        self.email = email


class NotFound(DomopayError):
    pass


class LoginRequired(DomopayError):
    """No authenticated vendor in the session."""


class ProviderError(DomopayError):
    """A payments provider call failed."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.message = message


class PaymentRejected(DomopayError):
    """A charge or transfer for an offering did not go through."""

    def __init__(self, offering_id: str, reason: str) -> None:
        super().__init__(f"payment for offering {offering_id} rejected: {reason}")
        self.offering_id = offering_id
        self.reason = reason
