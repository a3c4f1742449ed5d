"""Application-level exceptions."""


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str = "APP_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    """Raised when input validation fails (before any write)."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        super().__init__(message, code=code)


class NotFoundError(ValidationError):
    """Raised when a referenced asset, goal or period does not exist."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}", code="NOT_FOUND")


class StateError(AppError):
    """Raised when an operation is invalid for the current period status."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_STATE")


class RateUnavailableError(AppError):
    """
    Raised when no exchange rate exists for a currency pair.

    Non-fatal: callers fall back to the source currency and flag the
    result as unconverted.
    """

    def __init__(self, from_currency: str, to_currency: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        super().__init__(
            f"Exchange rate unavailable: {from_currency}->{to_currency}",
            code="RATE_UNAVAILABLE",
        )
