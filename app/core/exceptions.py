"""
Domain errors raised by the payment-intent services.

Routers translate each of these 1:1 into an HTTP status; anything else that
escapes a service (connection loss, unexpected integrity errors) is a 500.
"""
from typing import Optional


class PaymentIntentError(Exception):
    """Base class for every error the payment-intent core raises on purpose."""


class InvalidPaymentIntentError(PaymentIntentError, ValueError):
    """Bad input: non-positive amount or blank currency (400)."""


class PaymentIntentNotFoundError(PaymentIntentError):
    """Unknown payment intent id (404)."""

    def __init__(self, message: str = "payment_intent not found"):
        super().__init__(message)


class PaymentIntentStateConflictError(PaymentIntentError):
    """The intent is not in a state that allows the requested transition (409)."""

    def __init__(self, current_status: str, message: Optional[str] = None):
        self.current_status = current_status
        super().__init__(message or f"cannot confirm payment_intent in status '{current_status}'")


class IdempotencyKeyReuseError(PaymentIntentError):
    """Idempotency key already used with a different request body (409)."""

    def __init__(self, message: str = "idempotency key reused with different request"):
        super().__init__(message)


class IdempotencyRecordCorruptedError(PaymentIntentError):
    """Stored record has neither a usable response nor a payment intent reference (500)."""

    def __init__(
        self,
        message: str = "idempotency record exists but has no stored response or payment_intent_id",
    ):
        super().__init__(message)
