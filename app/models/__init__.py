# app/models/__init__.py
from .payment_intent import PaymentIntent, PaymentIntentStatus
from .idempotency import IdempotencyRecord
from .outbox import OutboxEvent

# Export all models
__all__ = [
    "IdempotencyRecord",
    "OutboxEvent",
    "PaymentIntent",
    "PaymentIntentStatus",
]
