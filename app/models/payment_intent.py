from enum import Enum
from tortoise import fields, models
import uuid


class PaymentIntentStatus(str, Enum):
    REQUIRES_CONFIRMATION = "requires_confirmation"  # Initial state after create
    SUCCEEDED = "succeeded"  # Terminal, reached only through confirm


class PaymentIntent(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    amount = fields.BigIntField()  # Minor currency units, always > 0
    currency = fields.TextField()
    status = fields.CharEnumField(PaymentIntentStatus, default=PaymentIntentStatus.REQUIRES_CONFIRMATION)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "payment_intents"
        indexes = [
            ("status",),
            ("created_at",),
        ]

    def to_payload(self) -> dict:
        """JSON-safe snapshot used for API responses, stored replies and outbox events."""
        return {
            "id": str(self.id),
            "amount": self.amount,
            "currency": self.currency,
            "status": PaymentIntentStatus(self.status).value,
        }
