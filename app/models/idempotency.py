from tortoise import fields, models
import uuid

MAX_IDEMPOTENCY_KEY_LENGTH = 255


class IdempotencyRecord(models.Model):
    """
    One row per (key, endpoint) reservation made by a keyed create request.

    `payment_intent` is written together with the intent insert and is the
    anchor used to rebuild `response_body` when a previous attempt died before
    storing the final reply.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    key = fields.CharField(max_length=MAX_IDEMPOTENCY_KEY_LENGTH)
    endpoint = fields.CharField(max_length=128)
    request_hash = fields.CharField(max_length=64)
    response_body = fields.JSONField(default=dict)
    payment_intent = fields.ForeignKeyField(
        "models.PaymentIntent", related_name="idempotency_records", null=True
    )
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "idempotency_keys"
        unique_together = (("key", "endpoint"),)

    def has_complete_response(self) -> bool:
        body = self.response_body or {}
        return isinstance(body, dict) and isinstance(body.get("id"), str)
