from tortoise import fields, models
import uuid


class OutboxEvent(models.Model):
    """
    The Outbox table stores events atomically with the database transaction.
    This is the core of the Transactional Outbox Pattern.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    aggregate_type = fields.CharField(max_length=64) # e.g., 'payment_intent'
    aggregate_id = fields.UUIDField(null=True) # ID of the entity that generated the event
    event_type = fields.CharField(max_length=128) # e.g., 'payment_intent.created'
    payload = fields.JSONField() # Snapshot of the entity at the time of the change
    attempts = fields.IntField(default=0)
    created_at = fields.DatetimeField(auto_now_add=True)
    delivered_at = fields.DatetimeField(null=True)

    class Meta:
        table = "outbox_events"
        indexes = [
            ("created_at",),
            ("delivered_at",),
        ]
