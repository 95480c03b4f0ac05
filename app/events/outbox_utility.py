from typing import Dict, Any, List, Optional
from app.models.outbox import OutboxEvent
from uuid import UUID
from tortoise import timezone

PAYMENT_INTENT_CREATED = "payment_intent.created"
PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"


async def create_outbox_event(
    aggregate_type: str,
    aggregate_id: Optional[UUID],
    event_type: str,
    payload: Dict[str, Any],
    conn: Any = None
) -> OutboxEvent:
    """
    Creates a new Outbox event record using the provided database connection (transaction).

    CRITICAL: Passing 'conn' ensures the event is created atomically with the business data.
    The writer does not check this itself and never retries on its own.
    """
    return await OutboxEvent.create(
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
        event_type=event_type,
        payload=payload,
        attempts=0,
        using_db=conn
    )


async def fetch_pending_events(limit: int, max_attempts: int) -> List[OutboxEvent]:
    """Undelivered events still under the attempt cap, oldest first."""
    return await OutboxEvent.filter(
        delivered_at__isnull=True, attempts__lt=max_attempts
    ).order_by("created_at").limit(limit)


async def mark_delivered(event: OutboxEvent) -> None:
    event.delivered_at = timezone.now()
    await event.save(update_fields=["delivered_at"])


async def record_failed_attempt(event: OutboxEvent) -> None:
    event.attempts += 1
    await event.save(update_fields=["attempts"])
