import logging
from typing import Any, Optional
from uuid import UUID
from tortoise import timezone
from tortoise.transactions import in_transaction
from app.models.payment_intent import PaymentIntent, PaymentIntentStatus
from app.events.outbox_utility import (
    create_outbox_event,
    PAYMENT_INTENT_CREATED,
    PAYMENT_INTENT_SUCCEEDED,
)
from app.core.exceptions import (
    InvalidPaymentIntentError,
    PaymentIntentNotFoundError,
    PaymentIntentStateConflictError,
)

log = logging.getLogger(__name__)

AGGREGATE_TYPE = "payment_intent"

# Largest value a BIGINT column holds
MAX_AMOUNT = 2**63 - 1


def validate_create_request(amount: Any, currency: Optional[str]) -> None:
    """Raises InvalidPaymentIntentError for input that must never reach storage."""
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidPaymentIntentError("amount must be > 0")
    if amount > MAX_AMOUNT:
        raise InvalidPaymentIntentError("amount too large")
    if currency is None or not currency.strip():
        raise InvalidPaymentIntentError("currency is required")


def event_payload(intent: PaymentIntent) -> dict:
    return {"payment_intent": intent.to_payload()}


async def create_payment_intent(amount: int, currency: str, conn: Any) -> PaymentIntent:
    """
    Inserts a new intent in `requires_confirmation` and appends its
    'payment_intent.created' event.

    Must be called with the caller's open transaction; this function never
    commits on its own.
    """
    validate_create_request(amount, currency)

    intent = await PaymentIntent.create(
        amount=amount,
        currency=currency,
        status=PaymentIntentStatus.REQUIRES_CONFIRMATION,
        using_db=conn,
    )

    # ATOMIC EVENT: same transaction as the insert above
    await create_outbox_event(
        aggregate_type=AGGREGATE_TYPE,
        aggregate_id=intent.id,
        event_type=PAYMENT_INTENT_CREATED,
        payload=event_payload(intent),
        conn=conn,
    )
    return intent


async def get_payment_intent(intent_id: UUID) -> PaymentIntent:
    """Pure read; raises PaymentIntentNotFoundError when absent."""
    intent = await PaymentIntent.get_or_none(id=intent_id)
    if not intent:
        raise PaymentIntentNotFoundError()
    return intent


async def confirm_payment_intent(intent_id: UUID) -> PaymentIntent:
    """
    Moves an intent from requires_confirmation to succeeded.

    The transition is a single conditional UPDATE; whichever concurrent caller
    matches the row wins and every other caller sees 0 affected rows. On 0 rows
    we read the row in the same transaction only to pick 404 vs 409, then the
    raised error rolls the (write-free) transaction back.
    """
    async with in_transaction() as conn:
        updated = await PaymentIntent.filter(
            id=intent_id, status=PaymentIntentStatus.REQUIRES_CONFIRMATION
        ).using_db(conn).update(
            status=PaymentIntentStatus.SUCCEEDED, updated_at=timezone.now()
        )

        if not updated:
            current = await PaymentIntent.get_or_none(id=intent_id).using_db(conn)
            if not current:
                raise PaymentIntentNotFoundError()
            raise PaymentIntentStateConflictError(PaymentIntentStatus(current.status).value)

        intent = await PaymentIntent.get(id=intent_id).using_db(conn)

        await create_outbox_event(
            aggregate_type=AGGREGATE_TYPE,
            aggregate_id=intent.id,
            event_type=PAYMENT_INTENT_SUCCEEDED,
            payload=event_payload(intent),
            conn=conn,
        )

    log.info(f"PaymentIntent {intent.id} confirmed.")
    return intent
