import asyncio
import logging
from typing import Awaitable, Callable
from app.models.outbox import OutboxEvent
from app.events.outbox_utility import (
    fetch_pending_events,
    mark_delivered,
    record_failed_attempt,
    PAYMENT_INTENT_CREATED,
    PAYMENT_INTENT_SUCCEEDED,
)
from app.core.db import init_db, close_db
from app.core.config import POLLING_INTERVAL, MAX_ATTEMPTS, BATCH_SIZE, LOG_LEVEL, LOG_FORMAT

log = logging.getLogger("outbox_poller")

Dispatcher = Callable[[OutboxEvent], Awaitable[None]]


async def log_dispatch_event(event: OutboxEvent):
    """
    Default delivery target. Stands in for the webhook fan-out, which lives
    outside this service.
    """
    intent = event.payload.get("payment_intent", {})
    if event.event_type in (PAYMENT_INTENT_CREATED, PAYMENT_INTENT_SUCCEEDED):
        log.info(f"Relaying {event.event_type} for PaymentIntent {intent.get('id')} (status={intent.get('status')})")
    else:
        log.warning(f"No subscriber mapping for event type: {event.event_type}")


async def poll_outbox_for_new_events(dispatch: Dispatcher = log_dispatch_event) -> int:
    """
    Reads undelivered events in created_at order and hands each to `dispatch`.
    Returns how many were delivered in this pass.
    """
    events = await fetch_pending_events(limit=BATCH_SIZE, max_attempts=MAX_ATTEMPTS)
    delivered = 0

    for event in events:
        try:
            await dispatch(event)
        except Exception:
            log.exception(f"Delivery failed for event {event.id} ({event.event_type}), attempt {event.attempts + 1}")
            await record_failed_attempt(event)
            continue

        await mark_delivered(event)
        delivered += 1

    return delivered


async def start_outbox_poller(dispatch: Dispatcher = log_dispatch_event):
    """Main loop for the relay process."""
    await init_db()
    log.info("--- Outbox Relay Started ---")

    try:
        while True:
            try:
                await poll_outbox_for_new_events(dispatch)
            except Exception as e:
                log.error(f"Relay encountered a DB error: {e}.")

            await asyncio.sleep(POLLING_INTERVAL)
    finally:
        await close_db()


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    try:
        asyncio.run(start_outbox_poller())
    except KeyboardInterrupt:
        log.info("Relay service stopped.")
