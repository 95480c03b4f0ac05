"""
Idempotent execution of payment intent creation.

A keyed create first reserves its (key, endpoint) slot with a single
insert-if-absent, then creates the intent and stores the reply, all in one
transaction. Whoever loses the reservation replays what the winner stored,
rebuilding it from the referenced intent when the stored reply is missing.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple
from fastapi import status
from tortoise.transactions import in_transaction
from app.models.idempotency import IdempotencyRecord, MAX_IDEMPOTENCY_KEY_LENGTH
from app.models.payment_intent import PaymentIntent
from app.schemas.payment_intent import CreatePaymentIntentRequest
from app.services.fingerprint import request_fingerprint
from app.services.payment_intent_service import create_payment_intent
from app.core.exceptions import (
    IdempotencyKeyReuseError,
    IdempotencyRecordCorruptedError,
    InvalidPaymentIntentError,
)

log = logging.getLogger(__name__)

CREATE_PAYMENT_INTENT_ENDPOINT = "POST /v1/payment_intents"

CreateFn = Callable[[CreatePaymentIntentRequest, Any], Awaitable[PaymentIntent]]
IdempotentResult = Tuple[int, Dict[str, Any]]


def validate_idempotency_key(key: str) -> None:
    if len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise InvalidPaymentIntentError(
            f"Idempotency-Key must be at most {MAX_IDEMPOTENCY_KEY_LENGTH} characters"
        )


async def _create_from_request(request: CreatePaymentIntentRequest, conn: Any) -> PaymentIntent:
    return await create_payment_intent(request.amount, request.currency, conn)


async def execute_idempotent_create(
    key: Optional[str],
    request: CreatePaymentIntentRequest,
    create_fn: CreateFn = _create_from_request,
    endpoint: str = CREATE_PAYMENT_INTENT_ENDPOINT,
) -> IdempotentResult:
    """
    Runs `create_fn` at most once per (key, endpoint) and returns
    (status_code, response_body).

    Without a key the request is never deduplicated. Any exception raised
    inside the transaction rolls back the reservation together with the
    intent, so a corrected retry with the same key starts from scratch.
    """
    if not key:
        async with in_transaction() as conn:
            intent = await create_fn(request, conn)
        log.info(f"PaymentIntent {intent.id} created (no idempotency key).")
        return status.HTTP_201_CREATED, intent.to_payload()

    validate_idempotency_key(key)
    request_hash = request_fingerprint(request.amount, request.currency)

    async with in_transaction() as conn:
        # INSERT ... ON CONFLICT DO NOTHING; the pk tells us whose row survived.
        reservation = IdempotencyRecord(
            key=key, endpoint=endpoint, request_hash=request_hash, response_body={}
        )
        await IdempotencyRecord.bulk_create([reservation], ignore_conflicts=True, using_db=conn)
        record = await IdempotencyRecord.get(key=key, endpoint=endpoint).using_db(conn)

        if record.id == reservation.id:
            intent = await create_fn(request, conn)
            response = intent.to_payload()

            record.payment_intent_id = intent.id
            record.response_body = response
            await record.save(update_fields=["payment_intent_id", "response_body"], using_db=conn)

            log.info(f"PaymentIntent {intent.id} created for idempotency key {key!r}.")
            return status.HTTP_201_CREATED, response

        return await _replay(record, request_hash, conn)


async def _replay(record: IdempotencyRecord, request_hash: str, conn: Any) -> IdempotentResult:
    """Answers a request whose key was already reserved by an earlier attempt."""
    if record.request_hash != request_hash:
        log.warning(f"Idempotency key {record.key!r} reused with a different request.")
        raise IdempotencyKeyReuseError()

    if record.has_complete_response():
        log.info(f"Replaying stored response for idempotency key {record.key!r}.")
        return status.HTTP_201_CREATED, record.response_body

    # Crash fallback: intent exists but the stored reply never made it
    if record.payment_intent_id:
        intent = await PaymentIntent.get(id=record.payment_intent_id).using_db(conn)
        response = intent.to_payload()

        record.response_body = response
        await record.save(update_fields=["response_body"], using_db=conn)

        log.info(
            f"Reconstructed response for idempotency key {record.key!r} "
            f"from PaymentIntent {intent.id}."
        )
        return status.HTTP_201_CREATED, response

    log.error(
        f"Idempotency record for key {record.key!r} on {record.endpoint} has neither "
        f"a response body nor a payment_intent_id."
    )
    raise IdempotencyRecordCorruptedError()
