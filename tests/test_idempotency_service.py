import pytest

from app.core.exceptions import InvalidPaymentIntentError, IdempotencyKeyReuseError
from app.models import IdempotencyRecord, OutboxEvent, PaymentIntent
from app.schemas.payment_intent import CreatePaymentIntentRequest
from app.services.idempotency_service import execute_idempotent_create
from app.services.payment_intent_service import create_payment_intent


def make_request(amount=2500, currency="gbp"):
    return CreatePaymentIntentRequest(amount=amount, currency=currency)


@pytest.mark.asyncio
async def test_no_key_bypasses_records(db):
    status_code, body = await execute_idempotent_create(None, make_request())

    assert status_code == 201
    assert body["status"] == "requires_confirmation"
    assert await IdempotencyRecord.all().count() == 0


@pytest.mark.asyncio
async def test_won_reservation_stores_response_and_back_reference(db):
    status_code, body = await execute_idempotent_create("k1", make_request())

    record = await IdempotencyRecord.get(key="k1")
    assert status_code == 201
    assert record.response_body == body
    assert str(record.payment_intent_id) == body["id"]


@pytest.mark.asyncio
async def test_validation_failure_releases_key(db):
    with pytest.raises(InvalidPaymentIntentError):
        await execute_idempotent_create("retry-me", make_request(amount=0))

    assert await IdempotencyRecord.all().count() == 0

    status_code, body = await execute_idempotent_create("retry-me", make_request(amount=100))
    assert status_code == 201
    assert body["amount"] == 100


@pytest.mark.asyncio
async def test_failure_after_insert_rolls_everything_back(db):
    async def create_then_fail(request, conn):
        await create_payment_intent(request.amount, request.currency, conn)
        raise RuntimeError("connection lost")

    with pytest.raises(RuntimeError):
        await execute_idempotent_create("k2", make_request(), create_fn=create_then_fail)

    assert await PaymentIntent.all().count() == 0
    assert await OutboxEvent.all().count() == 0
    assert await IdempotencyRecord.all().count() == 0

    status_code, _ = await execute_idempotent_create("k2", make_request())
    assert status_code == 201


@pytest.mark.asyncio
async def test_key_is_scoped_per_endpoint(db):
    _, first = await execute_idempotent_create("shared", make_request(), endpoint="POST /a")
    _, second = await execute_idempotent_create(
        "shared", make_request(amount=9999), endpoint="POST /b"
    )

    assert first["id"] != second["id"]
    assert await IdempotencyRecord.filter(key="shared").count() == 2


@pytest.mark.asyncio
async def test_conflict_leaves_original_record_untouched(db):
    _, original = await execute_idempotent_create("k3", make_request())

    with pytest.raises(IdempotencyKeyReuseError):
        await execute_idempotent_create("k3", make_request(currency="eur"))

    record = await IdempotencyRecord.get(key="k3")
    assert record.response_body == original
    assert await PaymentIntent.all().count() == 1
