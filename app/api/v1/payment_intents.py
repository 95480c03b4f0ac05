import logging
from fastapi import APIRouter, Header, HTTPException, status
from fastapi.responses import JSONResponse
from app.schemas.payment_intent import CreatePaymentIntentRequest, PaymentIntentResponse
from app.services.idempotency_service import execute_idempotent_create
from app.services.payment_intent_service import (
    validate_create_request,
    get_payment_intent,
    confirm_payment_intent,
)
from app.core.exceptions import (
    InvalidPaymentIntentError,
    PaymentIntentNotFoundError,
    PaymentIntentStateConflictError,
    IdempotencyKeyReuseError,
    IdempotencyRecordCorruptedError,
)
from typing import Optional
from uuid import UUID

router = APIRouter()
log = logging.getLogger(__name__)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PaymentIntentResponse)
async def create_payment_intent_endpoint(
    request_data: CreatePaymentIntentRequest,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
):
    """
    Creates a payment intent. With an Idempotency-Key header, retries of the
    same request return the original result instead of creating a new intent.
    """
    try:
        # Rejected before any storage work, so no key gets reserved
        validate_create_request(request_data.amount, request_data.currency)

        status_code, body = await execute_idempotent_create(idempotency_key, request_data)
        return JSONResponse(
            status_code=status_code,
            content=PaymentIntentResponse(**body).model_dump(mode="json"),
        )
    except InvalidPaymentIntentError as e:
        log.error(f"Value error creating payment intent: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except IdempotencyKeyReuseError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except IdempotencyRecordCorruptedError as e:
        log.error(f"Idempotency record inconsistency for key {idempotency_key!r}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except Exception as e:
        log.error(f"Error creating payment intent: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server failed to create payment intent."
        )


@router.get("/{intent_id}", response_model=PaymentIntentResponse)
async def get_payment_intent_endpoint(intent_id: UUID):
    """Fetches a payment intent by id."""
    try:
        intent = await get_payment_intent(intent_id)
        return PaymentIntentResponse(**intent.to_payload())
    except PaymentIntentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        log.error(f"Error fetching payment intent {intent_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server failed to fetch payment intent."
        )


@router.post("/{intent_id}/confirm", response_model=PaymentIntentResponse)
async def confirm_payment_intent_endpoint(intent_id: UUID):
    """
    Confirms a payment intent (requires_confirmation -> succeeded).
    A second confirm is a 409 naming the current status.
    """
    try:
        intent = await confirm_payment_intent(intent_id)
        return PaymentIntentResponse(**intent.to_payload())
    except PaymentIntentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PaymentIntentStateConflictError as e:
        log.warning(f"Rejected confirm for payment intent {intent_id}: {e}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except Exception as e:
        log.error(f"Error confirming payment intent {intent_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server failed to confirm payment intent."
        )
