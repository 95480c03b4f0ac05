import uuid
from pydantic import BaseModel, Field
from app.models.payment_intent import PaymentIntentStatus


class CreatePaymentIntentRequest(BaseModel):
    """Schema for the payment intent creation request body."""
    # Range checks live in the service so they surface as 400, not 422
    amount: int = Field(..., description="Amount in minor currency units; must be > 0.")
    currency: str = Field(..., description="ISO currency code, e.g. 'gbp'.")


class PaymentIntentResponse(BaseModel):
    """Schema returned by create, confirm and get."""
    id: uuid.UUID
    amount: int
    currency: str
    status: PaymentIntentStatus
