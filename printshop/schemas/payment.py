from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from printshop.core.enum_utils import (
    PAYMENT_METHOD_ALIASES,
    VALID_PAYMENT_METHODS,
    create_lowercase_validator,
)
from printshop.models.task import PaymentMethod
from printshop.schemas.base import BaseCreateSchema, BaseResponseSchema, DecimalAsFloat


class PaymentCreate(BaseCreateSchema):
    order_id: str = Field(..., min_length=1)
    # Positivity is checked by the service so it surfaces as a 400
    amount: Decimal
    payment_type: PaymentMethod
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None
    received_by: Optional[str] = None
    cheque_number: Optional[str] = None
    transaction_id: Optional[str] = None

    normalize_type = create_lowercase_validator(
        'payment_type', VALID_PAYMENT_METHODS, PAYMENT_METHOD_ALIASES
    )


class PaymentResponse(BaseResponseSchema):
    id: UUID
    order_id: str
    amount: DecimalAsFloat
    payment_type: str
    payment_date: datetime
    notes: Optional[str] = None
    received_by: Optional[str] = None
    cheque_number: Optional[str] = None
    cheque_status: Optional[str] = None
    transaction_id: Optional[str] = None
    branch_id: UUID


class PaymentTaskSummary(BaseModel):
    order_id: str
    total_amount: DecimalAsFloat
    paid_amount: DecimalAsFloat
    balance_due: DecimalAsFloat
    status: str


class PaymentCreateResponse(BaseModel):
    success: bool = True
    payment: PaymentResponse
    task: PaymentTaskSummary


class PaymentListResponse(BaseModel):
    success: bool = True
    payments: List[PaymentResponse]
    total_paid: DecimalAsFloat
