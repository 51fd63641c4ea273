from datetime import date, datetime
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
from printshop.schemas.base import (
    BaseResponseSchema,
    BaseUpdateSchema,
    DecimalAsFloat,
    OptionalDecimalAsFloat,
)
from printshop.schemas.task import ProductLine, TaskResponse


class SentOrderResponse(BaseResponseSchema):
    id: UUID
    order_id: str
    customer_name: str
    order_date: Optional[date] = None
    expected_end_date: Optional[date] = None
    total_price: DecimalAsFloat
    sent_branch_id: UUID
    status: str
    level: int
    images: List[str] = []
    products: List[dict] = []
    invoice_created: bool
    invoice_data: Optional[dict] = None
    advance_payment: DecimalAsFloat
    full_payment: OptionalDecimalAsFloat = None
    last_payment_method: Optional[str] = None
    payment_history: List[dict] = []
    created_at: datetime


class SentOrderListResponse(BaseModel):
    items: List[SentOrderResponse]
    total: int


class SentOrderPaymentRequest(BaseUpdateSchema):
    order_id: str = Field(..., min_length=1)
    # Positivity is checked by the service so it surfaces as a 400
    paid_amount: Decimal = Decimal("0")
    payment_method: PaymentMethod
    total_price: Optional[Decimal] = Field(None, ge=0)
    cheque_number: Optional[str] = None
    bank_name: Optional[str] = None
    cheque_date: Optional[date] = None
    bill_number: Optional[str] = None

    normalize_method = create_lowercase_validator(
        'payment_method', VALID_PAYMENT_METHODS, PAYMENT_METHOD_ALIASES
    )


class SentOrderInvoiceRequest(BaseUpdateSchema):
    order_id: str = Field(..., min_length=1)
    # Emptiness and positivity are checked by the service so they surface as a 400
    products: List[ProductLine] = []
    total_amount: Decimal = Decimal("0")


class SentOrderInvoiceResponse(BaseModel):
    success: bool = True
    message: str
    sent_order: SentOrderResponse
    invoice: dict


class SentOrderIdRequest(BaseUpdateSchema):
    order_id: str = Field(..., min_length=1)


class SentOrderActionResponse(BaseModel):
    success: bool = True
    status: str
    message: str
    task: TaskResponse


class ReceiveResponse(BaseModel):
    success: bool
    message: Optional[str] = None
