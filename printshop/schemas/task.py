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


class ProductLine(BaseModel):
    """Product line on a task. Stored as JSON on the task row."""
    product_type: str = Field(..., min_length=1)
    product_price: Decimal = Field(Decimal("0"), ge=0)
    product_quantity: int = Field(0, ge=0)
    total_waste: Optional[int] = Field(None, ge=0)


class TaskResponse(BaseResponseSchema):
    id: UUID
    order_id: str
    name: str
    description: Optional[str] = None
    priority: str
    products: List[dict] = []
    branch_id: UUID
    employee_id: Optional[UUID] = None
    status: str
    needs_transfer: bool
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    expected_end_date: Optional[date] = None
    artwork_image: Optional[str] = None
    images: List[str] = []
    total_amount: DecimalAsFloat
    paid_amount: DecimalAsFloat
    balance_due: DecimalAsFloat
    advance_payment: DecimalAsFloat
    full_payment: OptionalDecimalAsFloat = None
    end_price: OptionalDecimalAsFloat = None
    ready_for_payment: bool
    invoice_created: bool
    invoice_data: Optional[dict] = None
    last_payment_method: Optional[str] = None
    cheque_status: Optional[str] = None
    cheque_notes: Optional[str] = None
    online_payment_status: Optional[str] = None
    payment_history: List[dict] = []
    created_at: datetime
    updated_at: datetime


class TaskListResponse(BaseModel):
    items: List[TaskResponse]
    total: int


class TaskActionResponse(BaseModel):
    success: bool = True
    task: TaskResponse
    message: Optional[str] = None


class TaskIdRequest(BaseUpdateSchema):
    task_id: UUID


class SelectProductRequest(BaseUpdateSchema):
    task_id: UUID
    new_product: ProductLine
    advance_payment: Optional[Decimal] = Field(None, ge=0)
    full_payment: Optional[Decimal] = Field(None, ge=0)


class UpdateDescriptionRequest(BaseUpdateSchema):
    task_id: UUID
    # Empty string clears the description
    description: str


class AssignTaskRequest(BaseUpdateSchema):
    task_id: UUID
    employee_id: UUID


class CompleteTaskRequest(BaseUpdateSchema):
    task_id: UUID
    paid_amount: Decimal = Field(Decimal("0"), ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    total_price: Optional[Decimal] = Field(None, ge=0)
    cheque_number: Optional[str] = None
    bank_name: Optional[str] = None
    cheque_date: Optional[date] = None
    bill_number: Optional[str] = None

    normalize_method = create_lowercase_validator(
        'payment_method', VALID_PAYMENT_METHODS, PAYMENT_METHOD_ALIASES
    )


class CompleteTaskResponse(TaskActionResponse):
    is_temporary_completed: bool = False


class ChequeStatusRequest(BaseUpdateSchema):
    task_id: UUID
    action: str = Field(..., description="successful or return")
    notes: Optional[str] = None


class ChequeStatusResponse(BaseModel):
    success: bool = True
    task: TaskResponse
    message: str
    action: str
