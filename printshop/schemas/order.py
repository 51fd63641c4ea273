from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from printshop.schemas.base import BaseCreateSchema, BaseResponseSchema, DecimalAsFloat
from printshop.schemas.task import TaskResponse


class OrderItemCreate(BaseModel):
    """One ordered product line."""
    product: str = Field(..., min_length=1, description="Inventory product id or code")
    quantity: int = Field(..., ge=0)
    unit_price: Decimal = Field(Decimal("0"), ge=0)
    total_waste: int = Field(0, ge=0)


class OrderCreate(BaseCreateSchema):
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: Optional[str] = None
    whatsapp_number: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    images: List[str] = []
    order_items: List[OrderItemCreate] = []
    full_payment: Optional[Decimal] = Field(None, ge=0, description="Order total")
    total_price: Optional[Decimal] = Field(None, ge=0)
    advance_payment: Optional[Decimal] = Field(None, ge=0)
    send_to_main_branch: bool = False
    assign_task: bool = True
    order_date: Optional[date] = None
    # Checked by the service so a missing date is a 400, not a 422
    expected_end_date: Optional[date] = None


class OrderResponse(BaseResponseSchema):
    id: UUID
    order_id: str
    customer_name: str
    customer_email: Optional[str] = None
    whatsapp_number: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    images: List[str] = []
    order_items: List[dict] = []
    total_price: DecimalAsFloat
    advance_payment: DecimalAsFloat
    send_to_main_branch: bool
    assign_task: bool
    order_date: date
    due_date: date
    branch_id: UUID
    status: str
    created_at: datetime


class OrderCreateResponse(BaseModel):
    order: OrderResponse
    task: TaskResponse
    generated_order_id: str


class OrderListResponse(BaseModel):
    items: List[OrderResponse]
    total: int


class NextOrderIdResponse(BaseModel):
    branch_name: str
    branch_prefix: str
    next_order_id: str
    next_order_number: int
    last_order_id: Optional[str] = None
    last_order_number: int
