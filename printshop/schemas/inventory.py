from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from printshop.schemas.base import BaseCreateSchema, BaseResponseSchema, DecimalAsFloat


class InventoryItemCreate(BaseCreateSchema):
    name: str = Field(..., min_length=1, max_length=200)
    product_id: str = Field(..., min_length=1, max_length=100)
    product_code: Optional[str] = Field(None, pattern=r"^\d{8}$", description="Generated when omitted")
    quantity: int = 0
    price: Decimal = Field(Decimal("0"), ge=0)
    image: Optional[str] = None


class InventoryItemResponse(BaseResponseSchema):
    id: UUID
    name: str
    branch_id: UUID
    product_id: str
    product_code: str
    quantity: int
    status: str
    price: DecimalAsFloat
    image: Optional[str] = None
    updated_at: datetime


class InventoryListResponse(BaseModel):
    items: List[InventoryItemResponse]
    total: int


class ProductCreate(BaseCreateSchema):
    name: str = Field(..., min_length=1, max_length=200)
    product_id: Optional[str] = None
    product_code: Optional[str] = None
    code: Optional[str] = None


class ProductResponse(BaseResponseSchema):
    id: UUID
    name: str
    product_id: Optional[str] = None
    product_code: Optional[str] = None
    code: Optional[str] = None
