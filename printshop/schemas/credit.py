from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from printshop.schemas.base import BaseCreateSchema, BaseResponseSchema, DecimalAsFloat


class CreditTopUp(BaseCreateSchema):
    whatsapp_number: str = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1)
    customer_email: Optional[str] = None
    amount: Decimal = Field(..., gt=0)


class CreditAdjustment(BaseCreateSchema):
    """Signed change to the balance of the customer behind an order."""
    amount: Decimal


class CreditResponse(BaseResponseSchema):
    whatsapp_number: str
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    balance: DecimalAsFloat
    used_amount: DecimalAsFloat


class CreditListResponse(BaseModel):
    success: bool = True
    customers: List[CreditResponse]


class CreditTopUpResponse(BaseModel):
    success: bool = True
    message: str
    customer: CreditResponse
