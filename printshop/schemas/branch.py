from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field, field_validator

from printshop.core.enum_utils import VALID_BRANCH_TYPES, create_lowercase_validator
from printshop.models.branch import KNOWN_PRODUCTS
from printshop.schemas.base import BaseCreateSchema, BaseResponseSchema


class BranchCreate(BaseCreateSchema):
    name: str = Field(..., min_length=1, max_length=100)
    type: str = Field("sub", description="main or sub")
    location: Optional[str] = None
    contacts: List[str] = []
    allowed_products: Optional[List[str]] = None

    normalize_type = create_lowercase_validator('type', VALID_BRANCH_TYPES)

    @field_validator('type')
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in VALID_BRANCH_TYPES:
            raise ValueError(f"Branch type must be one of: {', '.join(sorted(VALID_BRANCH_TYPES))}")
        return v

    @field_validator('allowed_products')
    @classmethod
    def validate_allowed_products(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        cleaned = [p.strip().lower() for p in v]
        unknown = [p for p in cleaned if p not in KNOWN_PRODUCTS]
        if unknown:
            raise ValueError(f"Unknown products: {', '.join(unknown)}")
        return cleaned


class BranchResponse(BaseResponseSchema):
    id: UUID
    name: str
    type: str
    location: Optional[str] = None
    contacts: List[str] = []
    allowed_products: List[str] = []
    is_active: bool
    created_at: datetime


class BranchLoginCreate(BaseCreateSchema):
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6)


class BranchLoginResponse(BaseResponseSchema):
    id: UUID
    username: str
    branch_id: UUID


class EmployeeCreate(BaseCreateSchema):
    name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = None
    role: Optional[str] = None


class EmployeeResponse(BaseResponseSchema):
    id: UUID
    name: str
    phone: Optional[str] = None
    role: Optional[str] = None
    branch_id: UUID
    is_active: bool
