from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from printshop.schemas.base import BaseCreateSchema


class LoginRequest(BaseCreateSchema):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class BranchIdentity(BaseModel):
    """Who the current token speaks for."""
    branch_id: UUID
    branch_name: str
    branch_type: str
    username: Optional[str] = None


class LoginResponse(BaseModel):
    success: bool = True
    user: BranchIdentity
