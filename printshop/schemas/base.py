"""
Base Schema Classes for Pydantic Models

This module provides base classes that handle common patterns like UUID
serialization and money output, ensuring consistency across all response
schemas.

RULE: All response schemas that use `from_attributes=True` MUST inherit from BaseResponseSchema.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, PlainSerializer


# Money is Decimal internally and a JSON number on the wire
DecimalAsFloat = Annotated[Decimal, PlainSerializer(lambda x: float(x), return_type=float)]
OptionalDecimalAsFloat = Annotated[
    Optional[Decimal],
    PlainSerializer(lambda x: float(x) if x is not None else None, return_type=Optional[float]),
]


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models.

    Features:
    - Automatically handles UUID → string serialization in JSON
    - Enables from_attributes for ORM compatibility
    - Consistent datetime serialization

    Usage:
        class InventoryItemResponse(BaseResponseSchema):
            id: UUID
            name: str
            quantity: int
    """
    model_config = ConfigDict(
        from_attributes=True,
        json_encoders={
            UUID: str,
            datetime: lambda v: v.isoformat() if v else None,
        },
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """
    Base class for create/input schemas.

    These schemas accept string UUIDs from the frontend and convert to UUID objects.
    """
    model_config = ConfigDict(
        # Allow extra fields to be ignored (forward compatibility)
        extra='ignore',
    )


class BaseUpdateSchema(BaseModel):
    """
    Base class for update/action schemas.

    All fields are optional by default for partial updates.
    """
    model_config = ConfigDict(
        extra='ignore',
    )
