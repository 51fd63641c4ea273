"""
Per-branch order counter.

One row per normalized (lower-cased, trimmed) branch name. The row is
created on the first order for a branch and incremented atomically by
``OrderCounterService.next_order_id``; ``last_order_number`` only grows.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from printshop.database import Base
from printshop.db_types import UUIDType


class OrderCounter(Base):
    __tablename__ = "order_counters"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    branch_name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        comment="Lower-cased, trimmed branch name"
    )
    branch_prefix: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        comment="2-3 character prefix derived from the branch name"
    )
    last_order_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0
    )
    last_order_id: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<OrderCounter({self.branch_name}: {self.branch_prefix}{self.last_order_number})>"
