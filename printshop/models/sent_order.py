"""
SentOrder: mirror of a Task routed to the main branch.

The mirror carries status and payment fields so the main branch can act
on it. Handlers that mutate either side update both in the same
transaction. Receiving the order deletes the mirror.
"""
import uuid
from datetime import datetime, date, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Integer, Boolean, DateTime, Date, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from printshop.database import Base
from printshop.db_types import JSONType, StatusType, UUIDType
from printshop.models.task import TASK_STATUS_ALIASES, TaskStatus


class SentOrder(Base):
    __tablename__ = "sent_orders"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    order_id: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    order_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    expected_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    sent_branch_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("branches.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Branch that routed the order"
    )
    status: Mapped[str] = mapped_column(
        StatusType(TASK_STATUS_ALIASES),
        default=TaskStatus.SENT_TO_MAIN_BRANCH.value,
        nullable=False
    )
    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    images: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    products: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    invoice_created: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    invoice_data: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    advance_payment: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    full_payment: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    last_payment_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    payment_history: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

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
