"""Customer order. Created once per order; the total may be corrected later."""
import uuid
from datetime import datetime, date, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Text, Boolean, DateTime, Date, Numeric, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from printshop.database import Base
from printshop.db_types import JSONType, StatusType, UUIDType
from printshop.models.task import TASK_STATUS_ALIASES, TaskStatus


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        Index('ix_order_branch_created', 'branch_id', 'created_at'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    order_id: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="<prefix><zero-padded number>, e.g. RAN0001"
    )

    # Customer
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    whatsapp_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True, index=True)

    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    images: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    # product, quantity, unit_price, total_waste
    order_items: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    advance_payment: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    send_to_main_branch: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    assign_task: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    branch_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("branches.id", ondelete="RESTRICT"),
        nullable=False
    )
    status: Mapped[str] = mapped_column(
        StatusType(TASK_STATUS_ALIASES),
        default=TaskStatus.INVOICED.value,
        nullable=False
    )

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
        return f"<Order(order_id='{self.order_id}')>"
