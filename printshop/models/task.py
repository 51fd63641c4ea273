"""
Task model: the central mutable entity of an order's lifecycle.

STATUS FLOW:
━━━━━━━━━━━━
INVOICED → IN_PROGRESS → COMPLETED (immediate payment)
                       → Temporary Completed (cheque / credits)
                             → COMPLETED (cleared)
                             → Returned (cheque bounced)
Any → PAID once recorded payments cover the balance due.

"Sent to Main Branch" is a transfer sub-state carried by ``needs_transfer``
and a mirrored SentOrder row.
"""
import uuid
from datetime import datetime, date, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import String, Text, Boolean, DateTime, Date, Numeric, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from printshop.core.enum_utils import expand_with_aliases, enum_comment
from printshop.database import Base
from printshop.db_types import JSONType, StatusType, UUIDType


class TaskStatus(str, Enum):
    """Canonical task statuses."""
    INVOICED = "INVOICED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    PAID = "PAID"
    TEMPORARY_COMPLETED = "Temporary Completed"
    RETURNED = "Returned"
    SENT_TO_MAIN_BRANCH = "Sent to Main Branch"


# Legacy spellings still present in older rows
TASK_STATUS_ALIASES = {
    "Pending": TaskStatus.INVOICED.value,
    "In Progress": TaskStatus.IN_PROGRESS.value,
    "Completed": TaskStatus.COMPLETED.value,
    "Sent to Branch": TaskStatus.SENT_TO_MAIN_BRANCH.value,
}


def status_filter_values(status) -> List[str]:
    """Values to match in a status filter: canonical plus legacy spellings."""
    return expand_with_aliases(status, TASK_STATUS_ALIASES)


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    CHEQUE = "cheque"
    CREDITS = "credits"
    ONLINE = "online"


# Methods whose money is not in hand at completion time
DEFERRED_PAYMENT_METHODS = {PaymentMethod.CHEQUE.value, PaymentMethod.CREDITS.value}

# Statuses after which a task takes no further products, workers or completion
FINISHED_STATUSES = {
    TaskStatus.COMPLETED.value,
    TaskStatus.PAID.value,
    TaskStatus.TEMPORARY_COMPLETED.value,
}


class ChequeStatus(str, Enum):
    PENDING = "pending"
    CLEARED = "cleared"
    RETURNED = "returned"


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index('ix_task_branch_status', 'branch_id', 'status'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    order_id: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(String(20), default="normal", nullable=False)

    # product_type, product_price, product_quantity, total_waste
    products: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    branch_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("branches.id", ondelete="RESTRICT"),
        nullable=False
    )
    employee_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("employees.id", ondelete="SET NULL"),
        nullable=True
    )

    status: Mapped[str] = mapped_column(
        StatusType(TASK_STATUS_ALIASES),
        default=TaskStatus.INVOICED.value,
        nullable=False,
        comment=enum_comment(TaskStatus)
    )
    needs_transfer: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    start_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expected_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    artwork_image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    images: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    # Money
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    balance_due: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    advance_payment: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    full_payment: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    end_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    ready_for_payment: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    invoice_created: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    invoice_data: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    last_payment_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    cheque_status: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="pending, cleared, returned"
    )
    cheque_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    online_payment_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Ordered list of {amount, method, date, status, ...}
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

    def append_payment(self, entry: dict) -> None:
        """Append a payment history entry. Reassigns so the JSON column is flagged dirty."""
        self.payment_history = list(self.payment_history or []) + [entry]

    def __repr__(self) -> str:
        return f"<Task(order_id='{self.order_id}', status='{self.status}')>"
