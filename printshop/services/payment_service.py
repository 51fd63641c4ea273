"""
Payment Service: recorded payments and reconciliation of deferred payments.

CHEQUE RECONCILIATION:
    Temporary Completed ──successful──> COMPLETED   (stock untouched)
                        ──return──────> Returned    (payment reversed, stock restored)
"""
from typing import List, Optional, Tuple
from datetime import datetime, timezone
from decimal import Decimal
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from printshop.config import settings
from printshop.core.currency import add_currency, parse_currency, subtract_currency, to_float, ZERO
from printshop.core.exceptions import NotFound, ValidationFailed
from printshop.models.branch import Branch
from printshop.models.order import Order
from printshop.models.payment import Payment
from printshop.models.sent_order import SentOrder
from printshop.models.task import Task, TaskStatus, PaymentMethod, ChequeStatus
from printshop.services.inventory_service import InventoryService, RESTORE
from printshop.services.order_service import OrderService


logger = logging.getLogger(__name__)

CHEQUE_ACTIONS = ("successful", "return")

# History markers left by credit payments recorded through the cheque form
CREDIT_ADJUSTMENT_CHEQUE = "CREDIT_ADJUSTMENT"
INTERNAL_BANK = "INTERNAL"


def _paid_by_credit(task: Task) -> bool:
    if task.last_payment_method == PaymentMethod.CREDITS.value:
        return True
    history = task.payment_history or []
    if any(entry.get("method") in ("credits", "credit") for entry in history):
        return True
    if task.last_payment_method == PaymentMethod.CHEQUE.value:
        for entry in history:
            details = entry.get("cheque_details") or entry
            if (
                details.get("cheque_number") == CREDIT_ADJUSTMENT_CHEQUE
                or details.get("bank_name") == INTERNAL_BANK
            ):
                return True
    return False


class PaymentService:
    """Service for payments and deferred-payment reconciliation."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.orders = OrderService(db)

    async def _order_for(self, task: Task) -> Order:
        order = await self.orders.get_order_by_order_id(task.order_id)
        if order is None:
            raise NotFound("Order not found")
        return order

    async def _sent_order_for(self, task: Task) -> Optional[SentOrder]:
        result = await self.db.execute(select(SentOrder).where(SentOrder.order_id == task.order_id))
        return result.scalar_one_or_none()

    # ==================== CHEQUE STATUS ====================

    async def update_cheque_status(
        self,
        branch: Branch,
        task_id: uuid.UUID,
        action: str,
        notes: Optional[str] = None,
    ) -> Tuple[Task, str]:
        """
        Resolve a pending cheque.

        ``successful`` completes the task. ``return`` reverses the cheque
        amount (full payment minus the advance paid before it) as a negative
        history entry, reopens the balance for payment and restores stock.
        Waste is restored only when RESTORE_WASTE_ON_CHEQUE_RETURN is set.
        """
        if action not in CHEQUE_ACTIONS:
            raise ValidationFailed("Invalid action. Must be 'successful' or 'return'")

        task = await self.orders.get_task(task_id, branch)
        if task.status != TaskStatus.TEMPORARY_COMPLETED.value:
            raise ValidationFailed("Task is not in temporary completed status")
        order = await self._order_for(task)
        sent_order = await self._sent_order_for(task)

        if action == "successful":
            task.status = TaskStatus.COMPLETED.value
            task.cheque_status = ChequeStatus.CLEARED.value
            task.cheque_notes = notes or "Cheque cleared successfully"
            order.status = TaskStatus.COMPLETED.value
            if sent_order is not None:
                sent_order.status = TaskStatus.COMPLETED.value
            message = "Cheque cleared successfully. Task marked as Completed."
        else:
            notes = notes or "Cheque returned by bank"
            # task.advance_payment still holds what was paid before the cheque
            advance = task.advance_payment or ZERO
            reversed_amount = subtract_currency(task.full_payment or ZERO, advance)

            task.status = TaskStatus.RETURNED.value
            task.cheque_status = ChequeStatus.RETURNED.value
            task.cheque_notes = notes
            task.full_payment = None
            task.end_price = None
            task.end_time = None
            task.ready_for_payment = True
            task.paid_amount = advance
            task.balance_due = subtract_currency(task.total_amount, advance)
            order.advance_payment = advance
            reversal = {
                "method": PaymentMethod.CHEQUE.value,
                "amount": -to_float(reversed_amount),
                "date": datetime.now(timezone.utc).isoformat(),
                "status": ChequeStatus.RETURNED.value,
                "notes": notes,
            }
            task.append_payment(reversal)
            order.status = TaskStatus.RETURNED.value
            if sent_order is not None:
                sent_order.status = TaskStatus.RETURNED.value
                sent_order.full_payment = None
                sent_order.payment_history = list(sent_order.payment_history or []) + [reversal]

            await InventoryService(self.db).adjust_product_lines(
                task.products,
                branch.id,
                RESTORE,
                include_waste=settings.RESTORE_WASTE_ON_CHEQUE_RETURN,
            )
            message = "Cheque returned. Task moved to Returned; ready for new payment."

        await self.db.flush()
        logger.info(f"Cheque for {task.order_id} marked {action}")
        return task, message

    # ==================== CREDIT COMPLETION ====================

    async def complete_credit(self, branch: Branch, task_id: uuid.UUID) -> Task:
        """Finalize a Temporary Completed task that was paid with credits."""
        task = await self.orders.get_task(task_id, branch)
        if task.status != TaskStatus.TEMPORARY_COMPLETED.value:
            raise ValidationFailed("Task is not in Temporary Completed status")
        if not _paid_by_credit(task):
            raise ValidationFailed("This task is not paid via credit")

        task.status = TaskStatus.COMPLETED.value
        task.cheque_status = None
        order = await self.orders.get_order_by_order_id(task.order_id)
        if order is not None:
            order.status = TaskStatus.COMPLETED.value
        sent_order = await self._sent_order_for(task)
        if sent_order is not None:
            sent_order.status = TaskStatus.COMPLETED.value

        await self.db.flush()
        return task

    # ==================== PAYMENT RECORDS ====================

    async def record_payment(self, branch: Branch, data: dict) -> Tuple[Payment, Task]:
        """
        Record a payment against a task's balance.

        The amount must be positive and may not exceed the balance due. The
        task is PAID once the balance reaches zero.
        """
        amount = parse_currency(data.get("amount"))
        if amount <= 0:
            raise ValidationFailed("Payment amount must be greater than 0")

        task = await self.orders.get_task_by_order_id(data["order_id"])
        if task is None:
            raise NotFound("Order not found")

        balance_due = (
            parse_currency(task.balance_due)
            if task.balance_due is not None
            else parse_currency(task.total_amount)
        )
        if amount > balance_due:
            raise ValidationFailed(f"Payment amount ({amount}) exceeds balance due ({balance_due})")

        payment_type = PaymentMethod(data["payment_type"]).value
        payment_date = data.get("payment_date") or datetime.now(timezone.utc)
        payment = Payment(
            order_id=task.order_id,
            amount=amount,
            payment_type=payment_type,
            payment_date=payment_date,
            notes=data.get("notes"),
            received_by=data.get("received_by"),
            cheque_number=data.get("cheque_number"),
            transaction_id=data.get("transaction_id"),
            branch_id=branch.id,
            cheque_status="PENDING" if payment_type == PaymentMethod.CHEQUE.value else None,
        )
        self.db.add(payment)

        task.paid_amount = add_currency(task.paid_amount, amount)
        task.balance_due = subtract_currency(task.total_amount, task.paid_amount)
        if task.balance_due <= 0:
            task.status = TaskStatus.PAID.value
        task.append_payment(
            {
                "amount": to_float(amount),
                "payment_type": payment_type,
                "date": payment_date.isoformat(),
                "notes": data.get("notes"),
                "received_by": data.get("received_by"),
            }
        )

        await self.db.flush()
        logger.info(f"Recorded {payment_type} payment of {amount} for {task.order_id}")
        return payment, task

    async def get_payments(self, order_id: str) -> Tuple[List[Payment], Decimal]:
        result = await self.db.execute(
            select(Payment)
            .where(Payment.order_id == order_id)
            .order_by(Payment.created_at.desc())
        )
        payments = list(result.scalars().all())
        return payments, add_currency(*[p.amount for p in payments])
