"""
Sent Order Service: payment and receipt of orders routed to the main branch.

Task and SentOrder are updated together inside the request transaction;
a failure anywhere rolls both back.
"""
from typing import List, Optional, Tuple
from datetime import datetime, timezone
import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from printshop.core.currency import parse_currency, to_float
from printshop.core.exceptions import BranchMismatch, NotFound, ValidationFailed
from printshop.models.branch import Branch
from printshop.models.order import Order
from printshop.models.sent_order import SentOrder
from printshop.models.task import (
    Task,
    TaskStatus,
    PaymentMethod,
    ChequeStatus,
    DEFERRED_PAYMENT_METHODS,
    FINISHED_STATUSES,
)
from printshop.services.inventory_service import InventoryService, CONSUME


logger = logging.getLogger(__name__)


class SentOrderService:
    """Service for SentOrder mirror operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_sent_order(self, order_id: str) -> SentOrder:
        result = await self.db.execute(select(SentOrder).where(SentOrder.order_id == order_id))
        sent_order = result.scalar_one_or_none()
        if sent_order is None:
            raise NotFound("Sent order not found")
        return sent_order

    async def _get_task(self, order_id: str) -> Task:
        result = await self.db.execute(select(Task).where(Task.order_id == order_id))
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFound("Associated task not found")
        return task

    async def _get_order(self, order_id: str) -> Optional[Order]:
        result = await self.db.execute(select(Order).where(Order.order_id == order_id))
        return result.scalar_one_or_none()

    @staticmethod
    def _check_branch(sent_order: SentOrder, branch: Branch) -> None:
        if sent_order.sent_branch_id != branch.id:
            raise BranchMismatch("This order is not sent to your branch")

    async def get_sent_orders(
        self,
        branch: Branch,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[SentOrder], int]:
        """The main branch sees every mirror; a sub branch only its own."""
        query = select(SentOrder)
        if not branch.is_main:
            query = query.where(SentOrder.sent_branch_id == branch.id)

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.db.scalar(count_query)

        query = query.order_by(SentOrder.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def complete_payment(self, branch: Branch, data: dict) -> Tuple[Task, str, str]:
        """
        Pay a sent order.

        Cash, card and online complete it; cheque and credits leave it
        Temporary Completed. Stock is consumed for every product line
        (quantity + waste) right away.

        Returns:
            (task, status, message)
        """
        paid_amount = parse_currency(data.get("paid_amount"))
        if paid_amount <= 0:
            raise ValidationFailed("Valid paid amount is required")

        order_id = data["order_id"]
        sent_order = await self._get_sent_order(order_id)
        self._check_branch(sent_order, branch)
        task = await self._get_task(order_id)
        if task.status in FINISHED_STATUSES:
            raise ValidationFailed(f"Order is already in '{task.status}' status")

        method = PaymentMethod(data["payment_method"]).value
        if method in DEFERRED_PAYMENT_METHODS:
            new_status = TaskStatus.TEMPORARY_COMPLETED.value
        else:
            new_status = TaskStatus.COMPLETED.value
        total_price = data.get("total_price")

        cheque_date = data.get("cheque_date")
        entry = {
            "amount": to_float(paid_amount),
            "method": method,
            "date": datetime.now(timezone.utc).isoformat(),
            "cheque_number": data.get("cheque_number"),
            "bank_name": data.get("bank_name"),
            "cheque_date": cheque_date.isoformat() if cheque_date else None,
            "bill_number": data.get("bill_number"),
        }

        task.status = new_status
        task.full_payment = paid_amount
        task.last_payment_method = method
        if method == PaymentMethod.CHEQUE.value:
            task.cheque_status = ChequeStatus.PENDING.value
        if total_price is not None:
            task.total_amount = parse_currency(total_price)
        task.append_payment(entry)

        sent_order.status = new_status
        sent_order.full_payment = paid_amount
        sent_order.last_payment_method = method
        if total_price is not None:
            sent_order.total_price = parse_currency(total_price)
        sent_order.payment_history = list(sent_order.payment_history or []) + [entry]

        order = await self._get_order(order_id)
        if order is not None:
            if total_price is not None:
                order.total_price = parse_currency(total_price)
            order.status = new_status

        await InventoryService(self.db).adjust_product_lines(task.products, branch.id, CONSUME)
        await self.db.flush()

        if method == PaymentMethod.CHEQUE.value:
            message = (
                f"Payment recorded with {method}. Order moved to Temporary Completed "
                f"status until payment is confirmed."
            )
        else:
            message = "Payment processed successfully"
        logger.info(f"Sent order {order_id} paid by {method} → {new_status}")
        return task, new_status, message

    async def create_invoice(self, branch: Branch, data: dict) -> Tuple[SentOrder, dict]:
        """
        Snapshot an invoice onto a sent order.

        The routing branch or the main branch may invoice. Replaces the
        mirror's product lines and total, and carries the total onto the
        Order.

        Returns:
            (sent_order, invoice_data)
        """
        products = data.get("products") or []
        if not products:
            raise ValidationFailed("Products are required")
        total_amount = parse_currency(data.get("total_amount"))
        if total_amount <= 0:
            raise ValidationFailed("Valid total amount is required")

        order_id = data["order_id"]
        sent_order = await self._get_sent_order(order_id)
        if not branch.is_main:
            self._check_branch(sent_order, branch)
        order = await self._get_order(order_id)
        if order is None:
            raise NotFound("Order not found")

        lines = [
            {
                "product_type": line["product_type"],
                "product_price": to_float(line.get("product_price")),
                "product_quantity": line.get("product_quantity") or 0,
                "total_waste": line.get("total_waste") or 0,
            }
            for line in products
        ]
        invoice = {
            "created_at": datetime.now(timezone.utc).isoformat(),
            "products": lines,
            "total_amount": to_float(total_amount),
            "customer_name": order.customer_name,
            "order_id": order_id,
            "created_by": branch.name,
        }

        sent_order.invoice_created = True
        sent_order.invoice_data = invoice
        sent_order.products = lines
        sent_order.total_price = total_amount
        if order.total_price != total_amount:
            order.total_price = total_amount

        await self.db.flush()
        logger.info(f"Invoice created for sent order {order_id} by '{branch.name}'")
        return sent_order, invoice

    async def finalize(self, branch: Branch, order_id: str) -> Task:
        """Move a Temporary Completed sent order to COMPLETED."""
        sent_order = await self._get_sent_order(order_id)
        if sent_order.status != TaskStatus.TEMPORARY_COMPLETED.value:
            raise ValidationFailed("Order is not in Temporary Completed status")
        self._check_branch(sent_order, branch)
        task = await self._get_task(order_id)
        if task.status != TaskStatus.TEMPORARY_COMPLETED.value:
            raise ValidationFailed("Order is not in Temporary Completed status")

        task.status = TaskStatus.COMPLETED.value
        sent_order.status = TaskStatus.COMPLETED.value
        order = await self._get_order(order_id)
        if order is not None:
            order.status = TaskStatus.COMPLETED.value

        await self.db.flush()
        logger.info(f"Sent order {order_id} finalized")
        return task

    async def receive(self, branch: Branch, order_id: str) -> None:
        """
        Receive a transferred order back.

        The task completes, ``needs_transfer`` clears and the mirror is
        deleted, leaving the task as the single record of the order.
        """
        sent_order = await self._get_sent_order(order_id)
        if sent_order.status != TaskStatus.SENT_TO_MAIN_BRANCH.value:
            raise ValidationFailed("Order is not in 'Sent to Main Branch' status")
        self._check_branch(sent_order, branch)
        task = await self._get_task(order_id)

        task.needs_transfer = False
        task.status = TaskStatus.COMPLETED.value
        order = await self._get_order(order_id)
        if order is not None:
            order.status = TaskStatus.COMPLETED.value

        await self.db.delete(sent_order)
        await self.db.flush()
        logger.info(f"Order {order_id} received by '{branch.name}'")
