"""Order Service for order intake and the task lifecycle."""
from typing import Optional, List, Tuple
from datetime import datetime, date, timezone
from decimal import Decimal
import asyncio
import logging
import random
import uuid

from sqlalchemy import select, func, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from printshop.config import settings
from printshop.core.currency import add_currency, parse_currency, subtract_currency, to_float, ZERO
from printshop.core.exceptions import BranchMismatch, Conflict, NotFound, ValidationFailed
from printshop.models.branch import Branch, Employee
from printshop.models.order import Order
from printshop.models.sent_order import SentOrder
from printshop.models.task import (
    Task,
    TaskStatus,
    PaymentMethod,
    ChequeStatus,
    DEFERRED_PAYMENT_METHODS,
    FINISHED_STATUSES,
    status_filter_values,
)
from printshop.services.credit_service import CreditService
from printshop.services.inventory_service import InventoryService, CONSUME
from printshop.services.order_counter_service import OrderCounterService


logger = logging.getLogger(__name__)


def product_total(products: List[dict]) -> Decimal:
    """Sum of price * quantity over task product lines."""
    total = ZERO
    for line in products or []:
        price = parse_currency(line.get("product_price"))
        quantity = parse_currency(line.get("product_quantity"))
        total += price * quantity
    return parse_currency(total)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class OrderService:
    """Service for order and task lifecycle operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== LOOKUPS ====================

    async def get_order_by_order_id(self, order_id: str) -> Optional[Order]:
        result = await self.db.execute(select(Order).where(Order.order_id == order_id))
        return result.scalar_one_or_none()

    async def get_task(self, task_id: uuid.UUID, branch: Branch) -> Task:
        """Task owned by the acting branch. 404 when missing, 403 when foreign."""
        task = await self.db.get(Task, task_id)
        if task is None:
            raise NotFound("Task not found")
        if task.branch_id != branch.id:
            raise BranchMismatch("This task does not belong to your branch")
        return task

    async def get_task_by_order_id(self, order_id: str) -> Optional[Task]:
        result = await self.db.execute(select(Task).where(Task.order_id == order_id))
        return result.scalar_one_or_none()

    # ==================== ORDER METHODS ====================

    async def _issue_unique_order_id(self, branch: Branch) -> str:
        """
        Issue an order ID not already used by an order.

        The counter is atomic, so a collision means legacy or fallback IDs
        overlap with the sequence. Regenerates with a jittered delay.
        """
        counter = OrderCounterService(self.db)
        order_id = await counter.next_order_id(branch.name)
        if await self.get_order_by_order_id(order_id) is None:
            return order_id

        logger.warning(f"Generated order ID {order_id} already exists, regenerating")
        for attempt in range(1, settings.ORDER_ID_COLLISION_RETRIES + 1):
            delay_ms = settings.ORDER_ID_COLLISION_JITTER_MS * attempt + random.randint(
                0, settings.ORDER_ID_COLLISION_JITTER_MS
            )
            await asyncio.sleep(delay_ms / 1000)
            order_id = await counter.next_order_id(branch.name)
            if await self.get_order_by_order_id(order_id) is None:
                return order_id
            logger.warning(f"Order ID {order_id} also taken (attempt {attempt})")

        raise Conflict("Unable to generate unique order ID after multiple attempts. Please try again.")

    async def create_order(self, branch: Branch, data: dict) -> Tuple[Order, Task]:
        """
        Create an order and its task.

        When ``send_to_main_branch`` is set the task starts IN_PROGRESS with
        ``needs_transfer`` and a SentOrder mirror is created alongside.
        """
        expected_end_date: Optional[date] = data.get("expected_end_date")
        if not expected_end_date:
            raise ValidationFailed("Expected completion date is required")

        order_id = await self._issue_unique_order_id(branch)

        total_amount = parse_currency(data.get("full_payment")) or parse_currency(data.get("total_price"))
        advance = parse_currency(data.get("advance_payment"))
        balance_due = subtract_currency(total_amount, advance)
        send_to_main = bool(data.get("send_to_main_branch"))
        order_date = data.get("order_date") or _now().date()
        items = data.get("order_items") or []
        images = list(data.get("images") or [])

        order = Order(
            order_id=order_id,
            customer_name=data["customer_name"],
            customer_email=data.get("customer_email") or "",
            whatsapp_number=data.get("whatsapp_number"),
            category=data.get("category"),
            description=data.get("description"),
            images=images,
            order_items=[
                {
                    "product": item["product"],
                    "quantity": item["quantity"],
                    "unit_price": to_float(item.get("unit_price")),
                    "total_waste": item.get("total_waste") or 0,
                }
                for item in items
            ],
            total_price=total_amount,
            advance_payment=advance,
            send_to_main_branch=send_to_main,
            assign_task=data.get("assign_task", True),
            order_date=order_date,
            due_date=expected_end_date,
            branch_id=branch.id,
            status=TaskStatus.INVOICED.value,
        )

        products = [
            {
                "product_type": item["product"],
                "product_price": to_float(item.get("unit_price")),
                "product_quantity": item["quantity"],
                "total_waste": item.get("total_waste") or 0,
            }
            for item in items
        ]
        task = Task(
            order_id=order_id,
            name=data["customer_name"] or f"Order {order_id}",
            description=data.get("description") or "No description",
            priority="normal",
            products=products,
            branch_id=branch.id,
            status=TaskStatus.IN_PROGRESS.value if send_to_main else TaskStatus.INVOICED.value,
            needs_transfer=send_to_main,
            start_time=_now(),
            expected_end_date=expected_end_date,
            images=images,
            total_amount=total_amount,
            paid_amount=advance,
            balance_due=balance_due,
            advance_payment=advance,
            full_payment=total_amount,
            invoice_created=True,
            invoice_data={
                "order_id": order_id,
                "customer_name": data["customer_name"],
                "customer_email": data.get("customer_email"),
                "whatsapp_number": data.get("whatsapp_number"),
                "total_amount": to_float(total_amount),
                "advance_payment": to_float(advance),
                "balance_due": to_float(balance_due),
                "created_at": _now().isoformat(),
            },
            payment_history=[],
        )
        self.db.add(order)
        self.db.add(task)

        if send_to_main:
            self.db.add(
                SentOrder(
                    order_id=order_id,
                    customer_name=data["customer_name"],
                    order_date=order_date,
                    expected_end_date=expected_end_date,
                    total_price=total_amount,
                    sent_branch_id=branch.id,
                    status=TaskStatus.SENT_TO_MAIN_BRANCH.value,
                    images=images,
                    products=list(products),
                    level=1,
                    invoice_created=False,
                    full_payment=total_amount,
                    advance_payment=advance,
                    payment_history=[],
                )
            )

        try:
            await self.db.flush()
        except IntegrityError as e:
            logger.error(f"Order {order_id} could not be stored: {e}")
            raise Conflict("Order ID already exists. Please try again.")

        logger.info(
            f"Created order {order_id} for branch '{branch.name}'"
            f"{' (sent to main branch)' if send_to_main else ''}"
        )
        return order, task

    async def get_orders(
        self,
        branch: Branch,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Order], int]:
        """Branch orders, newest first."""
        query = select(Order).where(Order.branch_id == branch.id)

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.db.scalar(count_query)

        query = query.order_by(Order.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    # ==================== TASK METHODS ====================

    async def get_tasks(
        self,
        branch: Branch,
        status: Optional[str] = None,
        needs_transfer: Optional[bool] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Task], int]:
        """Branch tasks. Status filters match legacy spellings too."""
        conditions = [Task.branch_id == branch.id]
        if status:
            conditions.append(Task.status.in_(status_filter_values(status)))
        if needs_transfer is not None:
            conditions.append(Task.needs_transfer == needs_transfer)
        query = select(Task).where(and_(*conditions))

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.db.scalar(count_query)

        query = query.order_by(Task.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def select_product(
        self,
        branch: Branch,
        task_id: uuid.UUID,
        new_product: dict,
        advance_payment: Optional[Decimal] = None,
        full_payment: Optional[Decimal] = None,
    ) -> Task:
        """Merge a product line into the task. Same product type adds quantity."""
        task = await self.get_task(task_id, branch)

        products = [dict(line) for line in (task.products or [])]
        for line in products:
            if line.get("product_type") == new_product["product_type"]:
                line["product_quantity"] = (line.get("product_quantity") or 0) + new_product["product_quantity"]
                if new_product.get("product_price"):
                    line["product_price"] = to_float(new_product["product_price"])
                if new_product.get("total_waste") is not None:
                    line["total_waste"] = new_product["total_waste"]
                break
        else:
            products.append(
                {
                    "product_type": new_product["product_type"],
                    "product_price": to_float(new_product.get("product_price")),
                    "product_quantity": new_product["product_quantity"],
                    "total_waste": new_product.get("total_waste") or 0,
                }
            )
        task.products = products

        if advance_payment:
            task.advance_payment = parse_currency(advance_payment)
        if full_payment:
            task.full_payment = parse_currency(full_payment)

        if task.status == TaskStatus.INVOICED.value:
            task.status = TaskStatus.IN_PROGRESS.value

        await self.db.flush()
        return task

    async def assign_task(self, branch: Branch, task_id: uuid.UUID, employee_id: uuid.UUID) -> Task:
        task = await self.get_task(task_id, branch)
        employee = await self.db.get(Employee, employee_id)
        if employee is None:
            raise NotFound("Employee not found")
        if task.status in FINISHED_STATUSES:
            raise ValidationFailed(f"Cannot assign a worker to a task in '{task.status}' status")

        task.employee_id = employee.id
        task.status = TaskStatus.IN_PROGRESS.value
        if task.start_time is None:
            task.start_time = _now()
        await self.db.flush()
        logger.info(f"Assigned task {task.order_id} to employee {employee.name}")
        return task

    async def send_to_main(self, branch: Branch, task_id: uuid.UUID) -> Task:
        """Route a task to the main branch by creating its SentOrder mirror."""
        task = await self.get_task(task_id, branch)

        existing = await self.db.scalar(select(SentOrder.id).where(SentOrder.order_id == task.order_id))
        if existing is not None:
            raise Conflict(f"Order {task.order_id} has already been sent to the main branch")

        order = await self.get_order_by_order_id(task.order_id)

        task.needs_transfer = True
        if task.status == TaskStatus.INVOICED.value:
            task.status = TaskStatus.IN_PROGRESS.value
        if order is not None:
            order.send_to_main_branch = True

        self.db.add(
            SentOrder(
                order_id=task.order_id,
                customer_name=order.customer_name if order else "Unknown",
                order_date=order.order_date if order else _now().date(),
                expected_end_date=task.expected_end_date,
                total_price=order.total_price if order else ZERO,
                sent_branch_id=branch.id,
                status=TaskStatus.SENT_TO_MAIN_BRANCH.value,
                level=1,
                images=list(task.images or []),
                products=list(task.products or []),
                invoice_created=task.invoice_created,
                invoice_data=task.invoice_data,
                full_payment=task.full_payment or ZERO,
                advance_payment=task.advance_payment,
                last_payment_method=task.last_payment_method,
                payment_history=list(task.payment_history or []),
            )
        )
        await self.db.flush()
        logger.info(f"Task {task.order_id} sent to main branch from '{branch.name}'")
        return task

    async def mark_ready_for_payment(self, branch: Branch, task_id: uuid.UUID) -> Task:
        task = await self.get_task(task_id, branch)
        task.ready_for_payment = True
        await self.db.flush()
        return task

    async def update_description(self, branch: Branch, task_id: uuid.UUID, description: str) -> Task:
        task = await self.get_task(task_id, branch)
        task.description = description
        await self.db.flush()
        return task

    async def complete_task(self, branch: Branch, data: dict) -> Tuple[Task, str]:
        """
        Take a payment for a task and complete it once fully paid.

        Partial payments only raise the advance. A full payment by cash,
        card or online completes the task; cheque and credits move it to
        Temporary Completed until cleared. Every full payment consumes
        stock for each product line (quantity + waste).
        """
        method = PaymentMethod(data.get("payment_method") or PaymentMethod.CASH.value).value

        if method == PaymentMethod.CHEQUE.value and not (data.get("cheque_number") and data.get("bank_name")):
            raise ValidationFailed("Cheque number and bank name are required for cheque payments")
        if method == PaymentMethod.ONLINE.value and not (data.get("bill_number") and data.get("bank_name")):
            raise ValidationFailed("Bill number and bank name are required for online payments")

        task = await self.get_task(data["task_id"], branch)
        if task.status in FINISHED_STATUSES:
            raise ValidationFailed(f"Task is already in '{task.status}' status")
        order = await self.get_order_by_order_id(task.order_id)
        if order is None:
            raise NotFound("Order not found")

        lines_total = product_total(task.products)
        final_total = parse_currency(data.get("total_price")) or max(parse_currency(order.total_price), lines_total)
        if not order.total_price:
            order.total_price = final_total

        additional = parse_currency(data.get("paid_amount"))
        total_paid = add_currency(order.advance_payment, additional)

        if method == PaymentMethod.CREDITS.value and additional > 0:
            await CreditService(self.db).debit_for_order(order, additional)

        entry = {
            "method": method,
            "amount": to_float(additional),
            "date": _now().isoformat(),
        }
        if method == PaymentMethod.CHEQUE.value:
            cheque_date = data.get("cheque_date") or _now().date()
            entry["cheque_details"] = {
                "cheque_number": data.get("cheque_number"),
                "bank_name": data.get("bank_name"),
                "cheque_date": cheque_date.isoformat(),
                "status": ChequeStatus.PENDING.value,
            }
        if method == PaymentMethod.ONLINE.value:
            entry["online_details"] = {
                "bill_number": data.get("bill_number"),
                "bank_name": data.get("bank_name"),
                "status": "pending",
            }
            task.online_payment_status = "pending"
        task.append_payment(entry)

        if total_paid < final_total:
            order.advance_payment = total_paid
            task.advance_payment = total_paid
            task.paid_amount = total_paid
            task.total_amount = final_total
            task.balance_due = subtract_currency(final_total, total_paid)
            await self.db.flush()
            logger.info(f"Partial payment of {additional} recorded for {task.order_id}")
            return task, "Partial payment recorded."

        order.advance_payment = final_total
        task.total_amount = final_total
        task.paid_amount = final_total
        task.balance_due = ZERO
        task.full_payment = final_total
        task.end_price = final_total
        task.end_time = _now()
        task.last_payment_method = method

        if method in DEFERRED_PAYMENT_METHODS:
            task.status = TaskStatus.TEMPORARY_COMPLETED.value
            if method == PaymentMethod.CHEQUE.value:
                task.cheque_status = ChequeStatus.PENDING.value
            kind = "cheque" if method == PaymentMethod.CHEQUE.value else "credit"
            message = f"Full payment received → task moved to Temporary Completed (pending {kind} clearance)."
        else:
            task.status = TaskStatus.COMPLETED.value
            message = "Payment completed and task marked as Completed."
        order.status = task.status

        await InventoryService(self.db).adjust_product_lines(task.products, branch.id, CONSUME)
        await self.db.flush()
        logger.info(f"Task {task.order_id} paid in full by {method} → {task.status}")
        return task, message
