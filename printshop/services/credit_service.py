"""Credit Service: customer credit balances keyed by WhatsApp number."""
from typing import List, Optional
from decimal import Decimal
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from printshop.core.currency import add_currency, parse_currency, subtract_currency, ZERO
from printshop.core.exceptions import NotFound, ValidationFailed
from printshop.models.credit import Credit
from printshop.models.order import Order


logger = logging.getLogger(__name__)


class CreditService:
    """Service for the customer credit ledger."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_whatsapp(self, whatsapp_number: str) -> Optional[Credit]:
        result = await self.db.execute(
            select(Credit).where(Credit.whatsapp_number == whatsapp_number)
        )
        return result.scalar_one_or_none()

    async def get_credits(self) -> List[Credit]:
        result = await self.db.execute(select(Credit).order_by(Credit.customer_name))
        return list(result.scalars().all())

    async def top_up(
        self,
        whatsapp_number: str,
        customer_name: str,
        amount: Decimal,
        customer_email: Optional[str] = None,
    ) -> Credit:
        """Add credit, creating the customer record on first use."""
        amount = parse_currency(amount)
        if amount <= 0:
            raise ValidationFailed("Amount must be a positive number")

        credit = await self.get_by_whatsapp(whatsapp_number)
        if credit is None:
            credit = Credit(
                whatsapp_number=whatsapp_number,
                customer_name=customer_name,
                customer_email=customer_email or "",
                balance=amount,
                used_amount=ZERO,
            )
            self.db.add(credit)
        else:
            credit.balance = add_currency(credit.balance, amount)

        await self.db.flush()
        logger.info(f"Credit top-up of {amount} for {whatsapp_number}")
        return credit

    # ==================== ORDER-LINKED CREDIT ====================

    async def _order_with_whatsapp(self, order_id: str) -> Order:
        result = await self.db.execute(select(Order).where(Order.order_id == order_id))
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFound("Order not found")
        if not order.whatsapp_number:
            raise ValidationFailed("Order has no whatsapp number on file")
        return order

    async def _get_or_create_for_order(self, order: Order) -> Credit:
        credit = await self.get_by_whatsapp(order.whatsapp_number)
        if credit is None:
            credit = Credit(
                whatsapp_number=order.whatsapp_number,
                customer_name=order.customer_name,
                customer_email=order.customer_email,
                balance=ZERO,
                used_amount=ZERO,
            )
            self.db.add(credit)
            await self.db.flush()
        return credit

    async def get_for_order(self, order_id: str) -> Credit:
        """Credit record of the customer behind an order, created empty if absent."""
        order = await self._order_with_whatsapp(order_id)
        return await self._get_or_create_for_order(order)

    async def adjust_for_order(self, order_id: str, amount: Decimal) -> Credit:
        """
        Apply a signed change to the customer's balance.

        Negative amounts are spending and are added to ``used_amount``.
        The balance may not go below zero. Name and email follow the order.
        """
        order = await self._order_with_whatsapp(order_id)
        credit = await self._get_or_create_for_order(order)

        amount = parse_currency(amount)
        new_balance = add_currency(credit.balance, amount)
        if new_balance < 0:
            raise ValidationFailed(
                f"Insufficient credit balance ({credit.balance}) for a change of {amount}"
            )

        credit.balance = new_balance
        if amount < 0:
            credit.used_amount = add_currency(credit.used_amount, -amount)
        credit.customer_name = order.customer_name
        credit.customer_email = order.customer_email

        await self.db.flush()
        return credit

    async def debit_for_order(self, order: Order, amount: Decimal) -> Credit:
        """Spend credit to pay for an order. 400 when the balance is short."""
        if not order.whatsapp_number:
            raise ValidationFailed("Order has no whatsapp number on file for a credit payment")
        credit = await self.get_by_whatsapp(order.whatsapp_number)
        amount = parse_currency(amount)
        if credit is None or credit.balance < amount:
            available = credit.balance if credit else ZERO
            raise ValidationFailed(f"Insufficient credits: available {available}, required {amount}")

        credit.balance = subtract_currency(credit.balance, amount)
        credit.used_amount = add_currency(credit.used_amount, amount)
        await self.db.flush()
        logger.info(f"Debited {amount} credits from {order.whatsapp_number} for {order.order_id}")
        return credit
