"""Report Service: sales aggregates per branch and branch dashboard metrics."""
from typing import Optional
from datetime import date, datetime, time, timedelta, timezone
import asyncio
import logging

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from printshop.config import settings
from printshop.core.currency import add_currency, parse_currency, subtract_currency, ZERO
from printshop.core.exceptions import ReportTimeout
from printshop.models.branch import Branch
from printshop.models.order import Order
from printshop.models.task import Task, TaskStatus, status_filter_values
from printshop.services.inventory_service import line_quantity


logger = logging.getLogger(__name__)

# Statuses that count as revenue
SOLD_STATUSES = (
    status_filter_values(TaskStatus.COMPLETED)
    + status_filter_values(TaskStatus.PAID)
)

METRICS_WINDOW_DAYS = 30


class ReportService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _sales_by_branch(self, start_date: Optional[date], end_date: Optional[date]) -> dict:
        conditions = [Task.status.in_(SOLD_STATUSES)]
        if start_date:
            conditions.append(Task.created_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc))
        if end_date:
            conditions.append(Task.created_at <= datetime.combine(end_date, time.max, tzinfo=timezone.utc))

        query = (
            select(
                Branch.id,
                Branch.name,
                func.count(Task.id),
                func.coalesce(func.sum(func.coalesce(Task.end_price, Task.total_amount)), 0),
            )
            .join(Task, Task.branch_id == Branch.id)
            .where(and_(*conditions))
            .group_by(Branch.id, Branch.name)
            .order_by(Branch.name)
        )
        result = await self.db.execute(query)

        branches = []
        for branch_id, branch_name, count, revenue in result.all():
            branches.append(
                {
                    "branch_id": branch_id,
                    "branch_name": branch_name,
                    "completed_orders": count,
                    "revenue": parse_currency(revenue),
                }
            )
        return {
            "start_date": start_date,
            "end_date": end_date,
            "branches": branches,
            "total_revenue": add_currency(*[b["revenue"] for b in branches]) if branches else ZERO,
            "total_orders": sum(b["completed_orders"] for b in branches),
        }

    async def _bounded(self, work, label: str, timeout: Optional[float]) -> dict:
        timeout = timeout if timeout is not None else settings.REPORT_TIMEOUT_SECONDS
        try:
            return await asyncio.wait_for(work, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{label} timed out after {timeout}s")
            raise ReportTimeout(f"{label} did not finish within {timeout} seconds")

    async def sales_report(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        timeout: Optional[float] = None,
    ) -> dict:
        """Completed-task revenue and order counts per branch, bounded by a timeout."""
        return await self._bounded(self._sales_by_branch(start_date, end_date), "Sales report", timeout)

    # ==================== BRANCH METRICS ====================

    async def _branch_metrics(self, branch: Branch, today: date) -> dict:
        window_start = today - timedelta(days=METRICS_WINDOW_DAYS)
        previous_start = window_start - timedelta(days=METRICS_WINDOW_DAYS)
        window_start_at = datetime.combine(window_start, time.min, tzinfo=timezone.utc)

        in_window = and_(Order.branch_id == branch.id, Order.order_date >= window_start)
        all_revenue = await self.db.scalar(
            select(func.coalesce(func.sum(func.coalesce(Order.advance_payment, Order.total_price)), 0))
            .where(in_window)
        )
        total_orders = await self.db.scalar(select(func.count(Order.id)).where(in_window))
        new_customers = await self.db.scalar(
            select(func.count(func.distinct(Order.customer_email))).where(
                in_window,
                Order.customer_email.is_not(None),
                Order.customer_email != "",
            )
        )
        previous_orders = await self.db.scalar(
            select(func.count(Order.id)).where(
                Order.branch_id == branch.id,
                Order.order_date >= previous_start,
                Order.order_date < window_start,
            )
        )

        result = await self.db.execute(
            select(Task).where(
                Task.branch_id == branch.id,
                Task.status.in_(status_filter_values(TaskStatus.COMPLETED)),
                Task.created_at >= window_start_at,
            )
        )
        completed = list(result.scalars().all())

        # Collected at completion: final price less the advance taken at intake
        completed_revenue = add_currency(
            *[
                subtract_currency(t.end_price if t.end_price is not None else t.total_amount, t.advance_payment)
                for t in completed
            ]
        )
        total_waste = sum(
            line_quantity(line.get("total_waste")) for t in completed for line in t.products or []
        )

        growth_rate = None
        if previous_orders:
            growth_rate = round((total_orders - previous_orders) / previous_orders * 100, 1)

        return {
            "branch_id": branch.id,
            "branch_name": branch.name,
            "branch_type": branch.type,
            "branch_location": branch.location,
            "window_start": window_start,
            "all_revenue": parse_currency(all_revenue),
            "completed_orders_revenue": completed_revenue,
            "completed_tasks": len(completed),
            "total_orders": total_orders,
            "new_customers": new_customers,
            "growth_rate": growth_rate,
            "total_waste": total_waste,
        }

    async def branch_metrics(
        self,
        branch: Branch,
        today: Optional[date] = None,
        timeout: Optional[float] = None,
    ) -> dict:
        """Dashboard figures for one branch over the last 30 days."""
        today = today or datetime.now(timezone.utc).date()
        return await self._bounded(self._branch_metrics(branch, today), "Branch metrics", timeout)
