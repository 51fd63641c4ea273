from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from printshop.schemas.base import DecimalAsFloat


class BranchSales(BaseModel):
    branch_id: UUID
    branch_name: str
    completed_orders: int
    revenue: DecimalAsFloat


class SalesReportResponse(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    branches: List[BranchSales]
    total_revenue: DecimalAsFloat
    total_orders: int


class BranchMetricsResponse(BaseModel):
    branch_id: UUID
    branch_name: str
    branch_type: str
    branch_location: Optional[str] = None
    window_start: date
    all_revenue: DecimalAsFloat
    completed_orders_revenue: DecimalAsFloat
    completed_tasks: int
    total_orders: int
    new_customers: int
    # None when the previous window had no orders
    growth_rate: Optional[float] = None
    total_waste: int
