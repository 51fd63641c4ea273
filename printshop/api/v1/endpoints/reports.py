from datetime import date
from typing import Optional

from fastapi import APIRouter

from printshop.api.deps import DB, CurrentBranch
from printshop.schemas.report import BranchMetricsResponse, SalesReportResponse
from printshop.services.report_service import ReportService


router = APIRouter(tags=["Reports"])


@router.get("/reports/sales", response_model=SalesReportResponse)
async def sales_report(
    db: DB,
    branch: CurrentBranch,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    """Per-branch revenue from completed and paid tasks. 504 when the query runs too long."""
    service = ReportService(db)
    return await service.sales_report(start_date, end_date)


@router.get("/metrics", response_model=BranchMetricsResponse)
async def branch_metrics(db: DB, branch: CurrentBranch):
    """Dashboard figures for the acting branch over the last 30 days."""
    service = ReportService(db)
    return await service.branch_metrics(branch)
