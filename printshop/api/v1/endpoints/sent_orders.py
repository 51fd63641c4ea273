from fastapi import APIRouter, Query

from printshop.api.deps import DB, CurrentBranch
from printshop.models.task import TaskStatus
from printshop.schemas.sent_order import (
    ReceiveResponse,
    SentOrderActionResponse,
    SentOrderIdRequest,
    SentOrderInvoiceRequest,
    SentOrderInvoiceResponse,
    SentOrderListResponse,
    SentOrderPaymentRequest,
    SentOrderResponse,
)
from printshop.schemas.task import TaskResponse
from printshop.services.sent_order_service import SentOrderService


router = APIRouter(tags=["Sent Orders"])


@router.get("/sent-orders", response_model=SentOrderListResponse)
async def list_sent_orders(
    db: DB,
    branch: CurrentBranch,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    service = SentOrderService(db)
    items, total = await service.get_sent_orders(branch, skip=skip, limit=limit)
    return SentOrderListResponse(
        items=[SentOrderResponse.model_validate(s) for s in items],
        total=total,
    )


@router.put("/sent-orders/complete", response_model=SentOrderActionResponse)
async def pay_sent_order(data: SentOrderPaymentRequest, db: DB, branch: CurrentBranch):
    """Pay a sent order and consume its stock."""
    service = SentOrderService(db)
    task, new_status, message = await service.complete_payment(branch, data.model_dump())
    return SentOrderActionResponse(
        status=new_status,
        message=message,
        task=TaskResponse.model_validate(task),
    )


@router.post("/sent-orders/complete", response_model=SentOrderActionResponse)
async def finalize_sent_order(data: SentOrderIdRequest, db: DB, branch: CurrentBranch):
    """Mark a Temporary Completed sent order as fully completed."""
    service = SentOrderService(db)
    task = await service.finalize(branch, data.order_id)
    return SentOrderActionResponse(
        status=TaskStatus.COMPLETED.value,
        message="Order has been marked as fully completed",
        task=TaskResponse.model_validate(task),
    )


@router.put("/sent-orders/create-invoice", response_model=SentOrderInvoiceResponse)
async def create_sent_order_invoice(data: SentOrderInvoiceRequest, db: DB, branch: CurrentBranch):
    service = SentOrderService(db)
    sent_order, invoice = await service.create_invoice(branch, data.model_dump())
    return SentOrderInvoiceResponse(
        message="Invoice created successfully",
        sent_order=SentOrderResponse.model_validate(sent_order),
        invoice=invoice,
    )


@router.post("/sent-orders/receive", response_model=ReceiveResponse)
async def receive_sent_order(data: SentOrderIdRequest, db: DB, branch: CurrentBranch):
    service = SentOrderService(db)
    await service.receive(branch, data.order_id)
    return ReceiveResponse(success=True, message="Order received successfully")
