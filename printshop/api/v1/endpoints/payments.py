from fastapi import APIRouter, Query, status

from printshop.api.deps import DB, CurrentBranch
from printshop.schemas.payment import (
    PaymentCreate,
    PaymentCreateResponse,
    PaymentListResponse,
    PaymentResponse,
    PaymentTaskSummary,
)
from printshop.services.payment_service import PaymentService


router = APIRouter(tags=["Payments"])


@router.post("/payments", response_model=PaymentCreateResponse, status_code=status.HTTP_201_CREATED)
async def record_payment(data: PaymentCreate, db: DB, branch: CurrentBranch):
    """Record a payment; the task becomes PAID when its balance reaches zero."""
    service = PaymentService(db)
    payment, task = await service.record_payment(branch, data.model_dump())
    return PaymentCreateResponse(
        payment=PaymentResponse.model_validate(payment),
        task=PaymentTaskSummary(
            order_id=task.order_id,
            total_amount=task.total_amount,
            paid_amount=task.paid_amount,
            balance_due=task.balance_due,
            status=task.status,
        ),
    )


@router.get("/payments", response_model=PaymentListResponse)
async def list_payments(db: DB, branch: CurrentBranch, order_id: str = Query(..., min_length=1)):
    service = PaymentService(db)
    payments, total_paid = await service.get_payments(order_id)
    return PaymentListResponse(
        payments=[PaymentResponse.model_validate(p) for p in payments],
        total_paid=total_paid,
    )
