from fastapi import APIRouter

from printshop.api.deps import DB, CurrentBranch
from printshop.schemas.credit import (
    CreditAdjustment,
    CreditListResponse,
    CreditResponse,
    CreditTopUp,
    CreditTopUpResponse,
)
from printshop.services.credit_service import CreditService


router = APIRouter(tags=["Credits"])


@router.get("/credits", response_model=CreditListResponse)
async def list_credits(db: DB, branch: CurrentBranch):
    service = CreditService(db)
    customers = await service.get_credits()
    return CreditListResponse(customers=[CreditResponse.model_validate(c) for c in customers])


@router.post("/credits", response_model=CreditTopUpResponse)
async def top_up_credit(data: CreditTopUp, db: DB, branch: CurrentBranch):
    service = CreditService(db)
    credit = await service.top_up(
        data.whatsapp_number,
        data.customer_name,
        data.amount,
        customer_email=data.customer_email,
    )
    return CreditTopUpResponse(
        message=f"Credit of {data.amount:.2f} added successfully",
        customer=CreditResponse.model_validate(credit),
    )


@router.get("/credits/order/{order_id}", response_model=CreditResponse)
async def get_order_credit(order_id: str, db: DB, branch: CurrentBranch):
    service = CreditService(db)
    return await service.get_for_order(order_id)


@router.post("/credits/order/{order_id}", response_model=CreditResponse)
async def adjust_order_credit(order_id: str, data: CreditAdjustment, db: DB, branch: CurrentBranch):
    """Signed balance change for the customer behind an order."""
    service = CreditService(db)
    return await service.adjust_for_order(order_id, data.amount)
