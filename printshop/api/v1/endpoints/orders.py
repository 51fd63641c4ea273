from fastapi import APIRouter, Query, status

from printshop.api.deps import DB, CurrentBranch
from printshop.schemas.order import (
    NextOrderIdResponse,
    OrderCreate,
    OrderCreateResponse,
    OrderListResponse,
    OrderResponse,
)
from printshop.schemas.task import TaskResponse
from printshop.services.order_counter_service import OrderCounterService
from printshop.services.order_service import OrderService


router = APIRouter(tags=["Orders"])


@router.post("/orders", response_model=OrderCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_order(data: OrderCreate, db: DB, branch: CurrentBranch):
    """
    Create an order and its task with a freshly issued order ID.

    Orders flagged ``send_to_main_branch`` also get a SentOrder mirror.
    """
    service = OrderService(db)
    order, task = await service.create_order(branch, data.model_dump())
    return OrderCreateResponse(
        order=OrderResponse.model_validate(order),
        task=TaskResponse.model_validate(task),
        generated_order_id=order.order_id,
    )


@router.get("/orders/next-id", response_model=NextOrderIdResponse)
async def preview_next_order_id(db: DB, branch: CurrentBranch):
    """Preview the next order ID for the acting branch without consuming it."""
    service = OrderCounterService(db)
    return await service.get_branch_status(branch.name)


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    db: DB,
    branch: CurrentBranch,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    service = OrderService(db)
    orders, total = await service.get_orders(branch, skip=skip, limit=limit)
    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in orders],
        total=total,
    )
