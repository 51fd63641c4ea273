from typing import Optional

from fastapi import APIRouter, Query

from printshop.api.deps import DB, CurrentBranch
from printshop.schemas.task import (
    AssignTaskRequest,
    ChequeStatusRequest,
    ChequeStatusResponse,
    CompleteTaskRequest,
    CompleteTaskResponse,
    SelectProductRequest,
    TaskActionResponse,
    TaskIdRequest,
    TaskListResponse,
    TaskResponse,
    UpdateDescriptionRequest,
)
from printshop.models.task import TaskStatus
from printshop.services.order_service import OrderService
from printshop.services.payment_service import PaymentService


router = APIRouter(tags=["Tasks"])


def _build_task_action_response(task, message: Optional[str] = None) -> TaskActionResponse:
    return TaskActionResponse(task=TaskResponse.model_validate(task), message=message)


@router.get("/tasks", response_model=TaskListResponse)
async def list_tasks(
    db: DB,
    branch: CurrentBranch,
    status: Optional[str] = Query(None, description="Canonical or legacy status"),
    needs_transfer: Optional[bool] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    service = OrderService(db)
    tasks, total = await service.get_tasks(
        branch, status=status, needs_transfer=needs_transfer, skip=skip, limit=limit
    )
    return TaskListResponse(items=[TaskResponse.model_validate(t) for t in tasks], total=total)


@router.put("/tasks/select-product", response_model=TaskActionResponse)
async def select_product(data: SelectProductRequest, db: DB, branch: CurrentBranch):
    service = OrderService(db)
    task = await service.select_product(
        branch,
        data.task_id,
        data.new_product.model_dump(),
        advance_payment=data.advance_payment,
        full_payment=data.full_payment,
    )
    return _build_task_action_response(task)


@router.put("/tasks/assign", response_model=TaskActionResponse)
async def assign_task(data: AssignTaskRequest, db: DB, branch: CurrentBranch):
    service = OrderService(db)
    task = await service.assign_task(branch, data.task_id, data.employee_id)
    return _build_task_action_response(task, "Worker assigned")


@router.put("/tasks/send-to-main", response_model=TaskActionResponse)
async def send_to_main(data: TaskIdRequest, db: DB, branch: CurrentBranch):
    service = OrderService(db)
    task = await service.send_to_main(branch, data.task_id)
    return _build_task_action_response(task, f"Order {task.order_id} sent to main branch")


@router.put("/tasks/ready-for-payment", response_model=TaskActionResponse)
async def ready_for_payment(data: TaskIdRequest, db: DB, branch: CurrentBranch):
    service = OrderService(db)
    task = await service.mark_ready_for_payment(branch, data.task_id)
    return _build_task_action_response(task, "Task is now ready for payment")


@router.put("/tasks/update-description", response_model=TaskActionResponse)
async def update_description(data: UpdateDescriptionRequest, db: DB, branch: CurrentBranch):
    service = OrderService(db)
    task = await service.update_description(branch, data.task_id, data.description)
    return _build_task_action_response(task, "Task description updated successfully")


@router.put("/tasks/complete", response_model=CompleteTaskResponse)
async def complete_task(data: CompleteTaskRequest, db: DB, branch: CurrentBranch):
    """Take a payment; completes the task once the order total is covered."""
    service = OrderService(db)
    task, message = await service.complete_task(branch, data.model_dump())
    return CompleteTaskResponse(
        task=TaskResponse.model_validate(task),
        message=message,
        is_temporary_completed=task.status == TaskStatus.TEMPORARY_COMPLETED.value,
    )


@router.put("/tasks/cheque-status", response_model=ChequeStatusResponse)
async def update_cheque_status(data: ChequeStatusRequest, db: DB, branch: CurrentBranch):
    """Clear (``successful``) or bounce (``return``) a pending cheque."""
    service = PaymentService(db)
    task, message = await service.update_cheque_status(branch, data.task_id, data.action, data.notes)
    return ChequeStatusResponse(
        task=TaskResponse.model_validate(task),
        message=message,
        action=data.action,
    )


@router.put("/tasks/complete-credit", response_model=TaskActionResponse)
async def complete_credit(data: TaskIdRequest, db: DB, branch: CurrentBranch):
    service = PaymentService(db)
    task = await service.complete_credit(branch, data.task_id)
    return _build_task_action_response(
        task, "Credit payment completed successfully. Task moved to Completed status."
    )
