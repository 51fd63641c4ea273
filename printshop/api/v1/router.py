from fastapi import APIRouter

from printshop.api.v1.endpoints import (
    auth,
    branches,
    orders,
    tasks,
    sent_orders,
    inventory,
    payments,
    credits,
    reports,
)


api_router = APIRouter(prefix="/api/v1")

# Access Control
api_router.include_router(auth.router, prefix="/auth")
api_router.include_router(branches.router)

# Order Lifecycle
api_router.include_router(orders.router)
api_router.include_router(tasks.router)
api_router.include_router(sent_orders.router)

# Stock
api_router.include_router(inventory.router)

# Money
api_router.include_router(payments.router)
api_router.include_router(credits.router)
api_router.include_router(reports.router)
