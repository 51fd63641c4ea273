"""SQLAlchemy models. Importing this package registers every table on Base.metadata."""
from printshop.models.branch import Branch, BranchLogin, BranchType, Employee
from printshop.models.order_counter import OrderCounter
from printshop.models.task import (
    Task,
    TaskStatus,
    TASK_STATUS_ALIASES,
    PaymentMethod,
    ChequeStatus,
    DEFERRED_PAYMENT_METHODS,
    status_filter_values,
)
from printshop.models.order import Order
from printshop.models.sent_order import SentOrder
from printshop.models.inventory import InventoryItem, Product, StockStatus
from printshop.models.credit import Credit
from printshop.models.payment import Payment

__all__ = [
    "Branch",
    "BranchLogin",
    "BranchType",
    "Employee",
    "OrderCounter",
    "Task",
    "TaskStatus",
    "TASK_STATUS_ALIASES",
    "PaymentMethod",
    "ChequeStatus",
    "DEFERRED_PAYMENT_METHODS",
    "status_filter_values",
    "Order",
    "SentOrder",
    "InventoryItem",
    "Product",
    "StockStatus",
    "Credit",
    "Payment",
]
