from datetime import timedelta
from decimal import Decimal
import uuid

from sqlalchemy import select, text

from printshop.core.currency import add_currency, parse_currency, subtract_currency
from printshop.core.enum_utils import expand_with_aliases, normalize_legacy, normalize_to_lowercase
from printshop.core.security import create_access_token, verify_access_token
from printshop.models.task import TASK_STATUS_ALIASES, Task, TaskStatus, status_filter_values


# ==================== STATUS ALIASES ====================

def test_legacy_spellings_map_to_canonical():
    assert normalize_legacy("Pending", TASK_STATUS_ALIASES) == "INVOICED"
    assert normalize_legacy("In Progress", TASK_STATUS_ALIASES) == "IN_PROGRESS"
    assert normalize_legacy(TaskStatus.PAID, TASK_STATUS_ALIASES) == "PAID"
    assert normalize_legacy("Returned", TASK_STATUS_ALIASES) == "Returned"
    assert normalize_legacy(None, TASK_STATUS_ALIASES) is None


def test_filters_include_legacy_spellings():
    assert status_filter_values(TaskStatus.COMPLETED) == ["COMPLETED", "Completed"]
    assert status_filter_values("Completed") == ["COMPLETED", "Completed"]
    assert expand_with_aliases("Temporary Completed", TASK_STATUS_ALIASES) == ["Temporary Completed"]


def test_lowercase_normalisation():
    valid = {"cash", "credits"}
    assert normalize_to_lowercase(" CASH ", valid) == "cash"
    assert normalize_to_lowercase("Credit", valid, {"credit": "credits"}) == "credits"
    assert normalize_to_lowercase("barter", valid) == "barter"


async def _insert_legacy_task(session, branch, order_id, status):
    await session.execute(
        text(
            "INSERT INTO tasks (id, order_id, name, priority, products, branch_id, status, "
            "needs_transfer, images, total_amount, paid_amount, balance_due, advance_payment, "
            "ready_for_payment, invoice_created, payment_history, created_at, updated_at) "
            "VALUES (:id, :order_id, 'Legacy', 'normal', '[]', :branch_id, :status, 0, '[]', "
            "0, 0, 0, 0, 0, 0, '[]', :now, :now)"
        ),
        {
            "id": uuid.uuid4().hex,
            "order_id": order_id,
            "branch_id": branch.id.hex,
            "status": status,
            "now": "2024-01-01 00:00:00.000000",
        },
    )
    await session.commit()


async def test_legacy_rows_load_canonical(session, sub_branch):
    await _insert_legacy_task(session, sub_branch, "RAN0042", "In Progress")

    task = await session.scalar(select(Task).where(Task.order_id == "RAN0042"))

    assert task.status == TaskStatus.IN_PROGRESS.value


async def test_legacy_rows_match_canonical_filters(session, sub_branch):
    await _insert_legacy_task(session, sub_branch, "RAN0043", "Completed")
    await _insert_legacy_task(session, sub_branch, "RAN0044", "Pending")

    result = await session.execute(
        select(Task.order_id).where(Task.status.in_(status_filter_values(TaskStatus.COMPLETED)))
    )

    assert result.scalars().all() == ["RAN0043"]


async def test_legacy_rows_listed_by_canonical_status(client, sub_branch, session, auth_headers):
    await _insert_legacy_task(session, sub_branch, "RAN0045", "Pending")

    response = await client.get("/api/v1/tasks", params={"status": "INVOICED"}, headers=auth_headers(sub_branch))

    assert response.json()["total"] == 1
    assert response.json()["items"][0]["status"] == "INVOICED"


# ==================== MONEY ====================

def test_parse_currency():
    assert parse_currency("Rs. 1,250.50") == Decimal("1250.50")
    assert parse_currency(19.999) == Decimal("20.00")
    assert parse_currency("-40") == Decimal("-40.00")
    assert parse_currency("abc") == Decimal("0.00")
    assert parse_currency(None) == Decimal("0.00")


def test_currency_arithmetic():
    assert add_currency("0.10", 0.20, Decimal("0.30")) == Decimal("0.60")
    assert subtract_currency(1000, "200") == Decimal("800.00")


# ==================== TOKENS ====================

def test_access_token_round_trip():
    token = create_access_token("login-1", additional_claims={"branch": "b-1", "branch_type": "sub"})

    payload = verify_access_token(token)

    assert payload["sub"] == "login-1"
    assert payload["branch"] == "b-1"
    assert payload["type"] == "access"


def test_expired_or_garbage_tokens_are_rejected():
    expired = create_access_token("login-1", expires_delta=timedelta(seconds=-5))

    assert verify_access_token(expired) is None
    assert verify_access_token("not-a-token") is None
