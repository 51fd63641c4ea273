import uuid

import pytest

from printshop.models.inventory import InventoryItem
from printshop.models.order import Order
from printshop.models.sent_order import SentOrder
from printshop.models.task import Task


@pytest.fixture
def create_task(client, order_payload, auth_headers):
    async def _create(branch, **overrides):
        response = await client.post(
            "/api/v1/orders", json=order_payload(**overrides), headers=auth_headers(branch)
        )
        assert response.status_code == 201, response.text
        return response.json()["task"]

    return _create


async def test_select_product_merges_lines(client, sub_branch, auth_headers, create_task):
    task = await create_task(sub_branch)
    headers = auth_headers(sub_branch)

    added = await client.put(
        "/api/v1/tasks/select-product",
        json={"task_id": task["id"], "new_product": {"product_type": "plate", "product_price": 300, "product_quantity": 2}},
        headers=headers,
    )
    merged = await client.put(
        "/api/v1/tasks/select-product",
        json={"task_id": task["id"], "new_product": {"product_type": "mug", "product_quantity": 3}},
        headers=headers,
    )

    assert added.status_code == 200
    products = {line["product_type"]: line for line in merged.json()["task"]["products"]}
    assert products["plate"]["product_quantity"] == 2
    assert products["mug"]["product_quantity"] == 5
    assert merged.json()["task"]["status"] == "IN_PROGRESS"


async def test_assign_worker(client, sub_branch, employee, auth_headers, create_task):
    task = await create_task(sub_branch)

    response = await client.put(
        "/api/v1/tasks/assign",
        json={"task_id": task["id"], "employee_id": str(employee.id)},
        headers=auth_headers(sub_branch),
    )

    assert response.status_code == 200
    assert response.json()["task"]["employee_id"] == str(employee.id)
    assert response.json()["task"]["status"] == "IN_PROGRESS"


async def test_assign_unknown_worker(client, sub_branch, auth_headers, create_task):
    task = await create_task(sub_branch)

    response = await client.put(
        "/api/v1/tasks/assign",
        json={"task_id": task["id"], "employee_id": str(uuid.uuid4())},
        headers=auth_headers(sub_branch),
    )

    assert response.status_code == 404
    assert response.json()["error"] == "Employee not found"


async def test_foreign_branch_cannot_touch_task(client, sub_branch, other_branch, auth_headers, create_task):
    task = await create_task(sub_branch)

    response = await client.put(
        "/api/v1/tasks/complete",
        json={"task_id": task["id"], "paid_amount": 800},
        headers=auth_headers(other_branch),
    )

    assert response.status_code == 403
    assert response.json()["type"] == "BranchMismatch"


async def test_unknown_task(client, sub_branch, auth_headers):
    response = await client.put(
        "/api/v1/tasks/ready-for-payment",
        json={"task_id": str(uuid.uuid4())},
        headers=auth_headers(sub_branch),
    )

    assert response.status_code == 404


async def test_ready_for_payment(client, sub_branch, auth_headers, create_task):
    task = await create_task(sub_branch)

    response = await client.put(
        "/api/v1/tasks/ready-for-payment", json={"task_id": task["id"]}, headers=auth_headers(sub_branch)
    )

    assert response.json()["task"]["ready_for_payment"] is True


async def test_send_to_main_once(client, sub_branch, auth_headers, create_task, fetch):
    task = await create_task(sub_branch)
    headers = auth_headers(sub_branch)

    first = await client.put("/api/v1/tasks/send-to-main", json={"task_id": task["id"]}, headers=headers)
    second = await client.put("/api/v1/tasks/send-to-main", json={"task_id": task["id"]}, headers=headers)

    assert first.status_code == 200
    assert first.json()["task"]["needs_transfer"] is True
    assert second.status_code == 409
    sent = await fetch(SentOrder, order_id=task["order_id"])
    assert sent.status == "Sent to Main Branch"
    assert (await fetch(Order, order_id=task["order_id"])).send_to_main_branch is True


async def test_partial_payment_keeps_task_open(client, sub_branch, auth_headers, create_task, make_stock, fetch):
    await make_stock(sub_branch, "mug", 20)
    task = await create_task(sub_branch)

    response = await client.put(
        "/api/v1/tasks/complete",
        json={"task_id": task["id"], "paid_amount": 300, "payment_method": "cash"},
        headers=auth_headers(sub_branch),
    )

    body = response.json()
    assert response.status_code == 200
    assert body["message"] == "Partial payment recorded."
    assert body["task"]["status"] == "INVOICED"
    assert body["task"]["balance_due"] == 500.0
    assert (await fetch(Order, order_id=task["order_id"])).advance_payment == 500
    assert (await fetch(InventoryItem, product_id="mug")).quantity == 20


async def test_full_cash_payment_completes_and_consumes_stock(
    client, sub_branch, auth_headers, create_task, make_stock, fetch
):
    await make_stock(sub_branch, "mug", 20)
    task = await create_task(sub_branch)

    response = await client.put(
        "/api/v1/tasks/complete",
        json={"task_id": task["id"], "paid_amount": 800, "payment_method": "CASH"},
        headers=auth_headers(sub_branch),
    )

    body = response.json()
    assert body["task"]["status"] == "COMPLETED"
    assert body["is_temporary_completed"] is False
    assert body["task"]["balance_due"] == 0.0
    assert body["task"]["payment_history"][-1]["amount"] == 800.0
    # 2 ordered + 1 waste
    assert (await fetch(InventoryItem, product_id="mug")).quantity == 17
    assert (await fetch(Order, order_id=task["order_id"])).status == "COMPLETED"


async def test_completed_task_cannot_be_paid_again(
    client, sub_branch, auth_headers, create_task, make_stock, fetch
):
    await make_stock(sub_branch, "mug", 20)
    task = await create_task(sub_branch)
    headers = auth_headers(sub_branch)
    await client.put(
        "/api/v1/tasks/complete",
        json={"task_id": task["id"], "paid_amount": 800, "payment_method": "cash"},
        headers=headers,
    )

    again = await client.put(
        "/api/v1/tasks/complete",
        json={"task_id": task["id"], "paid_amount": 0, "payment_method": "cash"},
        headers=headers,
    )

    assert again.status_code == 400
    assert again.json()["error"] == "Task is already in 'COMPLETED' status"
    assert (await fetch(InventoryItem, product_id="mug")).quantity == 17


async def test_pending_cheque_cannot_be_settled_by_cash(
    client, sub_branch, auth_headers, create_task, make_stock, fetch
):
    await make_stock(sub_branch, "mug", 20)
    task = await create_task(sub_branch)
    headers = auth_headers(sub_branch)
    await client.put(
        "/api/v1/tasks/complete",
        json={
            "task_id": task["id"],
            "paid_amount": 800,
            "payment_method": "cheque",
            "cheque_number": "000777",
            "bank_name": "BOC",
        },
        headers=headers,
    )

    response = await client.put(
        "/api/v1/tasks/complete",
        json={"task_id": task["id"], "paid_amount": 800, "payment_method": "cash"},
        headers=headers,
    )

    assert response.status_code == 400
    stored = await fetch(Order, order_id=task["order_id"])
    assert stored.status == "Temporary Completed"
    assert (await fetch(InventoryItem, product_id="mug")).quantity == 17


async def test_cheque_payment_needs_details(client, sub_branch, auth_headers, create_task):
    task = await create_task(sub_branch)

    response = await client.put(
        "/api/v1/tasks/complete",
        json={"task_id": task["id"], "paid_amount": 800, "payment_method": "cheque"},
        headers=auth_headers(sub_branch),
    )

    assert response.status_code == 400


async def test_unknown_payment_method(client, sub_branch, auth_headers, create_task):
    task = await create_task(sub_branch)

    response = await client.put(
        "/api/v1/tasks/complete",
        json={"task_id": task["id"], "paid_amount": 800, "payment_method": "barter"},
        headers=auth_headers(sub_branch),
    )

    assert response.status_code == 422


async def test_online_payment_completes(client, sub_branch, auth_headers, create_task):
    task = await create_task(sub_branch)

    response = await client.put(
        "/api/v1/tasks/complete",
        json={
            "task_id": task["id"],
            "paid_amount": 800,
            "payment_method": "online",
            "bill_number": "TX-99",
            "bank_name": "BOC",
        },
        headers=auth_headers(sub_branch),
    )

    assert response.json()["task"]["status"] == "COMPLETED"
    assert response.json()["task"]["online_payment_status"] == "pending"


async def test_credits_payment_is_provisional(client, sub_branch, auth_headers, create_task, fetch):
    headers = auth_headers(sub_branch)
    await client.post(
        "/api/v1/credits",
        json={"whatsapp_number": "0771112233", "customer_name": "Kasun Perera", "amount": 1000},
        headers=headers,
    )
    task = await create_task(sub_branch)

    paid = await client.put(
        "/api/v1/tasks/complete",
        json={"task_id": task["id"], "paid_amount": 800, "payment_method": "credit"},
        headers=headers,
    )
    assert paid.json()["task"]["status"] == "Temporary Completed"
    assert paid.json()["is_temporary_completed"] is True

    credit = await client.get(f"/api/v1/credits/order/{task['order_id']}", headers=headers)
    assert credit.json()["balance"] == 200.0
    assert credit.json()["used_amount"] == 800.0

    done = await client.put("/api/v1/tasks/complete-credit", json={"task_id": task["id"]}, headers=headers)
    assert done.json()["task"]["status"] == "COMPLETED"
    assert (await fetch(Order, order_id=task["order_id"])).status == "COMPLETED"


async def test_credits_payment_short_balance_changes_nothing(
    client, sub_branch, auth_headers, create_task, make_stock, fetch
):
    await make_stock(sub_branch, "mug", 20)
    headers = auth_headers(sub_branch)
    await client.post(
        "/api/v1/credits",
        json={"whatsapp_number": "0771112233", "customer_name": "Kasun Perera", "amount": 100},
        headers=headers,
    )
    task = await create_task(sub_branch)

    response = await client.put(
        "/api/v1/tasks/complete",
        json={"task_id": task["id"], "paid_amount": 800, "payment_method": "credits"},
        headers=headers,
    )

    assert response.status_code == 400
    assert (await fetch(InventoryItem, product_id="mug")).quantity == 20
    assert (await fetch(Order, order_id=task["order_id"])).status == "INVOICED"


async def test_complete_credit_rejects_cash_task(client, sub_branch, auth_headers, create_task):
    task = await create_task(sub_branch)
    headers = auth_headers(sub_branch)

    response = await client.put("/api/v1/tasks/complete-credit", json={"task_id": task["id"]}, headers=headers)

    assert response.status_code == 400


async def test_legacy_status_filter(client, sub_branch, employee, auth_headers, create_task):
    task = await create_task(sub_branch)
    await create_task(sub_branch)
    headers = auth_headers(sub_branch)
    await client.put(
        "/api/v1/tasks/assign",
        json={"task_id": task["id"], "employee_id": str(employee.id)},
        headers=headers,
    )

    response = await client.get("/api/v1/tasks", params={"status": "In Progress"}, headers=headers)

    assert response.json()["total"] == 1
    assert response.json()["items"][0]["id"] == task["id"]


async def test_update_description(client, sub_branch, other_branch, auth_headers, create_task, fetch):
    task = await create_task(sub_branch)

    updated = await client.put(
        "/api/v1/tasks/update-description",
        json={"task_id": task["id"], "description": "Gold rim, logo on both sides"},
        headers=auth_headers(sub_branch),
    )
    foreign = await client.put(
        "/api/v1/tasks/update-description",
        json={"task_id": task["id"], "description": "Hijacked"},
        headers=auth_headers(other_branch),
    )
    missing = await client.put(
        "/api/v1/tasks/update-description", json={"task_id": task["id"]}, headers=auth_headers(sub_branch)
    )

    assert updated.json()["task"]["description"] == "Gold rim, logo on both sides"
    assert foreign.status_code == 403
    assert missing.status_code == 422
    stored = await fetch(Task, order_id=task["order_id"])
    assert stored.description == "Gold rim, logo on both sides"
