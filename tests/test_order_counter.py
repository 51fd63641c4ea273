import asyncio
import re
from datetime import date

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from printshop.config import settings
from printshop.core.exceptions import Conflict
from printshop.models.order import Order
from printshop.models.order_counter import OrderCounter
from printshop.services.order_counter_service import (
    OrderCounterService,
    branch_prefix,
    format_order_number,
    get_next_order_id,
    is_valid_order_id,
    normalize_branch_key,
)
from printshop.services.order_service import OrderService


@pytest.mark.parametrize(
    "name,expected",
    [
        ("ranna", "RAN"),
        ("Main Branch", "MB"),
        ("Colombo Fort Central Branch", "CFC"),
        ("ab", "AB"),
        ("a", "A0"),
        ("", "GN"),
        ("   ", "GN"),
        (None, "GN"),
    ],
)
def test_branch_prefix(name, expected):
    assert branch_prefix(name) == expected


def test_branch_key_is_trimmed_and_lower_cased():
    assert normalize_branch_key("  Ranna ") == "ranna"


def test_numbers_are_padded_but_never_truncated():
    assert format_order_number(7, width=4) == "0007"
    assert format_order_number(12345, width=4) == "12345"


def test_order_id_shape():
    assert is_valid_order_id("RAN0001")
    assert is_valid_order_id("A00001")
    assert is_valid_order_id("MB482913")
    assert not is_valid_order_id("ran0001")
    assert not is_valid_order_id("RAN01")
    assert not is_valid_order_id(None)


async def test_first_order_creates_counter(session):
    service = OrderCounterService(session)

    assert await service.next_order_id("ranna") == "RAN0001"
    await session.commit()

    counter = await session.scalar(select(OrderCounter).where(OrderCounter.branch_name == "ranna"))
    assert counter.last_order_number == 1
    assert counter.last_order_id == "RAN0001"
    assert counter.branch_prefix == "RAN"


async def test_ids_increase_per_branch(session):
    service = OrderCounterService(session)

    issued = [await service.next_order_id("ranna") for _ in range(3)]
    other = await service.next_order_id("Main Branch")

    assert issued == ["RAN0001", "RAN0002", "RAN0003"]
    assert other == "MB0001"


async def test_branch_name_case_shares_counter(session):
    service = OrderCounterService(session)

    assert await service.next_order_id("ranna") == "RAN0001"
    assert await service.next_order_id("  RANNA ") == "RAN0002"


async def test_counter_rolls_past_four_digits(session):
    session.add(OrderCounter(branch_name="ranna", branch_prefix="RAN", last_order_number=9999))
    await session.commit()

    assert await OrderCounterService(session).next_order_id("ranna") == "RAN10000"


async def test_preview_does_not_consume(session):
    service = OrderCounterService(session)

    before = await service.get_branch_status("ranna")
    assert before["next_order_id"] == "RAN0001"
    assert before["last_order_number"] == 0
    assert before["last_order_id"] is None

    await service.next_order_id("ranna")
    after = await service.get_branch_status("ranna")
    assert after["last_order_id"] == "RAN0001"
    assert after["next_order_id"] == "RAN0002"
    assert (await service.get_branch_status("ranna"))["next_order_id"] == "RAN0002"


async def test_concurrent_sessions_never_share_a_number(database):
    async def issue():
        async with database.session_factory() as s:
            order_id = await OrderCounterService(s).next_order_id("ranna")
            await s.commit()
            return order_id

    issued = await asyncio.gather(*[issue() for _ in range(5)])

    assert sorted(issued) == ["RAN0001", "RAN0002", "RAN0003", "RAN0004", "RAN0005"]


async def test_fallback_after_retries(session, monkeypatch):
    attempts = []

    async def broken_increment(self, branch_key, prefix):
        attempts.append(branch_key)
        raise OperationalError("UPDATE order_counters", {}, Exception("database is locked"))

    monkeypatch.setattr(OrderCounterService, "_increment", broken_increment)

    order_id = await OrderCounterService(session, max_retries=3, backoff_ms=0).next_order_id("ranna")

    assert len(attempts) == 3
    assert re.fullmatch(r"RAN\d{6}", order_id)
    assert is_valid_order_id(order_id)


async def test_collision_with_legacy_order_is_skipped(session, sub_branch, monkeypatch):
    monkeypatch.setattr(settings, "ORDER_ID_COLLISION_JITTER_MS", 0)
    session.add(
        Order(
            order_id="RAN0001",
            customer_name="Legacy",
            order_date=date.today(),
            due_date=date.today(),
            branch_id=sub_branch.id,
        )
    )
    await session.commit()

    order, task = await OrderService(session).create_order(
        sub_branch,
        {"customer_name": "New", "expected_end_date": date.today(), "order_items": []},
    )

    assert order.order_id == "RAN0002"
    assert task.order_id == "RAN0002"


async def test_collision_guard_gives_up(session, sub_branch, monkeypatch):
    monkeypatch.setattr(settings, "ORDER_ID_COLLISION_JITTER_MS", 0)
    monkeypatch.setattr(settings, "ORDER_ID_COLLISION_RETRIES", 2)

    async def always_taken(self, order_id):
        return object()

    monkeypatch.setattr(OrderService, "get_order_by_order_id", always_taken)

    with pytest.raises(Conflict):
        await OrderService(session).create_order(
            sub_branch,
            {"customer_name": "New", "expected_end_date": date.today(), "order_items": []},
        )


async def test_convenience_function(session):
    assert await get_next_order_id(session, "Main Branch") == "MB0001"
