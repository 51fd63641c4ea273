"""Shared fixtures: a file-backed SQLite database per test and an in-process client."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./printshop-test.db")
os.environ.setdefault("SECRET_KEY", "printshop-test-secret")

from datetime import date, timedelta
from decimal import Decimal
import itertools

import httpx
import pytest
from sqlalchemy import select

from printshop.config import settings
from printshop.database import Database
from printshop.main import app
from printshop.models.branch import Branch, Employee
from printshop.models.inventory import InventoryItem
from printshop.services.auth_service import issue_branch_token
from printshop.services.inventory_service import stock_status_for


_codes = itertools.count(10000001)


@pytest.fixture
async def database(tmp_path):
    db = Database(settings, url=f"sqlite+aiosqlite:///{tmp_path / 'printshop.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database):
    async with database.session_factory() as s:
        yield s


@pytest.fixture
async def main_branch(session):
    branch = Branch(name="Main Branch", type="main", allowed_products=["mug", "plate", "tshirt", "banner"])
    session.add(branch)
    await session.commit()
    return branch


@pytest.fixture
async def sub_branch(session):
    branch = Branch(name="ranna", type="sub", allowed_products=["mug", "plate", "banner"])
    session.add(branch)
    await session.commit()
    return branch


@pytest.fixture
async def other_branch(session):
    branch = Branch(name="Galle Road", type="sub", allowed_products=["mug"])
    session.add(branch)
    await session.commit()
    return branch


@pytest.fixture
async def employee(session, sub_branch):
    worker = Employee(name="Nimal", phone="0771234567", role="printer", branch_id=sub_branch.id)
    session.add(worker)
    await session.commit()
    return worker


@pytest.fixture
def make_stock(session):
    async def _make(branch, product_id, quantity, product_code=None, name=None):
        item = InventoryItem(
            name=name or product_id.title(),
            branch_id=branch.id,
            product_id=product_id,
            product_code=product_code or f"{next(_codes):08d}",
            quantity=quantity,
            status=stock_status_for(quantity),
            price=Decimal("100"),
        )
        session.add(item)
        await session.commit()
        return item

    return _make


@pytest.fixture
async def client(database):
    # ASGITransport does not run the lifespan
    app.state.database = database
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def auth_headers():
    def _headers(branch, username="tester"):
        token = issue_branch_token(branch.id, branch, username)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def order_payload():
    def _payload(**overrides):
        payload = {
            "customer_name": "Kasun Perera",
            "customer_email": "kasun@example.com",
            "whatsapp_number": "0771112233",
            "order_items": [
                {"product": "mug", "quantity": 2, "unit_price": 500, "total_waste": 1},
            ],
            "full_payment": 1000,
            "advance_payment": 200,
            "expected_end_date": (date.today() + timedelta(days=3)).isoformat(),
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
def fetch(database):
    """Load one row in a fresh session, so API writes are always visible."""
    async def _fetch(model, **filters):
        async with database.session_factory() as s:
            result = await s.execute(select(model).filter_by(**filters))
            return result.scalars().first()

    return _fetch
