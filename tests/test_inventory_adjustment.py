import logging

import pytest

from printshop.models.inventory import InventoryItem, Product, StockStatus
from printshop.services.inventory_service import (
    CONSUME,
    RESTORE,
    InventoryService,
    adjust_inventory,
    stock_status_for,
)


@pytest.mark.parametrize(
    "quantity,expected",
    [
        (11, StockStatus.IN_STOCK.value),
        (10, StockStatus.LOW_STOCK.value),
        (1, StockStatus.LOW_STOCK.value),
        (0, StockStatus.OUT_OF_STOCK.value),
        (-3, StockStatus.OUT_OF_STOCK.value),
    ],
)
def test_stock_status_boundaries(quantity, expected):
    assert stock_status_for(quantity) == expected


async def test_consume_by_product_id(session, sub_branch, make_stock):
    item = await make_stock(sub_branch, "mug", 20)

    adjusted = await adjust_inventory(session, "mug", 5, sub_branch.id, CONSUME)

    assert adjusted.id == item.id
    assert adjusted.quantity == 15
    assert adjusted.status == StockStatus.IN_STOCK.value


async def test_resolves_by_product_code(session, sub_branch, make_stock):
    await make_stock(sub_branch, "banner", 12, product_code="12345678")

    adjusted = await adjust_inventory(session, "12345678", 4, sub_branch.id, CONSUME)

    assert adjusted.product_id == "banner"
    assert adjusted.quantity == 8
    assert adjusted.status == StockStatus.LOW_STOCK.value


async def test_resolves_by_record_id(session, sub_branch, make_stock):
    item = await make_stock(sub_branch, "plate", 3)

    adjusted = await adjust_inventory(session, str(item.id), 3, sub_branch.id, CONSUME)

    assert adjusted.quantity == 0
    assert adjusted.status == StockStatus.OUT_OF_STOCK.value


async def test_resolves_through_catalog_product(session, sub_branch, make_stock):
    await make_stock(sub_branch, "tshirt", 30, product_code="87654321")
    product = Product(name="T-Shirt", product_id="TSHIRT-CAT", code="87654321")
    session.add(product)
    await session.commit()

    adjusted = await adjust_inventory(session, str(product.id), 10, sub_branch.id, CONSUME)

    assert adjusted is not None
    assert adjusted.quantity == 20


async def test_lookup_is_branch_scoped(session, sub_branch, other_branch, make_stock):
    await make_stock(other_branch, "mug", 50)

    assert await adjust_inventory(session, "mug", 5, sub_branch.id, CONSUME) is None


async def test_missing_item_is_logged_not_raised(session, sub_branch, caplog):
    with caplog.at_level(logging.ERROR, logger="printshop.services.inventory_service"):
        result = await adjust_inventory(session, "poster", 2, sub_branch.id, CONSUME)

    assert result is None
    assert "poster" in caplog.text


async def test_placeholder_and_zero_are_skipped(session, sub_branch, make_stock):
    await make_stock(sub_branch, "mug", 5)

    assert await adjust_inventory(session, "N/A", 2, sub_branch.id, CONSUME) is None
    assert await adjust_inventory(session, "mug", 0, sub_branch.id, CONSUME) is None
    assert await adjust_inventory(session, None, 2, sub_branch.id, CONSUME) is None


async def test_stock_can_go_negative(session, sub_branch, make_stock):
    await make_stock(sub_branch, "mug", 2)

    adjusted = await adjust_inventory(session, "mug", 5, sub_branch.id, CONSUME)

    assert adjusted.quantity == -3
    assert adjusted.status == StockStatus.OUT_OF_STOCK.value


async def test_restore_moves_back_into_stock(session, sub_branch, make_stock):
    await make_stock(sub_branch, "mug", 0)

    adjusted = await adjust_inventory(session, "mug", 12, sub_branch.id, RESTORE)

    assert adjusted.quantity == 12
    assert adjusted.status == StockStatus.IN_STOCK.value


async def test_product_lines_include_waste(session, sub_branch, make_stock):
    await make_stock(sub_branch, "mug", 20)
    await make_stock(sub_branch, "plate", 20)
    lines = [
        {"product_type": "mug", "product_quantity": 4, "total_waste": 1},
        {"product_type": "plate", "product_quantity": "3", "total_waste": None},
        {"product_type": "sticker", "product_quantity": 9},
    ]

    adjusted = await InventoryService(session).adjust_product_lines(lines, sub_branch.id, CONSUME)
    by_id = {item.product_id: item.quantity for item in adjusted}

    assert by_id == {"mug": 15, "plate": 17}


async def test_product_lines_without_waste(session, sub_branch, make_stock):
    await make_stock(sub_branch, "mug", 10)
    lines = [{"product_type": "mug", "product_quantity": 4, "total_waste": 2}]

    adjusted = await InventoryService(session).adjust_product_lines(
        lines, sub_branch.id, RESTORE, include_waste=False
    )

    assert adjusted[0].quantity == 14


async def test_create_item_generates_code(session, sub_branch):
    service = InventoryService(session)

    item = await service.create_item(sub_branch.id, {"name": "Mug", "product_id": "mug", "quantity": 5})

    assert len(item.product_code) == 8 and item.product_code.isdigit()
    assert item.status == StockStatus.LOW_STOCK.value
    assert isinstance(item, InventoryItem)


async def test_fractional_quantities_round_half_up(session, sub_branch, make_stock, caplog):
    await make_stock(sub_branch, "mug", 20)
    service = InventoryService(session)
    lines = [{"product_type": "mug", "product_quantity": 2.5, "total_waste": "0"}]

    with caplog.at_level(logging.WARNING, logger="printshop.services.inventory_service"):
        consumed = await service.adjust_product_lines(lines, sub_branch.id, CONSUME)
    assert consumed[0].quantity == 17
    assert "rounded to 3" in caplog.text

    restored = await service.adjust_product_lines(lines, sub_branch.id, RESTORE)
    assert restored[0].quantity == 20

    nudged = await adjust_inventory(session, "mug", "1.4", sub_branch.id, CONSUME)
    assert nudged.quantity == 19
