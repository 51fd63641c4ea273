from typing import List, Optional
import uuid

from fastapi import APIRouter, Query, status

from printshop.api.deps import DB, CurrentBranch
from printshop.schemas.inventory import (
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryListResponse,
    ProductCreate,
    ProductResponse,
)
from printshop.services.inventory_service import InventoryService


router = APIRouter(tags=["Inventory"])


@router.get("/inventory", response_model=InventoryListResponse)
async def list_inventory(
    db: DB,
    branch: CurrentBranch,
    stock_status: Optional[str] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    service = InventoryService(db)
    items, total = await service.get_items(branch.id, status=stock_status, skip=skip, limit=limit)
    return InventoryListResponse(
        items=[InventoryItemResponse.model_validate(i) for i in items],
        total=total,
    )


@router.get("/inventory/search", response_model=List[InventoryItemResponse])
async def search_inventory(
    db: DB,
    branch: CurrentBranch,
    q: str = Query(..., min_length=1),
):
    service = InventoryService(db)
    return await service.search_items(branch.id, q)


@router.get("/inventory/{item_id}", response_model=InventoryItemResponse)
async def get_inventory_item(item_id: uuid.UUID, db: DB, branch: CurrentBranch):
    service = InventoryService(db)
    return await service.get_item(item_id, branch.id)


@router.post("/inventory", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(data: InventoryItemCreate, db: DB, branch: CurrentBranch):
    """Add a stock record. An 8-digit product code is generated when none is given."""
    service = InventoryService(db)
    return await service.create_item(branch.id, data.model_dump())


@router.get("/products", response_model=List[ProductResponse])
async def list_products(db: DB, branch: CurrentBranch):
    service = InventoryService(db)
    return await service.get_products()


@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(data: ProductCreate, db: DB, branch: CurrentBranch):
    service = InventoryService(db)
    return await service.create_product(data.model_dump())
