"""Inventory Service for stock records and stock adjustments."""
from typing import Optional, List, Iterable, Tuple
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import logging
import random
import uuid

from sqlalchemy import select, func, and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from printshop.config import settings
from printshop.core.exceptions import Conflict, NotFound
from printshop.models.inventory import InventoryItem, Product, StockStatus


logger = logging.getLogger(__name__)

CONSUME = -1
RESTORE = 1

# Placeholder product reference sent by older clients
MISSING_PRODUCT_REF = "N/A"


def stock_status_for(quantity: int, low_stock_threshold: Optional[int] = None) -> str:
    """Derived stock status. Zero and below is out of stock."""
    if low_stock_threshold is None:
        low_stock_threshold = settings.LOW_STOCK_THRESHOLD
    if quantity <= 0:
        return StockStatus.OUT_OF_STOCK.value
    if quantity <= low_stock_threshold:
        return StockStatus.LOW_STOCK.value
    return StockStatus.IN_STOCK.value


def _as_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return None


def line_quantity(value) -> int:
    """
    Whole units from a JSON line value; blanks and junk count as zero.

    Fractional values round half up so consume and restore move the same
    number of units.
    """
    if value is None or value == "":
        return 0
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return 0
    if not amount.is_finite():
        return 0
    units = int(amount.to_integral_value(rounding=ROUND_HALF_UP))
    if units != amount:
        logger.warning(f"Fractional stock quantity {value} rounded to {units}")
    return units


class InventoryService:
    """Service for inventory management operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== STOCK ADJUSTMENT ====================

    async def _lookup(self, label: str, query) -> Optional[InventoryItem]:
        """Run one lookup strategy. Errors are logged and read as a miss."""
        try:
            async with self.db.begin_nested():
                result = await self.db.execute(query.limit(1))
                return result.scalars().first()
        except SQLAlchemyError as e:
            logger.warning(f"Inventory lookup by {label} failed: {e}")
            return None

    async def find_item(self, product_ref: str, branch_id: uuid.UUID) -> Optional[InventoryItem]:
        """
        Resolve a product reference to a branch inventory record.

        Tries, in order: the record's own id, product_id, product_code, and
        finally a catalog Product id mapped to its product_id/product_code/code.
        The id-based strategies only run when the reference is UUID-shaped.
        """
        ref = str(product_ref).strip()
        ref_uuid = _as_uuid(ref)
        in_branch = InventoryItem.branch_id == branch_id

        if ref_uuid is not None:
            item = await self._lookup(
                "id",
                select(InventoryItem).where(and_(InventoryItem.id == ref_uuid, in_branch)),
            )
            if item:
                return item

        item = await self._lookup(
            "product_id",
            select(InventoryItem).where(and_(InventoryItem.product_id == ref, in_branch)),
        )
        if item:
            return item

        item = await self._lookup(
            "product_code",
            select(InventoryItem).where(and_(InventoryItem.product_code == ref, in_branch)),
        )
        if item:
            return item

        if ref_uuid is None:
            return None

        try:
            async with self.db.begin_nested():
                product = await self.db.get(Product, ref_uuid)
        except SQLAlchemyError as e:
            logger.warning(f"Catalog lookup for {ref} failed: {e}")
            return None
        if product is None:
            return None

        candidates = [v for v in (product.product_id, product.product_code, product.code) if v]
        if not candidates:
            return None
        return await self._lookup(
            "catalog product",
            select(InventoryItem).where(
                and_(
                    in_branch,
                    or_(
                        InventoryItem.product_id.in_(candidates),
                        InventoryItem.product_code.in_(candidates),
                    ),
                )
            ),
        )

    async def adjust(
        self,
        product_ref: Optional[str],
        quantity,
        branch_id: uuid.UUID,
        sign: int,
    ) -> Optional[InventoryItem]:
        """
        Move stock for one product at one branch.

        ``sign`` is -1 to consume and +1 to restore. An unknown product is
        logged and skipped; the caller's status change still goes through.
        Quantity is not clamped at zero.

        Returns:
            The adjusted item, or None when nothing was adjusted
        """
        if not product_ref or str(product_ref).strip() == MISSING_PRODUCT_REF:
            return None
        delta = line_quantity(quantity)
        if delta == 0:
            return None

        item = await self.find_item(product_ref, branch_id)
        if item is None:
            logger.error(
                f"Inventory item not found for product '{product_ref}' in branch {branch_id}; "
                f"skipped adjustment of {sign * delta}"
            )
            return None

        item.quantity = item.quantity + sign * delta
        item.status = stock_status_for(item.quantity)
        logger.info(
            f"Inventory {item.product_id} ({branch_id}): {sign * delta:+d} -> {item.quantity} [{item.status}]"
        )
        return item

    async def adjust_product_lines(
        self,
        products: Iterable[dict],
        branch_id: uuid.UUID,
        sign: int,
        include_waste: bool = True,
    ) -> List[InventoryItem]:
        """Adjust every task product line by quantity (+ waste)."""
        adjusted = []
        for line in products or []:
            amount = line_quantity(line.get("product_quantity"))
            if include_waste:
                amount += line_quantity(line.get("total_waste"))
            item = await self.adjust(line.get("product_type"), amount, branch_id, sign)
            if item is not None:
                adjusted.append(item)
        if adjusted:
            await self.db.flush()
        return adjusted

    # ==================== INVENTORY RECORDS ====================

    async def get_items(
        self,
        branch_id: uuid.UUID,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[InventoryItem], int]:
        """Get paginated inventory for a branch."""
        query = select(InventoryItem).where(InventoryItem.branch_id == branch_id)
        if status:
            query = query.where(InventoryItem.status == status)

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.db.scalar(count_query)

        query = query.order_by(InventoryItem.name).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def search_items(self, branch_id: uuid.UUID, search: str, limit: int = 20) -> List[InventoryItem]:
        """Name, product id or code search within a branch."""
        query = (
            select(InventoryItem)
            .where(
                and_(
                    InventoryItem.branch_id == branch_id,
                    or_(
                        InventoryItem.name.ilike(f"%{search}%"),
                        InventoryItem.product_id.ilike(f"%{search}%"),
                        InventoryItem.product_code.ilike(f"%{search}%"),
                    ),
                )
            )
            .order_by(InventoryItem.name)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _generate_product_code(self, branch_id: uuid.UUID) -> str:
        """Random 8-digit code not yet used in the branch."""
        for _ in range(10):
            code = f"{random.randint(10000000, 99999999)}"
            existing = await self.db.scalar(
                select(InventoryItem.id).where(
                    and_(InventoryItem.branch_id == branch_id, InventoryItem.product_code == code)
                )
            )
            if existing is None:
                return code
        raise Conflict("Could not generate a unique product code")

    async def create_item(self, branch_id: uuid.UUID, data: dict) -> InventoryItem:
        """Create a stock record. Product id and code are unique per branch."""
        product_id = data["product_id"].strip()
        existing = await self.db.scalar(
            select(InventoryItem.id).where(
                and_(InventoryItem.branch_id == branch_id, InventoryItem.product_id == product_id)
            )
        )
        if existing is not None:
            raise Conflict(f"Product '{product_id}' already exists in this branch")

        product_code = data.get("product_code")
        if product_code:
            taken = await self.db.scalar(
                select(InventoryItem.id).where(
                    and_(InventoryItem.branch_id == branch_id, InventoryItem.product_code == product_code)
                )
            )
            if taken is not None:
                raise Conflict(f"Product code '{product_code}' already exists in this branch")
        else:
            product_code = await self._generate_product_code(branch_id)

        quantity = int(data.get("quantity") or 0)
        item = InventoryItem(
            name=data["name"],
            branch_id=branch_id,
            product_id=product_id,
            product_code=product_code,
            quantity=quantity,
            status=stock_status_for(quantity),
            price=data.get("price") or 0,
            image=data.get("image"),
        )
        self.db.add(item)
        await self.db.flush()
        logger.info(f"Created inventory item {product_id} ({product_code}) in branch {branch_id}")
        return item

    async def get_item(self, item_id: uuid.UUID, branch_id: uuid.UUID) -> InventoryItem:
        result = await self.db.execute(
            select(InventoryItem).where(
                and_(InventoryItem.id == item_id, InventoryItem.branch_id == branch_id)
            )
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise NotFound("Inventory item not found")
        return item

    # ==================== PRODUCT CATALOG ====================

    async def create_product(self, data: dict) -> Product:
        product = Product(
            name=data["name"],
            product_id=data.get("product_id"),
            product_code=data.get("product_code"),
            code=data.get("code"),
        )
        self.db.add(product)
        await self.db.flush()
        return product

    async def get_products(self) -> List[Product]:
        result = await self.db.execute(select(Product).order_by(Product.name))
        return list(result.scalars().all())


# Convenience function
async def adjust_inventory(
    db: AsyncSession,
    product_ref: Optional[str],
    quantity,
    branch_id: uuid.UUID,
    sign: int,
) -> Optional[InventoryItem]:
    service = InventoryService(db)
    return await service.adjust(product_ref, quantity, branch_id, sign)
