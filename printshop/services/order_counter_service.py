"""
Order Counter Service for Branch-Scoped Order IDs

FORMAT:
    {PREFIX}{ZERO-PADDED NUMBER}
    • "ranna"        -> RAN0001, RAN0002, ...
    • "Main Branch"  -> MB0001
    • "a"            -> A00001
    • "" (blank)     -> GN0001

Numbers are never truncated: RAN9999 is followed by RAN10000.

ATOMICITY:
    The counter row is upserted and incremented in one statement
    (INSERT ... ON CONFLICT (branch_name) DO UPDATE ... RETURNING), so
    concurrent callers never receive the same number. Each attempt runs in
    a SAVEPOINT; failed attempts are retried with a growing backoff. When
    every attempt fails the service degrades to a timestamp-derived ID
    instead of failing the order.

USAGE:
    from printshop.services.order_counter_service import OrderCounterService

    async def create_order(db: AsyncSession, branch):
        service = OrderCounterService(db)
        order_id = await service.next_order_id(branch.name)
        # Returns: RAN0001
"""

import asyncio
import logging
import re
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from printshop.config import settings
from printshop.models.order_counter import OrderCounter


logger = logging.getLogger(__name__)

GENERIC_PREFIX = "GN"

# Prefix may carry the "0" pad of a one-letter branch name; fallback IDs are 6+ digits
ORDER_ID_PATTERN = re.compile(r"^[A-Z0-9]{2,3}\d{4,}$")


def normalize_branch_key(branch_name: Optional[str]) -> str:
    """Counter key: trimmed, lower-cased branch name."""
    return (branch_name or "").strip().lower()


def branch_prefix(branch_name: Optional[str]) -> str:
    """
    Derive the 2-3 character order ID prefix from a branch name.

    Multi-word names take the first letter of up to 3 words. Single words
    take their first 3 letters, 2-letter words are kept whole and a
    1-letter word is padded with "0". Blank names get "GN".
    """
    if not branch_name or not branch_name.strip():
        return GENERIC_PREFIX

    words = branch_name.strip().upper().split()
    if len(words) >= 2:
        return "".join(word[0] for word in words[:3])

    word = words[0]
    if len(word) >= 3:
        return word[:3]
    if len(word) == 2:
        return word
    return word + "0"


def format_order_number(number: int, width: Optional[int] = None) -> str:
    """Zero-pad to ``width`` digits. Longer numbers are kept whole."""
    if width is None:
        width = settings.ORDER_NUMBER_PADDING
    return str(number).zfill(width)


def is_valid_order_id(order_id: Optional[str]) -> bool:
    if not order_id:
        return False
    return ORDER_ID_PATTERN.match(order_id) is not None


def fallback_order_id(prefix: str) -> str:
    """Prefix plus the last 6 digits of the current epoch milliseconds."""
    millis = str(int(time.time() * 1000))
    return f"{prefix}{millis[-6:]}"


class OrderCounterService:
    """
    Issues monotonically increasing order numbers per branch.

    The increment is a single upsert statement and is the only place the
    system relies on database atomicity for correctness.
    """

    def __init__(
        self,
        db: AsyncSession,
        max_retries: Optional[int] = None,
        backoff_ms: Optional[int] = None,
    ):
        """
        Initialize the service.

        Args:
            db: Async database session
            max_retries: Increment attempts before degrading (default from settings)
            backoff_ms: Base backoff, multiplied by the attempt number
        """
        self.db = db
        self.max_retries = max_retries if max_retries is not None else settings.ORDER_COUNTER_MAX_RETRIES
        self.backoff_ms = backoff_ms if backoff_ms is not None else settings.ORDER_COUNTER_BACKOFF_MS

    def _insert(self):
        """Dialect-specific INSERT supporting ON CONFLICT."""
        dialect_name = self.db.get_bind().dialect.name
        if dialect_name == "sqlite":
            return sqlite.insert(OrderCounter)
        return postgresql.insert(OrderCounter)

    async def _increment(self, branch_key: str, prefix: str) -> int:
        """Upsert the counter row and return the new last_order_number."""
        now = datetime.now(timezone.utc)
        stmt = (
            self._insert()
            .values(
                id=uuid.uuid4(),
                branch_name=branch_key,
                branch_prefix=prefix,
                last_order_number=1,
                created_at=now,
                updated_at=now,
            )
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[OrderCounter.branch_name],
            set_={
                "last_order_number": OrderCounter.last_order_number + 1,
                "branch_prefix": prefix,
                "last_order_id": None,
                "updated_at": now,
            },
        ).returning(OrderCounter.last_order_number)

        async with self.db.begin_nested():
            result = await self.db.execute(stmt)
            return result.scalar_one()

    async def _record_last_order_id(self, branch_key: str, order_id: str) -> None:
        """Store the issued ID on the counter row. Failure is logged, not raised."""
        try:
            async with self.db.begin_nested():
                await self.db.execute(
                    update(OrderCounter)
                    .where(OrderCounter.branch_name == branch_key)
                    .values(last_order_id=order_id)
                )
        except SQLAlchemyError as e:
            logger.warning(f"Could not record last_order_id {order_id} for '{branch_key}': {e}")

    async def next_order_id(self, branch_name: Optional[str]) -> str:
        """
        Issue the next order ID for a branch.

        Creates the counter row on first use. Retries the increment up to
        ``max_retries`` times with ``backoff_ms * attempt`` delay, then falls
        back to a timestamp-derived ID.

        Returns:
            Order ID, e.g. RAN0001
        """
        branch_key = normalize_branch_key(branch_name)
        prefix = branch_prefix(branch_name)

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                number = await self._increment(branch_key, prefix)
                break
            except SQLAlchemyError as e:
                last_error = e
                logger.warning(
                    f"Order counter increment failed for '{branch_key}' "
                    f"(attempt {attempt}/{self.max_retries}): {e}"
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(self.backoff_ms * attempt / 1000)
        else:
            order_id = fallback_order_id(prefix)
            logger.warning(
                f"Order counter unavailable for '{branch_key}', "
                f"using fallback order ID {order_id}. Last error: {last_error}"
            )
            return order_id

        order_id = f"{prefix}{format_order_number(number)}"
        await self._record_last_order_id(branch_key, order_id)
        logger.info(f"Issued order ID {order_id} for branch '{branch_key}'")
        return order_id

    async def get_branch_status(self, branch_name: Optional[str]) -> dict:
        """
        Read-only view of a branch counter and the ID it would issue next.

        A missing counter reads as ``last_order_number = 0``. A read failure
        degrades to the same answer.
        """
        branch_key = normalize_branch_key(branch_name)
        prefix = branch_prefix(branch_name)

        counter = None
        try:
            result = await self.db.execute(
                select(OrderCounter)
                .where(OrderCounter.branch_name == branch_key)
                # Increments bypass the identity map
                .execution_options(populate_existing=True)
            )
            counter = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.warning(f"Could not read order counter for '{branch_key}': {e}")

        last_number = counter.last_order_number if counter else 0
        if counter and counter.branch_prefix:
            prefix = counter.branch_prefix
        next_number = last_number + 1

        return {
            "branch_name": branch_key,
            "branch_prefix": prefix,
            "last_order_number": last_number,
            "last_order_id": counter.last_order_id if counter else None,
            "next_order_number": next_number,
            "next_order_id": f"{prefix}{format_order_number(next_number)}",
        }


# Convenience function
async def get_next_order_id(db: AsyncSession, branch_name: Optional[str]) -> str:
    service = OrderCounterService(db)
    return await service.next_order_id(branch_name)
