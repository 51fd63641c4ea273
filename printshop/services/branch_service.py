"""Branch Service: branches, their logins and employees."""
from typing import List, Optional
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from printshop.core.exceptions import Conflict, NotFound
from printshop.core.security import get_password_hash
from printshop.models.branch import (
    Branch,
    BranchLogin,
    BranchType,
    Employee,
    DEFAULT_ALLOWED_PRODUCTS,
)


logger = logging.getLogger(__name__)


class BranchService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_branch(self, branch_id: uuid.UUID) -> Optional[Branch]:
        return await self.db.get(Branch, branch_id)

    async def get_branches(self, active_only: bool = True) -> List[Branch]:
        query = select(Branch)
        if active_only:
            query = query.where(Branch.is_active == True)  # noqa: E712
        result = await self.db.execute(query.order_by(Branch.name))
        return list(result.scalars().all())

    async def get_main_branch(self) -> Optional[Branch]:
        result = await self.db.execute(
            select(Branch).where(Branch.type == BranchType.MAIN.value).limit(1)
        )
        return result.scalars().first()

    async def create_branch(self, data: dict) -> Branch:
        """Create a branch. Only one main branch may exist."""
        branch_type = data.get("type") or BranchType.SUB.value
        if branch_type == BranchType.MAIN.value and await self.get_main_branch() is not None:
            raise Conflict("A main branch already exists")

        allowed = data.get("allowed_products")
        if not allowed:
            allowed = list(DEFAULT_ALLOWED_PRODUCTS[branch_type])

        branch = Branch(
            name=data["name"].strip(),
            type=branch_type,
            location=data.get("location"),
            contacts=list(data.get("contacts") or []),
            allowed_products=allowed,
            is_active=True,
        )
        self.db.add(branch)
        await self.db.flush()
        logger.info(f"Created {branch_type} branch '{branch.name}'")
        return branch

    async def add_login(self, branch_id: uuid.UUID, username: str, password: str) -> BranchLogin:
        branch = await self.get_branch(branch_id)
        if branch is None:
            raise NotFound("Branch not found")
        taken = await self.db.scalar(select(BranchLogin.id).where(BranchLogin.username == username))
        if taken is not None:
            raise Conflict(f"Username '{username}' is already taken")

        login = BranchLogin(
            username=username,
            password_hash=get_password_hash(password),
            branch_id=branch.id,
        )
        self.db.add(login)
        await self.db.flush()
        return login

    # ==================== EMPLOYEES ====================

    async def get_employees(self, branch: Branch) -> List[Employee]:
        result = await self.db.execute(
            select(Employee)
            .where(Employee.branch_id == branch.id, Employee.is_active == True)  # noqa: E712
            .order_by(Employee.name)
        )
        return list(result.scalars().all())

    async def create_employee(self, branch: Branch, data: dict) -> Employee:
        employee = Employee(
            name=data["name"],
            phone=data.get("phone"),
            role=data.get("role"),
            branch_id=branch.id,
        )
        self.db.add(employee)
        await self.db.flush()
        return employee
