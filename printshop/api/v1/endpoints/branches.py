from typing import List
import uuid

from fastapi import APIRouter, status

from printshop.api.deps import DB, CurrentBranch, MainBranch
from printshop.core.exceptions import Conflict
from printshop.schemas.branch import (
    BranchCreate,
    BranchLoginCreate,
    BranchLoginResponse,
    BranchResponse,
    EmployeeCreate,
    EmployeeResponse,
)
from printshop.services.branch_service import BranchService


router = APIRouter(tags=["Branches"])


@router.get("/branches", response_model=List[BranchResponse])
async def list_branches(db: DB, branch: CurrentBranch):
    service = BranchService(db)
    return await service.get_branches()


@router.post("/branches", response_model=BranchResponse, status_code=status.HTTP_201_CREATED)
async def create_branch(data: BranchCreate, db: DB, branch: MainBranch):
    """Create a branch. At most one main branch exists (409)."""
    service = BranchService(db)
    return await service.create_branch(data.model_dump())


@router.post("/branches/bootstrap", response_model=BranchResponse, status_code=status.HTTP_201_CREATED)
async def bootstrap_main_branch(branch: BranchCreate, login: BranchLoginCreate, db: DB):
    """
    Create the first (main) branch and its login on an empty install.

    Body: {"branch": {...}, "login": {"username", "password"}}
    """
    service = BranchService(db)
    if await service.get_branches(active_only=False):
        raise Conflict("Branches already exist; sign in to the main branch to add more")
    payload = branch.model_dump()
    payload["type"] = "main"
    main_branch = await service.create_branch(payload)
    await service.add_login(main_branch.id, login.username, login.password)
    return main_branch


@router.post(
    "/branches/{branch_id}/logins",
    response_model=BranchLoginResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_branch_login(branch_id: uuid.UUID, data: BranchLoginCreate, db: DB, branch: MainBranch):
    service = BranchService(db)
    return await service.add_login(branch_id, data.username, data.password)


@router.get("/employees", response_model=List[EmployeeResponse])
async def list_employees(db: DB, branch: CurrentBranch):
    service = BranchService(db)
    return await service.get_employees(branch)


@router.post("/employees", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
async def create_employee(data: EmployeeCreate, db: DB, branch: CurrentBranch):
    service = BranchService(db)
    return await service.create_employee(branch, data.model_dump())
