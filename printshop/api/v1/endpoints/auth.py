from fastapi import APIRouter, Response

from printshop.api.deps import DB, CurrentBranch, TokenPayload
from printshop.config import settings
from printshop.schemas.auth import BranchIdentity, LoginRequest, LoginResponse
from printshop.services.auth_service import AuthService


router = APIRouter(tags=["Authentication"])


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_HOURS * 3600,
        path="/",
    )


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest, response: Response, db: DB):
    """Sign in as a branch. The token is returned in an HTTP-only cookie."""
    service = AuthService(db)
    token, branch_login, branch = await service.login(data.username, data.password)
    _set_auth_cookie(response, token)
    return LoginResponse(
        user=BranchIdentity(
            branch_id=branch.id,
            branch_name=branch.name,
            branch_type=branch.type,
            username=branch_login.username,
        )
    )


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(key=settings.AUTH_COOKIE_NAME, path="/")
    return {"success": True, "message": "Logged out"}


@router.get("/me", response_model=BranchIdentity)
async def me(payload: TokenPayload, branch: CurrentBranch):
    return BranchIdentity(
        branch_id=branch.id,
        branch_name=branch.name,
        branch_type=branch.type,
        username=payload.get("username"),
    )
