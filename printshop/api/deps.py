from typing import Annotated, Optional
import uuid
import logging

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from printshop.config import settings
from printshop.database import get_db
from printshop.core.security import verify_access_token
from printshop.models.branch import Branch


logger = logging.getLogger(__name__)

# Bearer header is a fallback; the HTTP-only cookie is the primary carrier
security = HTTPBearer(auto_error=False)


def _token_from_request(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if token:
        return token
    if credentials is not None:
        return credentials.credentials
    return None


async def get_token_payload(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> dict:
    """Decoded access token. 401 when missing, expired or invalid."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = _token_from_request(request, credentials)
    if not token:
        raise credentials_exception

    payload = verify_access_token(token)
    if payload is None:
        logger.warning("Token verification failed - invalid or expired token")
        raise credentials_exception
    return payload


async def get_current_branch(
    payload: Annotated[dict, Depends(get_token_payload)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Branch:
    """
    Dependency to get the acting branch.

    Every lifecycle query is scoped by the branch named in the token's
    ``branch`` claim.
    """
    branch_claim = payload.get("branch")
    try:
        branch_id = uuid.UUID(str(branch_claim))
    except ValueError:
        logger.warning(f"Invalid branch in token: {branch_claim}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    branch = await db.get(Branch, branch_id)
    if branch is None:
        logger.warning(f"Branch {branch_id} from token no longer exists")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Branch not found")
    return branch


async def require_main_branch(
    branch: Annotated[Branch, Depends(get_current_branch)],
) -> Branch:
    """Only the main branch may administer branches."""
    if not branch.is_main:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the main branch can perform this action",
        )
    return branch


# Type aliases for cleaner dependency injection
DB = Annotated[AsyncSession, Depends(get_db)]
TokenPayload = Annotated[dict, Depends(get_token_payload)]
CurrentBranch = Annotated[Branch, Depends(get_current_branch)]
MainBranch = Annotated[Branch, Depends(require_main_branch)]
