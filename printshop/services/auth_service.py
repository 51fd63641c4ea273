"""Auth Service: branch logins and token issuing."""
from typing import Optional, Tuple
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from printshop.core.exceptions import AuthenticationFailed
from printshop.core.security import create_access_token, verify_password
from printshop.models.branch import Branch, BranchLogin


logger = logging.getLogger(__name__)


def token_claims(login_username: Optional[str], branch: Branch) -> dict:
    """Claims every access token carries."""
    return {
        "branch": str(branch.id),
        "username": login_username,
        "branch_name": branch.name,
        "branch_type": branch.type,
    }


def issue_branch_token(subject, branch: Branch, username: Optional[str] = None) -> str:
    return create_access_token(subject, additional_claims=token_claims(username, branch))


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def authenticate(self, username: str, password: str) -> Tuple[BranchLogin, Branch]:
        """Check a username/password pair. Unknown users and bad passwords look the same."""
        result = await self.db.execute(
            select(BranchLogin)
            .options(selectinload(BranchLogin.branch))
            .where(BranchLogin.username == username)
        )
        login = result.scalar_one_or_none()

        if login is None or not verify_password(password, login.password_hash):
            logger.warning(f"Failed login for username '{username}'")
            raise AuthenticationFailed("Invalid username or password")

        branch = login.branch
        if branch is None or not branch.is_active:
            logger.warning(f"Login '{username}' points at a missing or inactive branch")
            raise AuthenticationFailed("Branch is not active")

        logger.info(f"Branch login '{username}' signed in to '{branch.name}'")
        return login, branch

    async def login(self, username: str, password: str) -> Tuple[str, BranchLogin, Branch]:
        login, branch = await self.authenticate(username, password)
        token = issue_branch_token(login.id, branch, login.username)
        return token, login, branch
