from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from reprice.api.dependencies.database import get_db
from reprice.core.exceptions import ForbiddenError, UnauthorizedError
from reprice.core.security import verify_access_token
from reprice.models.orm.user import User
from reprice.repositories import user_repo

security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not credentials:
        raise UnauthorizedError("Missing authentication token")

    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise UnauthorizedError("Invalid or expired token")

    try:
        user_id = int(payload["sub"])
    except ValueError:
        raise UnauthorizedError("Invalid or expired token") from None

    user = await user_repo.get_by_id(db, user_id)
    if not user or user.user_type != payload["user_type"]:
        raise UnauthorizedError("User not found")

    request.state.user = user
    return user


async def require_customer(
    user: User = Depends(get_current_user),
) -> User:
    if user.user_type != "customer":
        raise ForbiddenError("Customer account required")
    return user


async def require_agent(
    user: User = Depends(get_current_user),
) -> User:
    if user.user_type != "agent":
        raise ForbiddenError("Agent account required")
    return user
