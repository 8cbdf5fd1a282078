import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from reprice.core.exceptions import BadRequestError, ConflictError, UnauthorizedError
from reprice.core.security import create_access_token, hash_password, verify_password
from reprice.models.dto.user import LoginRequest, SignupRequest
from reprice.models.orm.user import User
from reprice.repositories import user_repo

logger = logging.getLogger(__name__)

USER_TYPES = ("customer", "agent")


class AuthResult:
    def __init__(self, user: User, token: str):
        self.user = user
        self.token = token


async def signup(db: AsyncSession, body: SignupRequest) -> AuthResult:
    """Register a customer or agent. Phone numbers are unique per user type."""
    if not body.name or not body.phone or not body.password or not body.user_type:
        raise BadRequestError("Name, phone, password, and user type are required")

    if body.user_type not in USER_TYPES:
        raise BadRequestError('Invalid user type. Must be "customer" or "agent"')

    existing = await user_repo.get_by_phone(db, body.phone, body.user_type)
    if existing:
        raise ConflictError("User with this phone already exists")

    user = User(
        name=body.name,
        phone=body.phone,
        email=body.email or None,
        password_hash=hash_password(body.password),
        user_type=body.user_type,
    )
    try:
        await user_repo.create(db, user)
    except IntegrityError as e:
        # Lost a race against a concurrent signup for the same phone
        await db.rollback()
        raise ConflictError("User with this phone already exists") from e

    logger.info("Registered %s user %s", user.user_type, user.id)
    token = create_access_token(user.id, user.phone, user.user_type)
    return AuthResult(user, token)


async def login(db: AsyncSession, body: LoginRequest) -> AuthResult:
    user = await user_repo.get_by_phone(db, body.phone, body.user_type)
    if not user or not verify_password(body.password, user.password_hash):
        raise UnauthorizedError("Invalid phone or password")

    token = create_access_token(user.id, user.phone, user.user_type)
    return AuthResult(user, token)
