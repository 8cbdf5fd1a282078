from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reprice.models.orm.user import User


async def get_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_by_phone(db: AsyncSession, phone: str, user_type: str) -> User | None:
    result = await db.execute(
        select(User).where(User.phone == phone, User.user_type == user_type)
    )
    return result.scalar_one_or_none()


async def create(db: AsyncSession, user: User) -> User:
    db.add(user)
    await db.flush()
    return user
