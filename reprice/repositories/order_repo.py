from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reprice.models.orm.order import CustomerAddress, Order


async def create_address(db: AsyncSession, address: CustomerAddress) -> CustomerAddress:
    db.add(address)
    await db.flush()
    return address


async def create(db: AsyncSession, order: Order) -> Order:
    db.add(order)
    await db.flush()
    await db.refresh(order)
    return order


async def get_for_customer(db: AsyncSession, customer_id: int) -> list[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.customer_id == customer_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(result.scalars().all())


async def assign_to_agent(db: AsyncSession, order_id: int, agent_id: int) -> Order | None:
    """Claim a pending, unassigned order in a single conditional UPDATE.

    Returns None when the order does not exist or was already claimed.
    """
    result = await db.execute(
        update(Order)
        .where(
            Order.id == order_id,
            Order.status == "pending",
            Order.agent_id.is_(None),
        )
        .values(status="in-progress", agent_id=agent_id)
        .returning(Order)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none()
