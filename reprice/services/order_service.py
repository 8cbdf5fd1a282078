import logging

from sqlalchemy.ext.asyncio import AsyncSession

from reprice.core.config import settings
from reprice.core.exceptions import ConflictError
from reprice.models.dto.order import OrderCreate
from reprice.models.orm.order import CustomerAddress, Order
from reprice.repositories import order_repo

logger = logging.getLogger(__name__)

PINCODE_LENGTH = 6


async def create_order(db: AsyncSession, customer_id: int, body: OrderCreate) -> Order:
    """Persist the pickup address and a pending order that references it."""
    address = await order_repo.create_address(
        db,
        CustomerAddress(
            customer_id=customer_id,
            full_address=body.address,
            city=body.city,
            state=body.state,
            pincode=body.pincode,
            latitude=body.latitude,
            longitude=body.longitude,
        ),
    )

    order = await order_repo.create(
        db,
        Order(
            customer_id=customer_id,
            address_id=address.id,
            phone_model=body.phone.name,
            phone_variant=body.phone.variant,
            phone_condition=body.phone.condition,
            price=body.phone.price,
            pickup_date=body.pickup_date,
            time_slot=body.time_slot,
            payment_method=body.payment_method,
            status="pending",
        ),
    )
    logger.info("Order %s created for customer %s", order.id, customer_id)
    return order


async def get_my_orders(db: AsyncSession, customer_id: int) -> list[Order]:
    return await order_repo.get_for_customer(db, customer_id)


async def assign_order(db: AsyncSession, order_id: int, agent_id: int) -> Order:
    order = await order_repo.assign_to_agent(db, order_id, agent_id)
    if order is None:
        raise ConflictError("Order already assigned or not available")
    logger.info("Order %s assigned to agent %s", order_id, agent_id)
    return order


def is_serviceable(pincode: str) -> bool:
    """A pincode is serviceable when it is six digits and matches a configured prefix.

    An empty prefix list means every well-formed pincode is serviceable.
    """
    pincode = pincode.strip()
    if len(pincode) != PINCODE_LENGTH or not pincode.isdigit():
        return False
    prefixes = settings.serviceable_prefixes_list
    if not prefixes:
        return True
    return any(pincode.startswith(p) for p in prefixes)
