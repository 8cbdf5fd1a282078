import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from reprice.api.dependencies.auth import get_current_user, require_agent, require_customer
from reprice.api.dependencies.database import get_db
from reprice.core.exceptions import UnprocessableError
from reprice.models.dto.order import (
    OrderCreate,
    OrderEnvelope,
    OrderListResponse,
    OrderResponse,
    ServiceabilityResponse,
)
from reprice.models.orm.user import User
from reprice.services import order_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


# Declared before "/{order_id}/..." routes so the literal paths win.
@router.get("/serviceability", response_model=ServiceabilityResponse)
async def check_serviceability(pincode: str = Query("", max_length=10)):
    if not order_service.is_serviceable(pincode):
        raise UnprocessableError("Order not serviceable. Change your pincode.")
    return ServiceabilityResponse(success=True, serviceable=True, pincode=pincode.strip())


@router.get("/my", response_model=OrderListResponse)
async def list_my_orders(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    orders = await order_service.get_my_orders(db, user.id)
    return OrderListResponse(orders=[OrderResponse.model_validate(o) for o in orders])


@router.post("/create", response_model=OrderEnvelope, status_code=201)
async def create_order(
    body: OrderCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_customer),
):
    order = await order_service.create_order(db, user.id, body)
    return OrderEnvelope(order=OrderResponse.model_validate(order))


@router.patch("/{order_id}/assign", response_model=OrderEnvelope)
async def assign_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_agent),
):
    order = await order_service.assign_order(db, order_id, user.id)
    return OrderEnvelope(order=OrderResponse.model_validate(order))
