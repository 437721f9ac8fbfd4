from typing import Optional, List
import uuid

from fastapi import APIRouter, status, Query

from app.api.deps import CallerDep, OperatorCaller, Store
from app.models.order import OrderStatus
from app.schemas.order import (
    OrderCreate,
    OrderCreatedResponse,
    OrderDetailResponse,
    OrderResponse,
    OrderStatusUpdate,
    PaymentUpdate,
)
from app.services.order_service import OrderService


router = APIRouter(tags=["Orders"])


def _payment_url(order_id: uuid.UUID) -> str:
    return f"/payment/{order_id}"


@router.post(
    "",
    response_model=OrderCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_order(
    data: OrderCreate,
    store: Store,
    caller: CallerDep,
):
    """
    Place an order for one or more customized plates.

    Every plate text is reserved together with the order. A text that is
    already taken fails the whole order with 400 and nothing is saved.
    """
    service = OrderService(store)
    order = await service.create_order(caller.id, data)
    return OrderCreatedResponse(
        order=OrderDetailResponse.model_validate(order),
        payment_url=_payment_url(order.id),
    )


@router.get("", response_model=List[OrderResponse])
async def list_my_orders(
    store: Store,
    caller: CallerDep,
):
    """Orders placed by the caller, newest first."""
    service = OrderService(store)
    return await service.list_orders_for_owner(caller.id)


@router.get("/admin", response_model=List[OrderResponse])
async def list_all_orders(
    store: Store,
    operator: OperatorCaller,
    status: Optional[OrderStatus] = Query(None),
):
    """All orders, newest first. Operators only."""
    service = OrderService(store)
    return await service.list_orders(operator, status=status)


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(
    order_id: uuid.UUID,
    store: Store,
    caller: CallerDep,
):
    """Get order details by ID. Owner or operator."""
    service = OrderService(store)
    return await service.get_order(order_id, caller)


@router.put("/{order_id}/pay", response_model=OrderDetailResponse)
async def pay_order(
    order_id: uuid.UUID,
    data: PaymentUpdate,
    store: Store,
    caller: CallerDep,
):
    """Record payment for a pending order. Owner only."""
    service = OrderService(store)
    return await service.mark_paid(
        order_id,
        payment_method=data.payment_method,
        payment_reference=data.payment_reference,
        caller=caller,
    )


@router.put("/{order_id}/status", response_model=OrderDetailResponse)
async def update_order_status(
    order_id: uuid.UUID,
    data: OrderStatusUpdate,
    store: Store,
    operator: OperatorCaller,
):
    """Move an order to the next lifecycle stage, or cancel it. Operators only."""
    service = OrderService(store)
    return await service.set_status(order_id, data.status, operator, notes=data.notes)
