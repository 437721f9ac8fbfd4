from typing import Dict, FrozenSet, List, Optional
from datetime import datetime, timezone
import uuid
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.enum_utils import get_enum_value, to_enum
from app.core.exceptions import (
    Forbidden,
    InvalidStatusTransition,
    NotFound,
    PlateUnavailable,
    StorageUnavailable,
    StorefrontError,
    ValidationError,
)
from app.core.permissions import Caller, PermissionChecker
from app.core.plate_rules import validate_background_index, validate_plate_text
from app.models.order import Order, OrderItem, OrderStatus, OrderStatusHistory
from app.models.plate import Plate
from app.schemas.order import OrderCreate
from app.services.availability_service import AvailabilityService
from app.services.pricing_service import order_total, resolve_unit_price, shipping_cost_for
from app.services.storefront_store import StorefrontStore

logger = logging.getLogger(__name__)


# Lifecycle edges. Stages are never skipped; delivered and cancelled are terminal.
ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    OrderStatus.PENDING.value: frozenset({
        OrderStatus.PAYMENT_COMPLETED.value,
        OrderStatus.CANCELLED.value,
    }),
    OrderStatus.PAYMENT_COMPLETED.value: frozenset({
        OrderStatus.PROCESSING.value,
        OrderStatus.CANCELLED.value,
    }),
    OrderStatus.PROCESSING.value: frozenset({
        OrderStatus.SHIPPED.value,
        OrderStatus.CANCELLED.value,
    }),
    OrderStatus.SHIPPED.value: frozenset({
        OrderStatus.DELIVERED.value,
        OrderStatus.CANCELLED.value,
    }),
    OrderStatus.DELIVERED.value: frozenset(),
    OrderStatus.CANCELLED.value: frozenset(),
}


def can_transition(current: str, requested: str) -> bool:
    return requested in ALLOWED_TRANSITIONS.get(current, frozenset())


class OrderService:
    """Order workflow: checkout, payment, lifecycle and retrieval."""

    def __init__(self, store: StorefrontStore):
        self.store = store
        self.availability = AvailabilityService(store)

    # ==================== ORDER CREATION ====================

    async def create_order(self, owner_id: str, data: OrderCreate) -> Order:
        """
        Validate, price and persist an order, reserving every plate text.

        Either the order, all its line items and all reservations are
        committed together, or nothing is written. A text reserved by
        someone else (before the check or concurrently) raises
        PlateUnavailable.
        """
        if not data.items:
            raise ValidationError("Order must contain at least one plate")

        # Normalize and validate every line before touching storage
        lines = []
        seen_texts = set()
        for item_data in data.items:
            text = validate_plate_text(item_data.text, item_data.plate_type)
            background_index = validate_background_index(
                item_data.plate_type, item_data.background_index
            )
            if item_data.quantity < 1:
                raise ValidationError(
                    "Quantity must be at least 1",
                    details={"text": text, "quantity": item_data.quantity},
                )
            if text in seen_texts:
                raise ValidationError(
                    f"Plate {text} appears more than once in the order",
                    details={"text": text},
                )
            seen_texts.add(text)
            lines.append((text, get_enum_value(item_data.plate_type), background_index, item_data))

        # Fail fast on texts that are already taken; nothing is written yet
        for text, _, _, _ in lines:
            if not await self.availability.is_available(text):
                logger.info(f"Order rejected for {owner_id}: plate {text} is taken")
                raise PlateUnavailable(text)

        shipping_cost = shipping_cost_for(data.shipping_method)

        try:
            order = Order(
                owner_id=owner_id,
                status=OrderStatus.PENDING.value,
                shipping_method=get_enum_value(data.shipping_method),
                shipping_cost=shipping_cost,
                total_amount=0,
                address=data.address,
                city=data.city,
                phone_number=data.phone_number,
                items=[],
                status_history=[],
            )
            await self.store.add_order(order)
            await self.store.add_status_history(
                order,
                OrderStatusHistory(
                    from_status=None,
                    to_status=OrderStatus.PENDING.value,
                    changed_by=owner_id,
                    notes="Order created",
                ),
            )

            priced_lines = []
            for text, plate_type, background_index, item_data in lines:
                unit_price = resolve_unit_price(plate_type, item_data.unit_price)
                plate = await self._find_or_build_plate(
                    text, plate_type, background_index, unit_price
                )
                await self.store.reserve_plate(plate)

                await self.store.add_order_item(
                    order,
                    OrderItem(
                        plate_id=plate.id,
                        plate_text=text,
                        plate_type=plate_type,
                        background_index=background_index,
                        quantity=item_data.quantity,
                        unit_price=unit_price,
                    ),
                )
                priced_lines.append((unit_price, item_data.quantity))

            order.total_amount = order_total(priced_lines, shipping_cost)
            await self.store.flush()
            await self.store.commit()

            logger.info(
                f"Order {order.id} created for {owner_id}: "
                f"{len(priced_lines)} plate(s), total {order.total_amount}"
            )
            return await self.store.get_order(order.id)

        except StorefrontError:
            await self.store.rollback()
            raise
        except IntegrityError as e:
            await self.store.rollback()
            logger.error(f"Database integrity error creating order: {e}")
            raise ValidationError("Order creation failed: Invalid data reference")
        except SQLAlchemyError as e:
            await self.store.rollback()
            logger.error(f"Database error creating order: {e}")
            raise StorageUnavailable("Order creation failed: Database error")
        except Exception as e:
            await self.store.rollback()
            logger.error(f"Unexpected error creating order: {e}")
            raise

    async def _find_or_build_plate(
        self,
        text: str,
        plate_type: str,
        background_index: Optional[int],
        unit_price: int,
    ) -> Plate:
        """Catalog entry for ``text``; a new, not yet persisted one when absent."""
        plate = await self.store.find_plate_by_text(text)
        if plate is None:
            return Plate(
                text=text,
                plate_type=plate_type,
                price=unit_price,
                background_index=background_index,
            )

        if plate.plate_type != plate_type:
            raise ValidationError(
                f"Plate {text} is listed as {plate.plate_type}, not {plate_type}",
                details={"text": text, "plate_type": plate.plate_type},
            )
        return plate

    # ==================== PAYMENT ====================

    async def mark_paid(
        self,
        order_id: uuid.UUID,
        payment_method,
        payment_reference: Optional[str],
        caller: Caller,
    ) -> Order:
        """
        Record payment for a pending order. Only the owner may pay.

        Repeating the call with the same reference on an already paid order
        is a no-op.
        """
        order = await self._get_order_or_404(order_id)
        PermissionChecker(caller).require_owner(order.owner_id, action="pay for")

        if order.status == OrderStatus.PAYMENT_COMPLETED.value:
            if order.payment_reference == payment_reference:
                logger.info(f"Order {order.id} already paid with reference {payment_reference}")
                return order
            raise InvalidStatusTransition(
                order.status,
                OrderStatus.PAYMENT_COMPLETED.value,
                message="Order has already been paid with a different reference",
            )

        if order.status != OrderStatus.PENDING.value:
            raise InvalidStatusTransition(order.status, OrderStatus.PAYMENT_COMPLETED.value)

        try:
            moved = await self.store.transition_order(
                order,
                OrderStatus.PENDING.value,
                OrderStatus.PAYMENT_COMPLETED.value,
                payment_method=get_enum_value(payment_method),
                payment_reference=payment_reference,
                paid_at=datetime.now(timezone.utc),
            )
            if not moved:
                raise InvalidStatusTransition(
                    OrderStatus.PENDING.value,
                    OrderStatus.PAYMENT_COMPLETED.value,
                    message="Order status changed while recording payment",
                )
            await self.store.add_status_history(
                order,
                OrderStatusHistory(
                    from_status=OrderStatus.PENDING.value,
                    to_status=OrderStatus.PAYMENT_COMPLETED.value,
                    changed_by=caller.id,
                    notes=f"Paid via {order.payment_method}",
                ),
            )
            await self.store.commit()
        except Exception:
            await self.store.rollback()
            raise

        logger.info(f"Order {order.id} paid via {order.payment_method}")
        return await self.store.get_order(order_id)

    # ==================== STATUS LIFECYCLE ====================

    async def set_status(
        self,
        order_id: uuid.UUID,
        new_status,
        caller: Caller,
        notes: Optional[str] = None,
    ) -> Order:
        """Move an order one step along its lifecycle (operators only)."""
        PermissionChecker(caller).require_operator()

        order = await self._get_order_or_404(order_id)
        requested = get_enum_value(new_status)
        if to_enum(requested, OrderStatus) is None:
            raise ValidationError(f"Unknown order status: {requested}")
        old_status = order.status

        if not can_transition(old_status, requested):
            raise InvalidStatusTransition(old_status, requested)

        # Update timestamps based on status
        timestamps = {}
        if requested == OrderStatus.DELIVERED.value:
            timestamps["delivered_at"] = datetime.now(timezone.utc)
        elif requested == OrderStatus.CANCELLED.value:
            timestamps["cancelled_at"] = datetime.now(timezone.utc)

        try:
            if not await self.store.transition_order(order, old_status, requested, **timestamps):
                raise InvalidStatusTransition(
                    old_status,
                    requested,
                    message="Order status changed concurrently",
                )

            await self.store.add_status_history(
                order,
                OrderStatusHistory(
                    from_status=old_status,
                    to_status=requested,
                    changed_by=caller.id,
                    notes=notes,
                ),
            )
            await self.store.commit()
        except Exception:
            await self.store.rollback()
            raise

        logger.info(f"Order {order.id} moved {old_status} -> {requested} by {caller.id}")
        return await self.store.get_order(order_id)

    # ==================== RETRIEVAL ====================

    async def get_order(self, order_id: uuid.UUID, caller: Caller) -> Order:
        order = await self._get_order_or_404(order_id)
        if not PermissionChecker(caller).can_view_order(order.owner_id):
            raise Forbidden("Not authorized to view this order")
        return order

    async def list_orders_for_owner(self, owner_id: str) -> List[Order]:
        """Orders placed by one owner, newest first."""
        return await self.store.list_orders(owner_id=owner_id)

    async def list_orders(self, caller: Caller, status=None) -> List[Order]:
        """All orders, newest first (operators only)."""
        PermissionChecker(caller).require_operator()
        return await self.store.list_orders(
            status=get_enum_value(status) if status is not None else None
        )

    async def _get_order_or_404(self, order_id: uuid.UUID) -> Order:
        order = await self.store.get_order(order_id)
        if order is None:
            raise NotFound("Order not found", details={"order_id": str(order_id)})
        return order
