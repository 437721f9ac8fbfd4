import uuid

import pytest
from sqlalchemy import func, select

from app.core.exceptions import (
    Forbidden,
    InvalidStatusTransition,
    NotFound,
    PlateUnavailable,
    ValidationError,
)
from app.core.permissions import Caller
from app.models.order import Order, OrderItem, OrderStatus, OrderStatusHistory, PaymentMethod
from app.models.plate import Plate
from app.schemas.order import OrderCreate
from app.services.availability_service import AvailabilityService
from app.services.order_service import OrderService, can_transition


def cart(*items, shipping_method="free"):
    return OrderCreate(
        items=[dict(item) for item in items],
        shipping_method=shipping_method,
        address="Moi Avenue 12",
        city="Nairobi",
        phone_number="0712345678",
    )


def special(text, quantity=1):
    return {"text": text, "plate_type": "special", "quantity": quantity}


async def count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


async def always_free(text):
    return False


# ==================== CREATE ====================


async def test_express_special_order_totals_20500_and_is_pending(store, owner_caller):
    service = OrderService(store)

    order = await service.create_order(
        owner_caller.id, cart(special("KAA007A"), shipping_method="express")
    )

    assert order.status == OrderStatus.PENDING.value
    assert order.shipping_cost == 500
    assert order.total_amount == 20500
    assert [item.plate_text for item in order.items] == ["KAA007A"]
    assert [h.to_status for h in order.status_history] == ["pending"]


async def test_total_equals_line_items_plus_shipping(store, owner_caller):
    service = OrderService(store)

    order = await service.create_order(
        owner_caller.id,
        cart(
            special("KBZ001", quantity=2),
            {"text": "boss1", "plate_type": "prestige", "background_index": 2},
            {"text": "LOVE❤", "plate_type": "standard_custom"},
            shipping_method="express",
        ),
    )

    assert order.total_amount == 2 * 20000 + 80000 + 40000 + 500
    assert order.total_amount == sum(i.unit_price * i.quantity for i in order.items) + order.shipping_cost
    assert order.total_amount == order.calculated_total


async def test_explicit_unit_price_is_used(store, owner_caller):
    service = OrderService(store)

    order = await service.create_order(
        owner_caller.id,
        cart({"text": "ZZ00", "plate_type": "special", "unit_price": 15000}),
    )

    assert order.items[0].unit_price == 15000
    assert order.total_amount == 15000


async def test_ordered_text_is_unavailable_in_any_case(store, owner_caller):
    service = OrderService(store)
    availability = AvailabilityService(store)

    assert await availability.is_available("KAA007A") is True

    await service.create_order(owner_caller.id, cart(special("kaa007a")))

    assert await availability.is_available("KAA007A") is False
    assert await availability.is_available("kaa007a") is False
    assert await availability.is_available("KAA007B") is True


async def test_availability_check_is_idempotent(store):
    availability = AvailabilityService(store)
    results = [await availability.is_available("KDA100") for _ in range(3)]
    assert results == [True, True, True]


async def test_taken_text_aborts_whole_order(store, db, owner_caller):
    service = OrderService(store)
    await service.create_order("someone-else", cart(special("KCC100")))

    with pytest.raises(PlateUnavailable) as exc_info:
        await service.create_order(
            owner_caller.id, cart(special("KCC200"), special("KCC100"))
        )

    assert exc_info.value.text == "KCC100"
    assert await count(db, Order) == 1
    assert await count(db, OrderItem) == 1
    assert await store.find_plate_by_text("KCC200") is None


async def test_failure_mid_write_rolls_back_earlier_items(store, db, owner_caller, monkeypatch):
    service = OrderService(store)
    await service.create_order("someone-else", cart(special("KDD100")))

    # The pre-check misses the conflict, so the first item is written
    # before the reservation of the second one fails
    monkeypatch.setattr(store, "is_text_reserved", always_free)

    with pytest.raises(PlateUnavailable):
        await service.create_order(
            owner_caller.id, cart(special("KDD200"), special("KDD100"))
        )

    assert await count(db, Order) == 1
    assert await count(db, OrderItem) == 1
    assert await count(db, OrderStatusHistory) == 1
    assert await store.find_plate_by_text("KDD200") is None


async def test_concurrent_buyer_on_catalog_entry_loses_conditional_update(
    store, db, owner_caller, monkeypatch
):
    service = OrderService(store)
    db.add(Plate(text="KEE007", plate_type="special", price=20000, is_available=True))
    await db.commit()

    first = await service.create_order("first-buyer", cart(special("KEE007")))

    # Second buyer passed the availability check before the first committed
    monkeypatch.setattr(store, "is_text_reserved", always_free)
    with pytest.raises(PlateUnavailable):
        await service.create_order(owner_caller.id, cart(special("KEE007")))

    assert await count(db, Order) == 1
    items = (await db.execute(select(OrderItem))).scalars().all()
    assert [(i.plate_text, i.order_id) for i in items] == [("KEE007", first.id)]


async def test_concurrent_buyer_on_new_text_hits_unique_constraint(
    store, db, owner_caller, monkeypatch
):
    service = OrderService(store)
    await service.create_order("first-buyer", cart(special("KFF007")))

    async def no_catalog_entry(text):
        return None

    monkeypatch.setattr(store, "is_text_reserved", always_free)
    monkeypatch.setattr(store, "find_plate_by_text", no_catalog_entry)

    with pytest.raises(PlateUnavailable):
        await service.create_order(owner_caller.id, cart(special("KFF007")))

    assert await count(db, Order) == 1
    assert await count(db, OrderItem) == 1
    assert await count(db, Plate) == 1


async def test_duplicate_text_in_cart_is_rejected(store, db, owner_caller):
    service = OrderService(store)

    with pytest.raises(ValidationError):
        await service.create_order(
            owner_caller.id, cart(special("KGG100"), special("kgg100"))
        )
    assert await count(db, Order) == 0


async def test_invalid_text_is_rejected_before_any_write(store, db, owner_caller):
    service = OrderService(store)

    with pytest.raises(ValidationError):
        await service.create_order(owner_caller.id, cart(special("NOZEROS")))
    assert await count(db, Order) == 0


async def test_catalog_tier_mismatch_is_rejected(store, db, owner_caller):
    db.add(Plate(text="BOSS1", plate_type="prestige", price=80000, is_available=True))
    await db.commit()
    service = OrderService(store)

    with pytest.raises(ValidationError):
        await service.create_order(
            owner_caller.id,
            cart({"text": "BOSS1", "plate_type": "standard_custom"}),
        )
    assert await count(db, Order) == 0


# ==================== PAYMENT ====================


async def test_mark_paid_moves_pending_to_payment_completed(store, owner_caller):
    service = OrderService(store)
    order = await service.create_order(owner_caller.id, cart(special("KHH100")))

    paid = await service.mark_paid(order.id, PaymentMethod.MPESA, "QW12ER34", owner_caller)

    assert paid.status == OrderStatus.PAYMENT_COMPLETED.value
    assert paid.payment_method == "mpesa"
    assert paid.payment_reference == "QW12ER34"
    assert paid.paid_at is not None
    assert [h.to_status for h in paid.status_history] == ["pending", "payment_completed"]


async def test_mark_paid_twice_with_same_reference_is_noop(store, owner_caller):
    service = OrderService(store)
    order = await service.create_order(owner_caller.id, cart(special("KHH200")))
    first = await service.mark_paid(order.id, "card", "REF-1", owner_caller)
    paid_at = first.paid_at

    again = await service.mark_paid(order.id, "card", "REF-1", owner_caller)

    assert again.status == OrderStatus.PAYMENT_COMPLETED.value
    assert again.paid_at == paid_at
    assert len(again.status_history) == 2

    with pytest.raises(InvalidStatusTransition):
        await service.mark_paid(order.id, "card", "REF-2", owner_caller)


async def test_mark_paid_requires_owner_even_for_operator(store, owner_caller, operator_caller):
    service = OrderService(store)
    order = await service.create_order(owner_caller.id, cart(special("KHH300")))

    with pytest.raises(Forbidden):
        await service.mark_paid(order.id, "card", "REF", operator_caller)
    with pytest.raises(Forbidden):
        await service.mark_paid(order.id, "card", "REF", Caller.guest("stranger"))


async def test_mark_paid_on_cancelled_order_is_rejected_and_order_unchanged(
    store, owner_caller, operator_caller
):
    service = OrderService(store)
    order = await service.create_order(owner_caller.id, cart(special("KJJ100")))
    await service.set_status(order.id, OrderStatus.CANCELLED, operator_caller)

    with pytest.raises(InvalidStatusTransition):
        await service.mark_paid(order.id, "mpesa", "REF", owner_caller)

    reloaded = await service.get_order(order.id, owner_caller)
    assert reloaded.status == OrderStatus.CANCELLED.value
    assert reloaded.paid_at is None
    assert reloaded.payment_reference is None


async def test_mark_paid_unknown_order(store, owner_caller):
    with pytest.raises(NotFound):
        await OrderService(store).mark_paid(uuid.uuid4(), "card", "REF", owner_caller)


# ==================== STATUS LIFECYCLE ====================


async def test_set_status_unknown_order_is_not_found(store, operator_caller):
    with pytest.raises(NotFound):
        await OrderService(store).set_status(uuid.uuid4(), "processing", operator_caller)


async def test_set_status_requires_operator(store, owner_caller):
    service = OrderService(store)
    order = await service.create_order(owner_caller.id, cart(special("KKK100")))

    with pytest.raises(Forbidden):
        await service.set_status(order.id, OrderStatus.CANCELLED, owner_caller)


async def test_full_lifecycle_to_delivered(store, owner_caller, operator_caller):
    service = OrderService(store)
    order = await service.create_order(owner_caller.id, cart(special("KKK200")))
    await service.mark_paid(order.id, "card", "REF", owner_caller)

    for next_status in ("processing", "shipped", "delivered"):
        order = await service.set_status(order.id, next_status, operator_caller, notes=next_status)

    assert order.status == OrderStatus.DELIVERED.value
    assert order.delivered_at is not None
    assert [h.to_status for h in order.status_history] == [
        "pending", "payment_completed", "processing", "shipped", "delivered",
    ]

    with pytest.raises(InvalidStatusTransition):
        await service.set_status(order.id, OrderStatus.CANCELLED, operator_caller)


async def test_stage_skipping_is_rejected(store, owner_caller, operator_caller):
    service = OrderService(store)
    order = await service.create_order(owner_caller.id, cart(special("KKK300")))

    with pytest.raises(InvalidStatusTransition):
        await service.set_status(order.id, OrderStatus.SHIPPED, operator_caller)

    reloaded = await service.get_order(order.id, operator_caller)
    assert reloaded.status == OrderStatus.PENDING.value


async def test_cancel_keeps_plate_reserved(store, owner_caller, operator_caller):
    service = OrderService(store)
    order = await service.create_order(owner_caller.id, cart(special("KKK400")))

    cancelled = await service.set_status(order.id, "cancelled", operator_caller)

    assert cancelled.cancelled_at is not None
    assert await AvailabilityService(store).is_available("KKK400") is False


def test_transition_table():
    assert can_transition("pending", "payment_completed")
    assert can_transition("shipped", "cancelled")
    assert not can_transition("payment_completed", "pending")
    assert not can_transition("cancelled", "pending")
    assert not can_transition("delivered", "cancelled")
    assert not can_transition("pending", "delivered")


# ==================== RETRIEVAL ====================


async def test_get_order_owner_or_operator_only(store, owner_caller, operator_caller):
    service = OrderService(store)
    order = await service.create_order(owner_caller.id, cart(special("KLL100")))

    assert (await service.get_order(order.id, owner_caller)).id == order.id
    assert (await service.get_order(order.id, operator_caller)).id == order.id
    with pytest.raises(Forbidden):
        await service.get_order(order.id, Caller(id="stranger"))


async def test_list_orders_for_owner_newest_first(store, owner_caller):
    service = OrderService(store)
    first = await service.create_order(owner_caller.id, cart(special("KMM100")))
    second = await service.create_order(owner_caller.id, cart(special("KMM200")))
    await service.create_order("other-owner", cart(special("KMM300")))

    orders = await service.list_orders_for_owner(owner_caller.id)

    assert [o.id for o in orders] == [second.id, first.id]


async def test_operator_listing_filters_by_status(store, owner_caller, operator_caller):
    service = OrderService(store)
    pending = await service.create_order(owner_caller.id, cart(special("KNN100")))
    paid = await service.create_order(owner_caller.id, cart(special("KNN200")))
    await service.mark_paid(paid.id, "card", "REF", owner_caller)

    all_orders = await service.list_orders(operator_caller)
    paid_only = await service.list_orders(operator_caller, status=OrderStatus.PAYMENT_COMPLETED)

    assert {o.id for o in all_orders} == {pending.id, paid.id}
    assert [o.id for o in paid_only] == [paid.id]

    with pytest.raises(Forbidden):
        await service.list_orders(owner_caller)
