"""
Storage for the plate catalog and orders.

``StorefrontStore`` is the capability set the catalog, availability and
order services depend on. ``SQLAlchemyStorefrontStore`` is the production
implementation over an ``AsyncSession``; one instance wraps one unit of
work (one request), and nothing is visible to other sessions until
``commit()``.

Every storage call is bounded by ``STORAGE_TIMEOUT_SECONDS``. Timeouts and
connection-level failures surface as ``StorageUnavailable``; unique
constraint violations on plate text surface as ``PlateUnavailable``.
"""
import asyncio
import logging
import uuid
from typing import Awaitable, List, Optional, Protocol, TypeVar

from sqlalchemy import inspect, select, update, func
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from app.config import settings
from app.core.exceptions import PlateUnavailable, StorageUnavailable
from app.core.plate_rules import normalize_plate_text
from app.models.order import Order, OrderItem, OrderStatusHistory
from app.models.plate import Plate

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StorefrontStore(Protocol):
    """Storage capabilities used by the storefront services."""

    async def is_text_reserved(self, text: str) -> bool: ...

    async def find_plate_by_text(self, text: str) -> Optional[Plate]: ...

    async def get_plate(self, plate_id: uuid.UUID) -> Optional[Plate]: ...

    async def list_plates(self, plate_type: Optional[str] = None) -> List[Plate]: ...

    async def add_plate(self, plate: Plate) -> Plate: ...

    async def delete_plate(self, plate: Plate) -> None: ...

    async def reserve_plate(self, plate: Plate) -> Plate: ...

    async def add_order(self, order: Order) -> Order: ...

    async def add_order_item(self, order: Order, item: OrderItem) -> OrderItem: ...

    async def transition_order(
        self, order: Order, from_status: str, to_status: str, **values
    ) -> bool: ...

    async def add_status_history(self, order: Order, entry: OrderStatusHistory) -> None: ...

    async def get_order(self, order_id: uuid.UUID) -> Optional[Order]: ...

    async def list_orders(
        self,
        owner_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Order]: ...

    async def flush(self) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


class SQLAlchemyStorefrontStore:
    """StorefrontStore over a SQLAlchemy AsyncSession."""

    def __init__(self, db: AsyncSession, timeout: Optional[float] = None):
        self.db = db
        self.timeout = timeout if timeout is not None else settings.STORAGE_TIMEOUT_SECONDS

    async def _call(self, awaitable: Awaitable[T]) -> T:
        """Run one storage call under the timeout, translating backend failures."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Storage call exceeded {self.timeout}s")
            raise StorageUnavailable(
                "Storage did not respond in time",
                details={"timeout_seconds": self.timeout},
            )
        except IntegrityError:
            raise
        except (OperationalError, InterfaceError, DBAPIError) as e:
            logger.error(f"Storage backend error: {e}")
            raise StorageUnavailable("Storage is temporarily unavailable")

    # ==================== CATALOG ====================

    async def is_text_reserved(self, text: str) -> bool:
        """Exact, case-insensitive match against line items and reserved catalog entries."""
        normalized = normalize_plate_text(text)

        item_stmt = (
            select(OrderItem.id)
            .where(func.upper(OrderItem.plate_text) == normalized)
            .limit(1)
        )
        result = await self._call(self.db.execute(item_stmt))
        if result.first() is not None:
            return True

        plate_stmt = (
            select(Plate.id)
            .where(
                func.upper(Plate.text) == normalized,
                Plate.is_available == False,  # noqa: E712
            )
            .limit(1)
        )
        result = await self._call(self.db.execute(plate_stmt))
        return result.first() is not None

    async def find_plate_by_text(self, text: str) -> Optional[Plate]:
        stmt = select(Plate).where(Plate.text == normalize_plate_text(text))
        result = await self._call(self.db.execute(stmt))
        return result.scalar_one_or_none()

    async def get_plate(self, plate_id: uuid.UUID) -> Optional[Plate]:
        stmt = select(Plate).where(Plate.id == plate_id)
        result = await self._call(self.db.execute(stmt))
        return result.scalar_one_or_none()

    async def list_plates(self, plate_type: Optional[str] = None) -> List[Plate]:
        stmt = select(Plate)
        if plate_type:
            stmt = stmt.where(Plate.plate_type == plate_type)
        stmt = stmt.order_by(Plate.created_at.desc())
        result = await self._call(self.db.execute(stmt))
        return list(result.scalars().all())

    async def add_plate(self, plate: Plate) -> Plate:
        """Insert a catalog entry; a taken text raises PlateUnavailable."""
        self.db.add(plate)
        try:
            await self._call(self.db.flush())
        except IntegrityError:
            logger.warning(f"Plate text {plate.text} already exists in the catalog")
            raise PlateUnavailable(plate.text)
        return plate

    async def delete_plate(self, plate: Plate) -> None:
        await self._call(self.db.delete(plate))
        await self._call(self.db.flush())

    async def reserve_plate(self, plate: Plate) -> Plate:
        """
        Take a catalog entry off the market.

        New entries are inserted already reserved and rely on the unique
        text constraint. Existing entries are flipped with a conditional
        update; losing that race to another transaction means zero rows.
        """
        if not inspect(plate).persistent:
            plate.is_available = False
            return await self.add_plate(plate)

        stmt = (
            update(Plate)
            .where(Plate.id == plate.id, Plate.is_available == True)  # noqa: E712
            .values(is_available=False)
        )
        result = await self._call(self.db.execute(stmt))
        if result.rowcount != 1:
            logger.warning(f"Plate {plate.text} was reserved by a concurrent order")
            raise PlateUnavailable(plate.text)
        plate.is_available = False
        return plate

    # ==================== ORDERS ====================

    async def add_order(self, order: Order) -> Order:
        self.db.add(order)
        await self._call(self.db.flush())
        return order

    async def add_order_item(self, order: Order, item: OrderItem) -> OrderItem:
        order.items.append(item)
        try:
            await self._call(self.db.flush())
        except IntegrityError:
            logger.warning(f"Plate {item.plate_text} is already attached to another order")
            raise PlateUnavailable(item.plate_text)
        return item

    async def transition_order(
        self, order: Order, from_status: str, to_status: str, **values
    ) -> bool:
        """
        Move an order to ``to_status`` only while it is still in ``from_status``.

        Returns False when another transaction moved the order first; the
        in-memory order is left untouched in that case.
        """
        stmt = (
            update(Order)
            .where(Order.id == order.id, Order.status == from_status)
            .values(status=to_status, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self._call(self.db.execute(stmt))
        if result.rowcount != 1:
            logger.warning(f"Order {order.id} left {from_status} in a concurrent transaction")
            return False

        for field, value in {"status": to_status, **values}.items():
            set_committed_value(order, field, value)
        return True

    async def add_status_history(self, order: Order, entry: OrderStatusHistory) -> None:
        order.status_history.append(entry)
        await self._call(self.db.flush())

    async def get_order(self, order_id: uuid.UUID) -> Optional[Order]:
        stmt = (
            select(Order)
            .options(
                selectinload(Order.items),
                selectinload(Order.status_history),
            )
            .where(Order.id == order_id)
        )
        result = await self._call(self.db.execute(stmt))
        return result.scalar_one_or_none()

    async def list_orders(
        self,
        owner_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Order]:
        """Orders newest first, optionally narrowed to one owner and/or status."""
        stmt = select(Order).options(selectinload(Order.items))

        if owner_id is not None:
            stmt = stmt.where(Order.owner_id == owner_id)
        if status is not None:
            stmt = stmt.where(Order.status == status)

        stmt = stmt.order_by(Order.created_at.desc())
        result = await self._call(self.db.execute(stmt))
        return list(result.scalars().unique().all())

    # ==================== UNIT OF WORK ====================

    async def flush(self) -> None:
        await self._call(self.db.flush())

    async def commit(self) -> None:
        await self._call(self.db.commit())

    async def rollback(self) -> None:
        await self.db.rollback()

