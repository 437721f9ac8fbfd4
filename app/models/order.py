import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text, Index, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType, OWNER_ID_LENGTH, PLATE_TEXT_LENGTH

if TYPE_CHECKING:
    from app.models.plate import Plate


class OrderStatus(str, Enum):
    """Order status enumeration - linear lifecycle."""
    PENDING = "pending"                        # Order received, awaiting payment
    PAYMENT_COMPLETED = "payment_completed"    # Customer paid
    PROCESSING = "processing"                  # Plate being manufactured
    SHIPPED = "shipped"                        # Handed to courier / ready for pickup
    DELIVERED = "delivered"                    # Final state
    CANCELLED = "cancelled"                    # Reachable from any state before delivery


class ShippingMethod(str, Enum):
    """Shipping method enumeration."""
    FREE = "free"
    EXPRESS = "express"
    PICKUP = "pickup"


class PaymentMethod(str, Enum):
    """Payment method enumeration."""
    CARD = "card"
    MPESA = "mpesa"


class Order(Base):
    """
    Plate order.
    Tracks a purchase from checkout to delivery. Orders are never deleted.
    """
    __tablename__ = "orders"
    __table_args__ = (
        Index('ix_order_owner_created', 'owner_id', 'created_at'),
        Index('ix_order_status_created', 'status', 'created_at'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    # Owner: registered user id or guest id
    owner_id: Mapped[str] = mapped_column(
        String(OWNER_ID_LENGTH),
        nullable=False,
        index=True
    )

    # Status
    status: Mapped[str] = mapped_column(
        String(30),
        default="pending",
        nullable=False,
        comment="pending, payment_completed, processing, shipped, delivered, cancelled"
    )

    # Shipping
    shipping_method: Mapped[str] = mapped_column(
        String(20),
        default="free",
        nullable=False,
        comment="free, express, pickup"
    )
    shipping_cost: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Pricing (integer KES)
    total_amount: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Sum of line item totals plus shipping"
    )

    # Payment
    payment_method: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="card, mpesa"
    )
    payment_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Delivery / pickup contact
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.created_at"
    )
    status_history: Mapped[List["OrderStatusHistory"]] = relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.created_at"
    )

    @property
    def items_total(self) -> int:
        return sum(item.line_total for item in self.items)

    @property
    def calculated_total(self) -> int:
        """Total recomputed from line items; always equals total_amount once created."""
        return self.items_total + self.shipping_cost

    def __repr__(self) -> str:
        return f"<Order(id='{self.id}', status='{self.status}')>"


class OrderItem(Base):
    """Order line item. Created with the order, never modified."""
    __tablename__ = "order_items"
    __table_args__ = (
        # A catalog entry is reserved by at most one line item
        UniqueConstraint("plate_id", name="uq_order_items_plate"),
        CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    plate_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("plates.id", ondelete="RESTRICT"),
        nullable=False
    )

    # Plate snapshot (stored for historical record)
    plate_text: Mapped[str] = mapped_column(String(PLATE_TEXT_LENGTH), nullable=False, index=True)
    plate_type: Mapped[str] = mapped_column(String(30), nullable=False)
    background_index: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Quantity & Pricing
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    unit_price: Mapped[int] = mapped_column(Integer, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    order: Mapped["Order"] = relationship("Order", back_populates="items")
    plate: Mapped["Plate"] = relationship("Plate")

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity

    def __repr__(self) -> str:
        return f"<OrderItem(plate='{self.plate_text}', qty={self.quantity})>"


class OrderStatusHistory(Base):
    """Order status change history."""
    __tablename__ = "order_status_history"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    from_status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    to_status: Mapped[str] = mapped_column(String(30), nullable=False)

    # Opaque caller id (user or guest)
    changed_by: Mapped[Optional[str]] = mapped_column(String(OWNER_ID_LENGTH), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    order: Mapped["Order"] = relationship("Order", back_populates="status_history")

    def __repr__(self) -> str:
        return f"<OrderStatusHistory(from='{self.from_status}', to='{self.to_status}')>"
