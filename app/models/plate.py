import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, Integer, Text, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType, PLATE_TEXT_LENGTH


class PlateType(str, Enum):
    """Plate tier - decides format rule and unit price."""
    SPECIAL = "special"                  # Number sequence with "00"
    STANDARD_CUSTOM = "standard_custom"  # Star plate, may carry one heart
    PRESTIGE = "prestige"                # Premium custom with landscape background


class Plate(Base):
    """
    Plate catalog entry.

    Ordered plates stay in the catalog with ``is_available`` false. The
    unique constraint on the normalized ``text`` is what guarantees two
    customers can never reserve the same plate.
    """
    __tablename__ = "plates"
    __table_args__ = (
        UniqueConstraint("text", name="uq_plates_text"),
        Index("ix_plates_type_created", "plate_type", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    plate_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        comment="special, standard_custom, prestige"
    )
    text: Mapped[str] = mapped_column(
        String(PLATE_TEXT_LENGTH),
        nullable=False,
        comment="Normalized (uppercase) plate text"
    )
    price: Mapped[int] = mapped_column(Integer, nullable=False, comment="Unit price in KES")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    background_index: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    is_available: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="False once the text has been reserved by an order"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<Plate(text='{self.text}', type='{self.plate_type}', available={self.is_available})>"
