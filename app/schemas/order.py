from pydantic import Field, computed_field
from typing import Optional, List
from datetime import datetime
import uuid

from app.models.order import OrderStatus, PaymentMethod, ShippingMethod
from app.models.plate import PlateType
from app.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema


# ==================== ORDER ITEM SCHEMAS ====================

class OrderItemCreate(BaseCreateSchema):
    """One customized plate in the cart."""
    text: str = Field(..., min_length=1, max_length=16)
    plate_type: PlateType
    quantity: int = Field(1, ge=1)
    background_index: Optional[int] = None
    unit_price: Optional[int] = Field(None, ge=0)  # Override price if needed


class OrderItemResponse(BaseResponseSchema):
    """Order item response schema."""
    id: uuid.UUID
    plate_id: uuid.UUID
    plate_text: str
    plate_type: str
    background_index: Optional[int] = None
    quantity: int
    unit_price: int
    created_at: datetime

    @computed_field
    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


class StatusHistoryResponse(BaseResponseSchema):
    from_status: Optional[str] = None
    to_status: str
    changed_by: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


# ==================== ORDER SCHEMAS ====================

class OrderCreate(BaseCreateSchema):
    """Checkout request: a non-empty cart plus delivery details."""
    items: List[OrderItemCreate] = Field(..., min_length=1)
    shipping_method: ShippingMethod = ShippingMethod.FREE
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=30)


class PaymentUpdate(BaseUpdateSchema):
    """Payment confirmation. The gateway itself is out of scope."""
    payment_method: PaymentMethod
    payment_reference: Optional[str] = Field(None, max_length=100)


class OrderStatusUpdate(BaseUpdateSchema):
    status: OrderStatus
    notes: Optional[str] = None


class OrderResponse(BaseResponseSchema):
    """Order summary, used in listings."""
    id: uuid.UUID
    owner_id: str
    status: str  # VARCHAR in DB
    shipping_method: str
    shipping_cost: int
    total_amount: int = Field(validation_alias="calculated_total")
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    paid_at: Optional[datetime] = None
    address: Optional[str] = None
    city: Optional[str] = None
    phone_number: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    cancelled_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    items: List[OrderItemResponse] = []

    @computed_field
    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)


class OrderDetailResponse(OrderResponse):
    """Order with its status history."""
    status_history: List[StatusHistoryResponse] = []


class OrderCreatedResponse(BaseResponseSchema):
    order: OrderDetailResponse
    payment_url: str
