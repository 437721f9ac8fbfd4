# Models module - importing registers every table with Base.metadata
from app.models.user import User
from app.models.plate import Plate, PlateType
from app.models.order import (
    Order,
    OrderItem,
    OrderStatusHistory,
    OrderStatus,
    ShippingMethod,
    PaymentMethod,
)

__all__ = [
    "User",
    "Plate",
    "PlateType",
    "Order",
    "OrderItem",
    "OrderStatusHistory",
    "OrderStatus",
    "ShippingMethod",
    "PaymentMethod",
]
