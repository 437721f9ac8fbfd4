# Services module
from app.services.auth_service import AuthService
from app.services.availability_service import AvailabilityService
from app.services.order_service import OrderService
from app.services.plate_service import PlateService
from app.services.storefront_store import SQLAlchemyStorefrontStore, StorefrontStore

__all__ = [
    "AuthService",
    "AvailabilityService",
    "OrderService",
    "PlateService",
    "SQLAlchemyStorefrontStore",
    "StorefrontStore",
]
