from fastapi import APIRouter

from app.api.v1.endpoints import (
    # Plate Catalog & Availability
    plates,
    # Order Workflow
    orders,
    # Accounts
    users,
)


# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Plate Catalog ====================
api_router.include_router(
    plates.router,
    prefix="/plates",
    tags=["Plates"]
)

# ==================== Orders ====================
api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["Orders"]
)

# ==================== Accounts ====================
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["Users"]
)
