from pydantic import Field
from typing import Optional
from datetime import datetime
import uuid

from app.models.plate import PlateType
from app.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema


class PlateCreate(BaseCreateSchema):
    """Catalog entry creation schema."""
    text: str = Field(..., min_length=1, max_length=16)
    plate_type: PlateType
    price: Optional[int] = Field(None, ge=0)  # Defaults to the tier price
    description: Optional[str] = None
    background_index: Optional[int] = None


class PlateUpdate(BaseUpdateSchema):
    """Text and tier are immutable once listed."""
    price: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    background_index: Optional[int] = None


class PlateResponse(BaseResponseSchema):
    id: uuid.UUID
    text: str
    plate_type: str
    price: int
    description: Optional[str] = None
    background_index: Optional[int] = None
    is_available: bool
    created_at: datetime
    updated_at: datetime


class AvailabilityResponse(BaseResponseSchema):
    """Public plate text availability check."""
    text: str
    is_available: bool
    message: str
