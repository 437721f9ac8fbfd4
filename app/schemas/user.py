from pydantic import EmailStr, Field
from typing import Optional
from datetime import datetime
import uuid

from app.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema


class RegisterRequest(BaseCreateSchema):
    """Account registration. The national id number is required for plate registration."""
    name: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: str = Field(..., min_length=1, max_length=30)
    id_number: str = Field(..., min_length=1, max_length=50)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)


class LoginRequest(BaseCreateSchema):
    email: EmailStr
    password: str


class ProfileUpdate(BaseUpdateSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    password: Optional[str] = Field(None, min_length=6)


class UserResponse(BaseResponseSchema):
    id: uuid.UUID
    name: str
    email: str
    phone: str
    address: Optional[str] = None
    city: Optional[str] = None
    is_admin: bool
    is_active: bool
    created_at: datetime


class AuthResponse(BaseResponseSchema):
    """Register / login payload: the user plus a bearer token."""
    id: uuid.UUID
    name: str
    email: str
    phone: str
    is_admin: bool
    token: str
    token_type: str = "bearer"
