from typing import List

from fastapi import APIRouter, HTTPException, status

from app.api.deps import DB, CurrentUser, OperatorCaller
from app.models.user import User
from app.schemas.user import (
    AuthResponse,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    UserResponse,
)
from app.services.auth_service import AuthService

router = APIRouter(tags=["Users"])


def _auth_response(user: User, token: str) -> AuthResponse:
    return AuthResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        phone=user.phone,
        is_admin=user.is_admin,
        token=token,
    )


@router.post("", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    db: DB,
):
    """
    Register a new customer account and return a bearer token.
    """
    auth_service = AuthService(db)
    user = await auth_service.register_user(data)
    return _auth_response(user, auth_service.create_token(user))


@router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    db: DB,
):
    """
    Authenticate user and return an access token.
    """
    auth_service = AuthService(db)

    user = await auth_service.authenticate_user(data.email, data.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return _auth_response(user, auth_service.create_token(user))


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: CurrentUser):
    return current_user


@router.put("/profile", response_model=AuthResponse)
async def update_profile(
    data: ProfileUpdate,
    current_user: CurrentUser,
    db: DB,
):
    """Update the caller's profile; a fresh token is issued."""
    auth_service = AuthService(db)
    user = await auth_service.update_profile(current_user, data)
    return _auth_response(user, auth_service.create_token(user))


@router.get("", response_model=List[UserResponse])
async def list_users(
    operator: OperatorCaller,
    db: DB,
):
    """All registered users. Operators only."""
    auth_service = AuthService(db)
    return await auth_service.list_users(operator)
