from typing import Annotated, Optional
import uuid
import logging

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.core.security import verify_access_token
from app.core.permissions import GUEST_OWNER_PREFIX, Caller, PermissionChecker
from app.db_types import OWNER_ID_LENGTH
from app.models.user import User
from app.services.auth_service import AuthService
from app.services.storefront_store import SQLAlchemyStorefrontStore, StorefrontStore


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

GUEST_ID_HEADER = "X-Guest-Id"
GUEST_ID_MAX_LENGTH = OWNER_ID_LENGTH - len(GUEST_OWNER_PREFIX)


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _load_user_from_token(db: AsyncSession, token: str) -> User:
    user_id = verify_access_token(token)

    if user_id is None:
        logger.warning("Token verification failed - invalid or expired token")
        raise _credentials_exception()

    try:
        user_uuid = uuid.UUID(user_id)
    except ValueError:
        logger.warning(f"Invalid user_id in token: {user_id}")
        raise _credentials_exception()

    user = await AuthService(db).get_user(user_uuid)

    if user is None:
        logger.warning(f"User {user_id} not found")
        raise _credentials_exception()

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated"
        )

    return user


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Dependency to get the current authenticated user.
    Validates the JWT token and returns the user object.
    """
    return await _load_user_from_token(db, credentials.credentials)


async def get_store(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> StorefrontStore:
    """Storage handle for the request's unit of work."""
    return SQLAlchemyStorefrontStore(db)


async def get_caller(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(optional_security)],
    db: Annotated[AsyncSession, Depends(get_db)],
    x_guest_id: Annotated[Optional[str], Header(alias=GUEST_ID_HEADER)] = None,
) -> Caller:
    """
    Identity an operation runs for: a bearer-token user, or a guest id
    header when guest checkout is enabled.
    """
    if credentials is not None:
        user = await _load_user_from_token(db, credentials.credentials)
        return Caller(id=str(user.id), is_operator=user.is_admin)

    guest_id = (x_guest_id or "").strip()
    if guest_id and settings.GUEST_CHECKOUT_ENABLED:
        if len(guest_id) > GUEST_ID_MAX_LENGTH:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{GUEST_ID_HEADER} must be at most {GUEST_ID_MAX_LENGTH} characters",
            )
        return Caller.guest(guest_id)

    raise _credentials_exception()


async def get_operator(
    caller: Annotated[Caller, Depends(get_caller)],
) -> Caller:
    """Caller with operator capability; anyone else gets 403."""
    PermissionChecker(caller).require_operator()
    return caller


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
DB = Annotated[AsyncSession, Depends(get_db)]
Store = Annotated[StorefrontStore, Depends(get_store)]
CallerDep = Annotated[Caller, Depends(get_caller)]
OperatorCaller = Annotated[Caller, Depends(get_operator)]
