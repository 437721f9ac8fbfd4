from datetime import datetime, timezone
from typing import List, Optional
import logging
import uuid

from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.core.exceptions import ValidationError
from app.core.permissions import Caller, PermissionChecker
from app.core.security import (
    verify_and_check_needs_rehash,
    get_password_hash,
    create_access_token,
)
from app.schemas.user import ProfileUpdate, RegisterRequest

logger = logging.getLogger(__name__)


class AuthService:
    """Registration, login and profile management for storefront users."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email.lower())
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def register_user(self, data: RegisterRequest) -> User:
        """
        Register a new user.

        Email and national id number must both be unused; otherwise a
        ValidationError("User already exists") is raised.
        """
        email = data.email.lower()

        stmt = select(User.id).where(
            or_(User.email == email, User.id_number == data.id_number)
        )
        if (await self.db.execute(stmt)).first() is not None:
            raise ValidationError("User already exists")

        user = User(
            name=data.name,
            email=email,
            password_hash=get_password_hash(data.password),
            phone=data.phone,
            id_number=data.id_number,
            address=data.address or None,
            city=data.city or None,
        )

        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration
            await self.db.rollback()
            raise ValidationError("User already exists")
        await self.db.refresh(user)

        logger.info(f"Registered user {user.email}")
        return user

    async def authenticate_user(
        self,
        email: str,
        password: str
    ) -> Optional[User]:
        """
        Authenticate a user by email and password.

        Supports both argon2 and bcrypt password hashes. A password verified
        against a deprecated bcrypt hash is migrated to argon2.

        Returns:
            User object if authentication successful, None otherwise
        """
        user = await self.get_user_by_email(email)

        if user is None:
            return None

        # Verify password and check if hash needs to be upgraded
        is_valid, needs_rehash = verify_and_check_needs_rehash(password, user.password_hash)

        if not is_valid:
            return None

        if not user.is_active:
            return None

        if needs_rehash:
            user.password_hash = get_password_hash(password)

        user.last_login_at = datetime.now(timezone.utc)
        await self.db.commit()

        return user

    def create_token(self, user: User) -> str:
        """Access token for a user; operators carry an ``is_admin`` claim."""
        return create_access_token(
            subject=user.id,
            additional_claims={"email": user.email, "is_admin": user.is_admin},
        )

    async def update_profile(self, user: User, data: ProfileUpdate) -> User:
        """Update name, email, phone, address, city and optionally the password."""
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        password = update_data.pop("password", None)
        if "email" in update_data:
            update_data["email"] = update_data["email"].lower()
            if update_data["email"] != user.email:
                existing = await self.get_user_by_email(update_data["email"])
                if existing is not None:
                    raise ValidationError("User already exists")

        for field, value in update_data.items():
            setattr(user, field, value)
        if password:
            user.password_hash = get_password_hash(password)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ValidationError("User already exists")
        await self.db.refresh(user)

        return user

    async def list_users(self, caller: Caller) -> List[User]:
        """All users, newest first (operators only)."""
        PermissionChecker(caller).require_operator()
        stmt = select(User).order_by(User.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
