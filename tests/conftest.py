"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database. API tests talk to the
FastAPI app through httpx's ASGI transport with ``get_db`` overridden to
use that database. Tests that need truly parallel transactions use
``file_session_factory``, whose sessions each get their own connection.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-plates-storefront")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.core.permissions import Caller
from app.core.security import create_access_token, get_password_hash
from app.database import Base, get_db
from app.main import app
from app.models.user import User
from app.services.storefront_store import SQLAlchemyStorefrontStore

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """Sessions on a file-backed database, each on its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def store(db):
    return SQLAlchemyStorefrontStore(db)


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _create_user(session_factory, **fields) -> User:
    async with session_factory() as session:
        user = User(password_hash=get_password_hash("secret-pass"), **fields)
        session.add(user)
        await session.commit()
        return user


@pytest_asyncio.fixture
async def operator_user(session_factory) -> User:
    return await _create_user(
        session_factory,
        name="Plate Operator",
        email="operator@plates.test",
        phone="0700000001",
        id_number="OP-0001",
        is_admin=True,
    )


@pytest_asyncio.fixture
async def customer_user(session_factory) -> User:
    return await _create_user(
        session_factory,
        name="Wanjiku Kamau",
        email="wanjiku@plates.test",
        phone="0700000002",
        id_number="ID-0002",
    )


def bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(subject=user.id)}"}


def guest(guest_id: str = "guest-1") -> dict:
    return {"X-Guest-Id": guest_id}


@pytest.fixture
def operator_headers(operator_user) -> dict:
    return bearer(operator_user)


@pytest.fixture
def customer_headers(customer_user) -> dict:
    return bearer(customer_user)


@pytest.fixture
def operator_caller() -> Caller:
    return Caller(id="operator-1", is_operator=True)


@pytest.fixture
def owner_caller() -> Caller:
    return Caller.guest("owner")
