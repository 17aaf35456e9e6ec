"""
Pytest configuration and shared fixtures for the storefront tests.

Provides an in-memory SQLite session per test, an HTTP client bound to that
session, a file-backed database for concurrency tests, and catalog/order
fixtures. Plain helpers live in tests/helpers.py.
"""
import os
import tempfile

# Test-only settings; must be in place before config.settings is created.
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-for-pytest-only")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PROOF_STORAGE_DIR", tempfile.mkdtemp(prefix="storefront-proofs-"))
os.environ.setdefault("ENVIRONMENT", "development")

from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, enable_sqlite_foreign_keys, get_db
from domain.enums import Role
from services import catalog_service
from tests.helpers import ADMIN_ID, CUSTOMER_ID, OTHER_CUSTOMER_ID, auth_headers, place_order


# ── Database Fixtures ────────────────────────────────────────────────


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create an in-memory SQLite database session for each test.

    Uses StaticPool to allow in-memory SQLite with async SQLAlchemy.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def file_session_maker(tmp_path):
    """
    Session factory over a file-backed SQLite database.

    Each session gets its own connection, so concurrent unit-of-work tests
    really contend on the database locks.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'race.db'}",
        connect_args={"timeout": 30},
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, with get_db bound to the test session."""
    from main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


# ── Auth Fixtures ────────────────────────────────────────────────────


@pytest.fixture
def customer_headers() -> dict:
    return auth_headers(CUSTOMER_ID, Role.CUSTOMER)


@pytest.fixture
def other_customer_headers() -> dict:
    return auth_headers(OTHER_CUSTOMER_ID, Role.CUSTOMER)


@pytest.fixture
def admin_headers() -> dict:
    return auth_headers(ADMIN_ID, Role.ADMIN)


# ── Test Data Fixtures ────────────────────────────────────────────────


@pytest_asyncio.fixture
async def product(db_session: AsyncSession):
    """Catalog product P: price 10.00, stock 5."""
    p = await catalog_service.create_product(
        db_session, name="Phone Case", price=Decimal("10.00"), stock=5
    )
    await db_session.commit()
    return p


@pytest_asyncio.fixture
async def second_product(db_session: AsyncSession):
    """Catalog product Q: price 2.50, stock 1."""
    p = await catalog_service.create_product(
        db_session, name="Screen Protector", price=Decimal("2.50"), stock=1
    )
    await db_session.commit()
    return p


@pytest_asyncio.fixture
async def pending_order(db_session: AsyncSession, product):
    """PENDING order for 3 x P (total 30.00) with a PENDING payment."""
    return await place_order(db_session, [{"product_id": product.id, "quantity": 3}])
