"""Pytest configuration and shared fixtures."""

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.core.security import hash_password
from app.crud.user import session_crud
from app.main import app
from app.models.recurring_transaction import RecurringTemplate
from app.models.transaction import Category
from app.models.user import User

# Test database URL. StaticPool so in-memory SQLite shares one connection
# (NullPool creates a new connection per call, losing all tables each time)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign keys for SQLite so ON DELETE SET NULL/CASCADE apply."""
    if hasattr(dbapi_conn, "execute"):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    import app.models  # noqa: F401

    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def db(db_session: AsyncSession) -> AsyncSession:
    """Alias for db_session to match test function signatures."""
    return db_session


@pytest.fixture(scope="function")
def override_get_db(db_session: AsyncSession):
    """Override the get_db dependency."""

    async def _override_get_db():
        yield db_session

    return _override_get_db


@pytest.fixture(scope="function")
def client(override_get_db) -> TestClient:
    """Create a test client."""
    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def async_client(override_get_db) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test", follow_redirects=True
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user."""
    user = User(
        id=uuid4(),
        email="test@example.com",
        password_hash=hash_password("password123"),
        name="Test User",
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def second_user(db_session: AsyncSession) -> User:
    """Create a second user for ownership isolation tests."""
    user = User(
        id=uuid4(),
        email="other@example.com",
        password_hash=hash_password("password123"),
        name="Other User",
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def auth_headers(db_session: AsyncSession, test_user: User) -> dict:
    """Authorization header carrying a real session token for test_user."""
    token, _ = await session_crud.create(db_session, test_user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def second_auth_headers(db_session: AsyncSession, second_user: User) -> dict:
    """Authorization header for second_user."""
    token, _ = await session_crud.create(db_session, second_user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_category(db_session: AsyncSession, test_user: User) -> Category:
    """Create a category owned by test_user."""
    category = Category(
        id=uuid4(),
        user_id=test_user.id,
        name="Housing",
        emoji="🏠",
    )
    db_session.add(category)
    await db_session.commit()
    await db_session.refresh(category)
    return category


@pytest.fixture
def make_template(db_session: AsyncSession):
    """Factory for persisted recurring templates."""

    async def _make(
        user: User,
        pattern: str = "monthly",
        last_generated_date: date = date(2024, 1, 15),
        end_date: Optional[date] = None,
        is_active: bool = True,
        amount: Decimal = Decimal("1200.00"),
        name: str = "Rent",
        category: Optional[Category] = None,
    ) -> RecurringTemplate:
        template = RecurringTemplate(
            id=uuid4(),
            user_id=user.id,
            category_id=category.id if category else None,
            name=name,
            description="",
            amount=amount,
            type="expense",
            recurrence_pattern=pattern,
            start_date=last_generated_date,
            last_generated_date=last_generated_date,
            end_date=end_date,
            is_active=is_active,
        )
        db_session.add(template)
        await db_session.commit()
        await db_session.refresh(template)
        return template

    return _make


@pytest.fixture
def sample_transaction_data() -> dict:
    """Sample transaction payload."""
    return {
        "name": "Groceries",
        "description": "Weekly shop",
        "amount": "82.40",
        "type": "expense",
        "date": "2024-02-15",
    }
