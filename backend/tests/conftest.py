"""
Pytest fixtures for test database, client, and authentication.

Each test gets a fresh in-memory SQLite database (aiosqlite) with the full
schema created from the models, so constraints behave as in production.
"""

import os

# Settings are read once at import time; point them at test resources first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_ENABLED", "false")

from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.db.session import commit, get_db
from app.core.security import create_access_token, hash_password
from app.models.enums import EventStatus, UserRole
from app.models.user import User
from app.models.event import Event

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session.

    Successful requests commit (running after-commit hooks); failed ones leave
    the session as is so tests can inspect it.
    """

    async def override_get_db():
        yield db_session
        await commit(db_session)

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _make_user(db_session: AsyncSession, email: str, username: str, role: UserRole) -> User:
    user = User(
        email=email,
        username=username,
        hashed_password=hash_password("testpassword123"),
        role=role.value,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def _headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a regular user in the database."""
    return await _make_user(db_session, "test@example.com", "testuser", UserRole.USER)


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "other@example.com", "otheruser", UserRole.USER)


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "admin@example.com", "adminuser", UserRole.ADMIN)


@pytest_asyncio.fixture
async def auth_token(test_user: User) -> str:
    """Generate a JWT token for the test user."""
    return create_access_token(data={"sub": str(test_user.id)})


@pytest_asyncio.fixture
async def auth_headers(auth_token: str) -> dict:
    """Authorization headers with Bearer token."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return _headers_for(other_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return _headers_for(admin_user)


async def make_event(db_session: AsyncSession, **overrides) -> Event:
    values = dict(
        title="Beach Cleanup",
        description="Community beach cleanup drive",
        category="environmental",
        date=datetime.now(timezone.utc) + timedelta(days=30),
        time="09:00",
        location="Mount Lavinia Beach",
        city="Colombo",
        max_attendees=100,
        current_attendees=0,
        price=Decimal("1000.00"),
        currency="LKR",
        status=EventStatus.ACTIVE.value,
    )
    values.update(overrides)
    event = Event(**values)
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession, admin_user: User) -> Event:
    """An active event 30 days out: 100 spots at 1000.00 each."""
    return await make_event(db_session, organizer_id=admin_user.id)


@pytest_asyncio.fixture
async def full_event(db_session: AsyncSession, admin_user: User) -> Event:
    """An event with no spots left."""
    return await make_event(
        db_session,
        title="Recycling Workshop",
        category="workshop",
        max_attendees=5,
        current_attendees=5,
        organizer_id=admin_user.id,
    )


@pytest_asyncio.fixture
async def discount_event(db_session: AsyncSession, admin_user: User) -> Event:
    """500.00 per person, 10% off for groups of 3 or more."""
    return await make_event(
        db_session,
        title="Composting Seminar",
        category="seminar",
        price=Decimal("500.00"),
        group_discount_enabled=True,
        group_min_size=3,
        group_discount_percentage=Decimal("10"),
        organizer_id=admin_user.id,
    )


def attendee(first_name: str = "Nimal", email: str = "nimal@example.com") -> dict:
    return {"first_name": first_name, "last_name": "Perera", "email": email}


def booking_payload(event_id: int, extra: int = 0) -> dict:
    return {
        "event_id": event_id,
        "attendee_details": attendee(),
        "additional_attendees": [
            attendee(f"Guest{i}", f"guest{i}@example.com") for i in range(extra)
        ],
    }
