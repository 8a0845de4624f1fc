"""
Pytest fixtures for test database, client, and authentication.

Every test gets its own SQLite database file, and every HTTP request its own
session, so commits and rollbacks behave the way they do in production.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from eventbook.main import app
from eventbook.db.base import Base
from eventbook.db.session import get_db
from eventbook.core.security import create_access_token, hash_password
from eventbook.models.user import User, UserRole
from eventbook.models.event import Event


def auth_headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


def booking_payload(**overrides) -> dict:
    payload = {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "phone": "555-0100",
        "numberOfTickets": 1,
    }
    payload.update(overrides)
    return payload


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get a fresh session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _make_user(db_session: AsyncSession, email: str, name: str, role: UserRole) -> User:
    user = User(
        email=email,
        name=name,
        hashed_password=hash_password("testpassword123"),
        role=role.value,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "test@example.com", "Test User", UserRole.USER)


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "other@example.com", "Other User", UserRole.USER)


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "admin@example.com", "Admin User", UserRole.ADMIN)


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    return auth_headers_for(test_user)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return auth_headers_for(other_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


async def _make_event(db_session: AsyncSession, owner: User, title: str, total: int, available: int, days: int = 30) -> Event:
    event = Event(
        title=title,
        description=f"{title} description",
        date_time=datetime.now(timezone.utc) + timedelta(days=days),
        location="Test Venue",
        total_seats=total,
        available_seats=available,
        user_id=owner.id,
    )
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession, admin_user: User) -> Event:
    """Admin-owned event with 50 free seats."""
    return await _make_event(db_session, admin_user, "Test Concert", 50, 50)


@pytest_asyncio.fixture
async def last_seat_event(db_session: AsyncSession, admin_user: User) -> Event:
    return await _make_event(db_session, admin_user, "Last Seat Show", 10, 1)


@pytest_asyncio.fixture
async def sold_out_event(db_session: AsyncSession, admin_user: User) -> Event:
    return await _make_event(db_session, admin_user, "Sold Out Show", 50, 0)


@pytest_asyncio.fixture
async def user_owned_event(db_session: AsyncSession, test_user: User) -> Event:
    """Event owned by a regular (non-admin) user."""
    return await _make_event(db_session, test_user, "Community Meetup", 20, 20, days=10)
