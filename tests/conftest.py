"""
tests/conftest.py
Shared fixtures: an in-memory SQLite database per test, an httpx client bound
to the app with get_db overridden, seeded users and catalog rows, and a helper
that mints bearer tokens the way the identity provider does.
"""

import os

# Must be set before config.settings is imported anywhere
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-with-enough-length-for-hs256"
os.environ["APP_ENV"] = "test"
os.environ["DEBUG"] = "false"
os.environ.pop("REDIS_URL", None)
os.environ.pop("SITE_URL", None)

from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from config.database import Base, get_db
from main import app
from shared.models.models import Course, University, User
from shared.utils.security import create_access_token


def auth_headers(user: User, full_name: Optional[str] = None) -> dict:
    """Authorization header carrying a freshly signed token for user."""
    token = create_access_token(
        user.id,
        email=user.email,
        full_name=full_name,
        avatar_url=user.profile_image_url,
    )
    return {"Authorization": f"Bearer {token}"}


def token_headers(user_id: str, email: Optional[str] = None, **claims) -> dict:
    """Authorization header for a subject that may not exist locally yet."""
    token = create_access_token(user_id, email=email, **claims)
    return {"Authorization": f"Bearer {token}"}


# ── Database ──────────────────────────────────────────────────

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ── Users ─────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def user(db: AsyncSession) -> User:
    user = User(
        id="user-0001",
        email="student@example.com",
        first_name="Amina",
        last_name="Rahman",
        is_admin=False,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def other_user(db: AsyncSession) -> User:
    user = User(
        id="user-0002",
        email="other@example.com",
        first_name="Omar",
        last_name="Hassan",
        is_admin=False,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def admin_user(db: AsyncSession) -> User:
    user = User(
        id="admin-0001",
        email="admin@example.com",
        first_name="Admin",
        last_name="User",
        is_admin=True,
    )
    db.add(user)
    await db.commit()
    return user


# ── Catalog ───────────────────────────────────────────────────

@pytest_asyncio.fixture
async def university(db: AsyncSession) -> University:
    university = University(name="University of Oxford", city="Oxford", country="United Kingdom")
    db.add(university)
    await db.commit()
    return university


@pytest_asyncio.fixture
async def course(db: AsyncSession, university: University) -> Course:
    course = Course(
        name="MSc Computer Science",
        university_id=university.id,
        level="Masters",
        duration="12 months",
        tuition_fee=Decimal("35000"),
        currency="GBP",
        ielts_overall=Decimal("7.0"),
        faculty="Computer Science",
    )
    db.add(course)
    await db.commit()
    return course


@pytest_asyncio.fixture
async def second_course(db: AsyncSession, university: University) -> Course:
    course = Course(
        name="MBA Business Administration",
        university_id=university.id,
        level="Masters",
        duration="24 months",
        tuition_fee=Decimal("45000"),
        currency="GBP",
        ielts_overall=Decimal("6.5"),
        faculty="Business",
    )
    db.add(course)
    await db.commit()
    return course
