"""
Pytest configuration and shared fixtures.

Every test gets a fresh in-memory SQLite database. API tests talk to the
FastAPI app in-process through httpx's ASGI transport, with get_db pointed at
that database.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.future import select
from sqlalchemy.pool import StaticPool

from edubrain.database import Base, get_db
from edubrain.main import app
from edubrain.models import StudentFee, User
from edubrain.schemas.finance import StudentCreate
from edubrain.services import ledger
from edubrain.services.auth import create_user_token, ensure_default_admin


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def db_engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def admin_user(session_factory) -> User:
    async with session_factory() as db:
        await ensure_default_admin(db)
        result = await db.execute(select(User).where(User.role == "admin"))
        return result.scalars().one()


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return {"Authorization": f"Bearer {create_user_token(admin_user)}"}


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def register_student(session_factory):
    """Factory registering a student straight through the ledger."""

    async def _register(
        name: str = "Asha Verma",
        total_fee="1000",
        due_date: Optional[date] = None,
        phone: str = "9876543210",
    ):
        async with session_factory() as db:
            student_fee, credential = await ledger.register_student(
                db,
                StudentCreate(
                    name=name,
                    phone=phone,
                    email=None,
                    course="B.Sc Physics",
                    total_fee=Decimal(total_fee),
                    due_date=due_date or ledger.utc_today() - timedelta(days=1),
                ),
            )
        return student_fee, credential

    return _register


@pytest.fixture
def fetch_student(session_factory):
    """Re-read a fee record in a fresh session so no cached state is returned."""

    async def _fetch(student_id: int) -> StudentFee:
        async with session_factory() as db:
            return await ledger.get_by_id(db, student_id)

    return _fetch
