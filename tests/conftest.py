import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["AUTH_MODE"] = "jwt"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-for-edumeal-suite-0001"
os.environ["WEBHOOK_SECRET"] = ""
os.environ["TICKET_HASH_SECRET"] = "test-hash-secret"
os.environ["TIMEZONE"] = "UTC"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from edumeal.core.db import Base, get_db
from edumeal.core.deps import AuthUser, get_current_user
from edumeal.main import app
from edumeal.models.student import Student

ADMIN = AuthUser(id="admin-1", email="admin@school.test")


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


def _override_db(session_factory):
    async def _get_db():
        async with session_factory() as session:
            yield session

    return _get_db


@pytest.fixture
async def client(session_factory):
    app.dependency_overrides[get_db] = _override_db(session_factory)
    app.dependency_overrides[get_current_user] = lambda: ADMIN
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def anon_client(session_factory):
    # real bearer-token check
    app.dependency_overrides[get_db] = _override_db(session_factory)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def make_student(session_factory):
    async def _make(
        student_id: str = "STU001",
        first_name: str = "John",
        last_name: str = "Doe",
        grade: str = "5",
        class_name: str = "5A",
        meals_remaining: int = 10,
        is_active: bool = True,
    ) -> Student:
        async with session_factory() as s:
            student = Student(
                student_id=student_id,
                first_name=first_name,
                last_name=last_name,
                grade=grade,
                class_name=class_name,
                meals_remaining=meals_remaining,
                is_active=is_active,
            )
            s.add(student)
            await s.commit()
            await s.refresh(student)
            return student

    return _make


@pytest.fixture
def fetch_student(session_factory):
    async def _fetch(student_id: str) -> Student | None:
        async with session_factory() as s:
            res = await s.execute(select(Student).where(Student.student_id == student_id))
            return res.scalar_one_or_none()

    return _fetch
