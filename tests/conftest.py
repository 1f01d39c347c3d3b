import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from datetime import date, datetime
from decimal import Decimal
from typing import AsyncGenerator, Iterable, Tuple
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from academy.auth.security import create_access_token
from academy.core.enums import Role, SessionStatus
from academy.core.models import AcademyClass, ClassSession, ClassStudent, ClassTeacher, Subscription
from academy.db.session import Base, get_db
from academy.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
async def engine():
    """Fresh in-memory database per test; StaticPool keeps every session on one connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def auth_headers():
    def _headers(user_id: UUID, role: Role) -> dict:
        token = create_access_token(subject={"sub": str(user_id), "role": role.value})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def make_class(db_session: AsyncSession):
    """Insert a class with enrollments and explicit sessions (UTC start, end pairs)."""

    async def _make(
        title: str = "Algebra",
        teacher_ids: Iterable[UUID] = (),
        student_ids: Iterable[UUID] = (),
        sessions: Iterable[Tuple[datetime, datetime]] = (),
    ):
        obj = AcademyClass(
            title=title,
            subject="Math",
            start_date=date(2025, 1, 1),
            end_date=date(2025, 12, 31),
            weekly_schedule={},
        )
        db_session.add(obj)
        await db_session.flush()
        db_session.add_all(ClassTeacher(class_id=obj.id, teacher_id=t) for t in teacher_ids)
        db_session.add_all(ClassStudent(class_id=obj.id, student_id=s) for s in student_ids)
        rows = [
            ClassSession(class_id=obj.id, start_date=start, end_date=end, status=SessionStatus.SCHEDULED.value)
            for start, end in sessions
        ]
        db_session.add_all(rows)
        await db_session.commit()
        return obj, rows

    return _make


@pytest.fixture()
def make_plan(db_session: AsyncSession):
    async def _make(hourly_rate: str = "20.00", max_free_absences: int = 2, name: str = "Standard"):
        plan = Subscription(
            name=name,
            hourly_rate=Decimal(hourly_rate),
            hours_per_month=8,
            max_free_absences=max_free_absences,
            currency="USD",
        )
        db_session.add(plan)
        await db_session.commit()
        return plan

    return _make
