"""Test configuration and fixtures."""

from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal
from fnmatch import fnmatch
from typing import Any
from uuid import UUID

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.core.permissions import Role
from app.core.redis_client import get_redis
from app.core.security import create_access_token
from app.models import (
    Batch,
    BatchHistory,
    Course,
    Fee,
    FeeStatus,
    Location,
    Payment,
    PaymentStatus,
    Student,
    User,
)
from app.schemas.batch_switch import ActorContext
from main import app

# In-memory SQLite, one connection shared by every session of a test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def _enable_sqlite_foreign_keys(dbapi_conn, connection_record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class FakeRedis:
    """In-memory stand-in for the parts of redis.asyncio.Redis the service uses."""

    def __init__(self) -> None:
        self.store: dict[str, Any] = {}

    async def get(self, key: str) -> Any:
        return self.store.get(key)

    async def set(self, key: str, value: Any, ex: int | None = None) -> bool:
        self.store[key] = value
        return True

    async def scan_iter(self, match: str | None = None, count: int | None = None):
        for key in list(self.store):
            if match is None or fnmatch(key, match):
                yield key

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_maker: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Get database session for tests."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def client(
    session_maker: async_sessionmaker[AsyncSession],
    redis: FakeRedis,
) -> AsyncGenerator[AsyncClient, None]:
    """Get async HTTP client wired to the test database and fake Redis."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    async def override_get_redis() -> FakeRedis:
        return redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


# ============== Domain Fixtures ==============


async def _save(db: AsyncSession, obj):
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return obj


@pytest_asyncio.fixture
async def location(db: AsyncSession) -> Location:
    return await _save(db, Location(name="Main Campus"))


@pytest_asyncio.fixture
async def other_location(db: AsyncSession) -> Location:
    return await _save(db, Location(name="North Campus"))


@pytest_asyncio.fixture
async def counsellor(db: AsyncSession, location: Location) -> User:
    """A user allowed to switch batches at the main location."""
    return await _save(
        db,
        User(
            email="counsellor@example.com",
            first_name="Cora",
            last_name="Counsellor",
            role=Role.COUNSELLOR,
            location_id=location.id,
        ),
    )


@pytest_asyncio.fixture
async def actor(counsellor: User) -> ActorContext:
    return ActorContext(
        logged_by_id=counsellor.id,
        location_id=counsellor.location_id,
        display_name=counsellor.full_name,
    )


@pytest_asyncio.fixture
async def course_a(db: AsyncSession) -> Course:
    return await _save(db, Course(name="Full Stack", base_fee=Decimal("1000.00")))


@pytest_asyncio.fixture
async def course_b(db: AsyncSession) -> Course:
    return await _save(db, Course(name="Data Analytics", base_fee=Decimal("800.00")))


@pytest_asyncio.fixture
async def batch_1(db: AsyncSession, course_a: Course, location: Location) -> Batch:
    """Source batch, the student is already counted in it."""
    return await _save(
        db,
        Batch(
            name="FS-Morning",
            course_id=course_a.id,
            location_id=location.id,
            slot_limit=10,
            current_count=1,
        ),
    )


@pytest_asyncio.fixture
async def batch_2(db: AsyncSession, course_b: Course, location: Location) -> Batch:
    """Target batch with base fee 800."""
    return await _save(
        db,
        Batch(
            name="DA-Evening",
            course_id=course_b.id,
            location_id=location.id,
            slot_limit=10,
            current_count=3,
        ),
    )


@pytest_asyncio.fixture
async def batch_3(db: AsyncSession, course_a: Course, location: Location) -> Batch:
    return await _save(
        db,
        Batch(
            name="FS-Weekend",
            course_id=course_a.id,
            location_id=location.id,
            slot_limit=5,
            current_count=0,
        ),
    )


@pytest_asyncio.fixture
async def full_batch(db: AsyncSession, course_b: Course, location: Location) -> Batch:
    return await _save(
        db,
        Batch(
            name="DA-Full",
            course_id=course_b.id,
            location_id=location.id,
            slot_limit=2,
            current_count=2,
        ),
    )


@pytest_asyncio.fixture
async def student(db: AsyncSession, batch_1: Batch, location: Location) -> Student:
    return await _save(
        db,
        Student(
            first_name="Sam",
            last_name="Student",
            location_id=location.id,
            current_batch_id=batch_1.id,
        ),
    )


@pytest_asyncio.fixture
async def fee(db: AsyncSession, student: Student, batch_1: Batch) -> Fee:
    """Open fee: 1000 charged, 500 still owed."""
    return await _save(
        db,
        Fee(
            student_id=student.id,
            batch_id=batch_1.id,
            total_course_fee=Decimal("1000.00"),
            final_fee=Decimal("1000.00"),
            balance_amount=Decimal("500.00"),
            advance_amount=Decimal("100.00"),
            status=FeeStatus.PENDING,
        ),
    )


@pytest_asyncio.fixture
async def payments(db: AsyncSession, student: Student, fee: Fee) -> list[Payment]:
    """500 paid in two live payments, plus one cancelled payment that does not count."""
    items = [
        Payment(student_id=student.id, fee_id=fee.id, amount=Decimal("300.00")),
        Payment(student_id=student.id, fee_id=fee.id, amount=Decimal("200.00")),
        Payment(
            student_id=student.id,
            fee_id=fee.id,
            amount=Decimal("150.00"),
            status=PaymentStatus.CANCELLED,
        ),
    ]
    db.add_all(items)
    await db.commit()
    for item in items:
        await db.refresh(item)
    return items


# ============== Helpers ==============


async def snapshot_state(db: AsyncSession, student_id: UUID) -> dict[str, Any]:
    """Read everything a switch can touch straight from the database."""
    student_row = (
        await db.execute(select(Student.current_batch_id).where(Student.id == student_id))
    ).one()
    batches = (
        await db.execute(select(Batch.id, Batch.current_count).order_by(Batch.id))
    ).all()
    fees = (
        await db.execute(
            select(Fee.id, Fee.status, Fee.final_fee, Fee.balance_amount, Fee.transfer_id)
            .where(Fee.student_id == student_id)
            .order_by(Fee.id)
        )
    ).all()
    payment_rows = (
        await db.execute(
            select(Payment.id, Payment.fee_id, Payment.amount, Payment.status)
            .where(Payment.student_id == student_id)
            .order_by(Payment.id)
        )
    ).all()
    history = (
        await db.execute(
            select(BatchHistory.id).where(BatchHistory.student_id == student_id).order_by(BatchHistory.id)
        )
    ).all()
    return {
        "current_batch_id": student_row.current_batch_id,
        "batches": [tuple(row) for row in batches],
        "fees": [tuple(row) for row in fees],
        "payments": [tuple(row) for row in payment_rows],
        "history": [tuple(row) for row in history],
    }


def token_for(user: User) -> str:
    return create_access_token(data={"sub": str(user.id)})


def auth_header(token: str) -> dict[str, str]:
    """Create authorization header."""
    return {"Authorization": f"Bearer {token}"}


def switch_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "changeDate": date(2026, 10, 1).isoformat(),
        "reason": "Timing clash with work",
    }
    payload.update(overrides)
    return payload
