"""Database configuration."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TypeVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Uuid, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.core.config import settings
from app.core.exceptions import TransactionFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")

engine = create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class BaseModel(Base):
    """Base model with common fields: id, created_at, updated_at."""

    __abstract__ = True

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    # Client-side default keeps microseconds, so "latest row" ordering is stable
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


async def get_db() -> AsyncSession:
    """Dependency for getting database session."""
    async with async_session_maker() as session:
        yield session


async def atomic(
    db: AsyncSession,
    work: Callable[[], Awaitable[T]],
    *,
    timeout: float | None = None,
) -> T:
    """
    Run `work` as one all-or-nothing unit of work on `db`.

    Commits when `work` returns, rolls back on any failure. Storage errors
    and timeouts surface as TransactionFailureError; everything else is
    re-raised as it is.
    """
    if timeout is None:
        timeout = settings.SWITCH_TRANSACTION_TIMEOUT_SECONDS

    try:
        async with asyncio.timeout(timeout):
            result = await work()
            await db.commit()
    except TimeoutError as exc:
        await db.rollback()
        logger.exception("Unit of work exceeded %.1fs budget", timeout)
        raise TransactionFailureError("Operation timed out, no changes were applied") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Unit of work failed at the storage layer")
        raise TransactionFailureError("Storage failure, no changes were applied") from exc
    except Exception:
        await db.rollback()
        raise
    return result
