"""Batch history service - append-only log of batch switches."""

from datetime import date
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.batch_history import BatchHistory, FeeManageMode
from app.models.fee import FeeStatus


async def append_history(
    db: AsyncSession,
    *,
    student_id: UUID,
    from_batch_id: UUID,
    to_batch_id: UUID,
    change_date: date,
    reason: str | None,
    transfer_id: UUID,
    fee_id_from: UUID,
    fee_id_to: UUID,
    fee_manage_mode: FeeManageMode,
    fee_from_status: FeeStatus | None,
) -> BatchHistory:
    """Record one switch. Flushes, does not commit."""
    history = BatchHistory(
        student_id=student_id,
        from_batch_id=from_batch_id,
        to_batch_id=to_batch_id,
        change_date=change_date,
        reason=reason,
        transfer_id=transfer_id,
        fee_id_from=fee_id_from,
        fee_id_to=fee_id_to,
        fee_manage_mode=fee_manage_mode,
        fee_from_status=fee_from_status,
    )
    db.add(history)
    await db.flush()
    return history


async def get_latest_history(db: AsyncSession, student_id: UUID) -> BatchHistory | None:
    """Get the student's most recent switch, locked for update."""
    result = await db.execute(
        select(BatchHistory)
        .where(BatchHistory.student_id == student_id)
        .order_by(BatchHistory.created_at.desc())
        .limit(1)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_history_for_student(
    db: AsyncSession,
    student_id: UUID,
) -> list[BatchHistory]:
    """Get every switch of a student, newest first."""
    result = await db.execute(
        select(BatchHistory)
        .where(BatchHistory.student_id == student_id)
        .order_by(BatchHistory.created_at.desc())
    )
    return list(result.scalars().all())


async def delete_history(db: AsyncSession, history_id: UUID) -> None:
    """Delete a history row. Only the edit engine reverses switches."""
    await db.execute(delete(BatchHistory).where(BatchHistory.id == history_id))
