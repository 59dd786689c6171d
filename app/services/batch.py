"""Batch service - batch lookup and occupancy counters."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConsistencyFailureError, PreconditionFailedError
from app.models.batch import Batch


async def lock_batches(db: AsyncSession, *batch_ids: UUID) -> dict[UUID, Batch]:
    """
    Load and lock several batches at once, keyed by ID.

    Rows are locked in primary key order so two switches between the same
    pair of batches in opposite directions cannot deadlock. Missing IDs are
    simply absent from the result.
    """
    result = await db.execute(
        select(Batch)
        .where(Batch.id.in_(set(batch_ids)))
        .options(selectinload(Batch.course))
        .order_by(Batch.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return {batch.id: batch for batch in result.scalars().all()}


def ensure_capacity(batch: Batch) -> None:
    """Raise if the batch has no free seat."""
    if not batch.has_free_slot:
        raise PreconditionFailedError(
            "Target batch is full",
            details={
                "batch_id": str(batch.id),
                "slot_limit": batch.slot_limit,
                "current_count": batch.current_count,
            },
        )


async def move_occupancy(db: AsyncSession, from_batch: Batch, to_batch: Batch) -> None:
    """
    Move one seat from `from_batch` to `to_batch`.

    Both counters must stay within [0, slot_limit]; a source batch that is
    already empty means the stored count is wrong and is reported rather
    than clamped. Moving a seat within the same batch changes nothing.
    """
    if from_batch.id == to_batch.id:
        return
    if from_batch.current_count <= 0:
        raise ConsistencyFailureError(
            "Source batch occupancy is already zero",
            details={"batch_id": str(from_batch.id)},
        )
    ensure_capacity(to_batch)

    from_batch.current_count -= 1
    to_batch.current_count += 1
    await db.flush()
