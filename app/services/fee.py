"""Fee service - fee records, payment attribution and fee arithmetic."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.fee import (
    OPEN_FEE_STATUSES,
    VOID_PAYMENT_STATUSES,
    Fee,
    FeeStatus,
    Payment,
)

ZERO = Decimal("0")


async def get_fee(db: AsyncSession, fee_id: UUID, *, lock: bool = False) -> Fee | None:
    """Get fee by ID."""
    query = select(Fee).where(Fee.id == fee_id)
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_pending_fee(db: AsyncSession, student_id: UUID) -> Fee | None:
    """Get the student's PENDING fee, locked for update."""
    result = await db.execute(
        select(Fee)
        .where(Fee.student_id == student_id, Fee.status == FeeStatus.PENDING)
        .order_by(Fee.created_at.desc())
        .limit(1)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_open_fee(db: AsyncSession, student_id: UUID) -> Fee | None:
    """Get the student's open (PENDING or ACTIVE) fee, locked for update."""
    result = await db.execute(
        select(Fee)
        .where(Fee.student_id == student_id, Fee.status.in_(OPEN_FEE_STATUSES))
        .order_by(Fee.created_at.desc())
        .limit(1)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def total_paid(db: AsyncSession, fee_id: UUID) -> Decimal:
    """Sum of payments on a fee, ignoring cancelled and inactive ones."""
    # Calculated in the database so reassignments in this session are visible
    result = await db.execute(
        select(func.coalesce(func.sum(Payment.amount), 0)).where(
            Payment.fee_id == fee_id,
            Payment.status.not_in(VOID_PAYMENT_STATUSES),
        )
    )
    return Decimal(result.scalar() or 0)


def remaining_after_paid(base_fee: Decimal, paid: Decimal) -> Decimal:
    """What is still owed on `base_fee` once `paid` is credited, never negative."""
    return max(base_fee - paid, ZERO)


def is_settled(fee: Fee, paid: Decimal) -> bool:
    """Whether a fee being closed counts as fully paid."""
    return fee.balance_amount == ZERO or paid >= fee.final_fee


async def create_fee(
    db: AsyncSession,
    *,
    student_id: UUID,
    batch_id: UUID,
    total_course_fee: Decimal,
    final_fee: Decimal,
    balance_amount: Decimal,
    advance_amount: Decimal | None = None,
    transfer_id: UUID | None = None,
    note: str | None = None,
) -> Fee:
    """Create a new PENDING fee. Flushes, does not commit."""
    fee = Fee(
        student_id=student_id,
        batch_id=batch_id,
        total_course_fee=total_course_fee,
        final_fee=final_fee,
        balance_amount=balance_amount,
        advance_amount=advance_amount,
        status=FeeStatus.PENDING,
        transfer_id=transfer_id,
        note=note,
    )
    db.add(fee)
    await db.flush()
    return fee


async def reassign_payments(
    db: AsyncSession,
    from_fee_id: UUID,
    to_fee_id: UUID,
    *,
    include_void: bool = False,
) -> None:
    """
    Re-attribute payments from one fee to another.

    Only `fee_id` changes; amount and status are left untouched. Cancelled
    and inactive payments stay where they are unless `include_void` is set.
    """
    stmt = update(Payment).where(Payment.fee_id == from_fee_id)
    if not include_void:
        stmt = stmt.where(Payment.status.not_in(VOID_PAYMENT_STATUSES))
    await db.execute(
        stmt.values(fee_id=to_fee_id).execution_options(synchronize_session="fetch")
    )


async def set_fee_status(db: AsyncSession, fee: Fee, status: FeeStatus) -> Fee:
    """Transition a fee to `status`. Flushes, does not commit."""
    fee.status = status
    await db.flush()
    return fee


async def delete_fee(db: AsyncSession, fee_id: UUID) -> None:
    """Hard delete a fee row. Only used when reversing the switch that raised it."""
    await db.execute(delete(Fee).where(Fee.id == fee_id))
