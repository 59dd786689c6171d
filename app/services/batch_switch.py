"""
Batch switch service - move a student to another batch and settle the fee.

A switch always moves the student, both occupancy counters and appends one
history row. What happens to the student's fee depends on the fee action:

- TRANSFER: the existing fee is kept as it is; revenue stays with the
  batch that raised it.
- NEW_FEE: a fee for the full course price of the target batch is raised,
  live payments follow it, and the old fee is cancelled.
- SPLIT: the old fee is closed (PAID or INACTIVE) with its payments, and a
  new fee for whatever is still owed on the target course is raised.

All writes of one switch run in a single unit of work.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import atomic
from app.core.exceptions import (
    AppException,
    BusinessRuleViolationError,
    ConsistencyFailureError,
    InvalidFeeActionError,
    NotFoundError,
    PreconditionFailedError,
)
from app.models.batch import Batch
from app.models.batch_history import BatchHistory, FeeManageMode
from app.models.communication_log import CommunicationEventType
from app.models.fee import Fee, FeeStatus
from app.models.student import Student
from app.schemas.batch_switch import ActorContext, BatchSwitchRequest
from app.services import batch as batch_service
from app.services import batch_history as history_service
from app.services import fee as fee_service
from app.services import student as student_service
from app.services.notifications import notify_after_commit

logger = logging.getLogger(__name__)


@dataclass
class SwitchContext:
    """Everything a fee policy needs to know about the switch in progress."""

    student: Student
    from_batch: Batch
    to_batch: Batch
    fee: Fee
    total_paid: Decimal
    transfer_id: UUID


@dataclass
class FeeOutcome:
    old_fee: Fee
    new_fee: Fee | None = None


@dataclass
class BatchSwitchResult:
    batch_history: BatchHistory
    old_fee: Fee
    new_fee: Fee | None
    transfer_id: UUID
    student: Student
    from_batch: Batch
    to_batch: Batch


def parse_fee_action(value: str) -> FeeManageMode:
    """Map a client supplied fee action onto FeeManageMode."""
    try:
        return FeeManageMode(value)
    except ValueError:
        raise InvalidFeeActionError(value) from None


# ============== Fee Policies ==============


async def _transfer_fee(db: AsyncSession, ctx: SwitchContext) -> FeeOutcome:
    return FeeOutcome(old_fee=ctx.fee)


async def _raise_new_fee(db: AsyncSession, ctx: SwitchContext) -> FeeOutcome:
    base_fee = ctx.to_batch.course.base_fee
    new_fee = await fee_service.create_fee(
        db,
        student_id=ctx.student.id,
        batch_id=ctx.to_batch.id,
        total_course_fee=base_fee,
        final_fee=base_fee,
        balance_amount=fee_service.remaining_after_paid(base_fee, ctx.total_paid),
        advance_amount=ctx.fee.advance_amount,
        transfer_id=ctx.transfer_id,
    )
    await fee_service.reassign_payments(db, ctx.fee.id, new_fee.id)
    await fee_service.set_fee_status(db, ctx.fee, FeeStatus.CANCELLED)
    return FeeOutcome(old_fee=ctx.fee, new_fee=new_fee)


async def _split_fee(db: AsyncSession, ctx: SwitchContext) -> FeeOutcome:
    base_fee = ctx.to_batch.course.base_fee
    if ctx.total_paid > base_fee:
        raise BusinessRuleViolationError(
            "Student has paid more than the new batch fee. Please create a new admission.",
            details={"total_paid": ctx.total_paid, "base_fee": base_fee},
        )

    adjusted_fee = fee_service.remaining_after_paid(base_fee, ctx.total_paid)
    new_fee = await fee_service.create_fee(
        db,
        student_id=ctx.student.id,
        batch_id=ctx.to_batch.id,
        total_course_fee=base_fee,
        final_fee=adjusted_fee,
        balance_amount=adjusted_fee,
        transfer_id=ctx.transfer_id,
    )
    closed_status = (
        FeeStatus.PAID if fee_service.is_settled(ctx.fee, ctx.total_paid) else FeeStatus.INACTIVE
    )
    await fee_service.set_fee_status(db, ctx.fee, closed_status)
    return FeeOutcome(old_fee=ctx.fee, new_fee=new_fee)


FEE_POLICIES: dict[FeeManageMode, Callable[[AsyncSession, SwitchContext], Awaitable[FeeOutcome]]] = {
    FeeManageMode.TRANSFER: _transfer_fee,
    FeeManageMode.NEW_FEE: _raise_new_fee,
    FeeManageMode.SPLIT: _split_fee,
}


# ============== Switch ==============


async def apply_switch(
    db: AsyncSession,
    *,
    student: Student,
    from_batch: Batch,
    to_batch: Batch,
    fee: Fee,
    fee_action: FeeManageMode,
    change_date: date,
    reason: str | None,
    seat_batch: Batch | None = None,
) -> BatchSwitchResult:
    """
    Apply one switch inside the caller's unit of work.

    The caller has already loaded and locked every row passed in and
    checked that `student` currently sits in `from_batch`.

    `seat_batch` is the batch whose seat the student gives up, `from_batch`
    when omitted. The edit engine passes the target of the switch it
    replaces, so the recorded source batch keeps its count.
    """
    seat_batch = seat_batch or from_batch
    if seat_batch.id != to_batch.id:
        batch_service.ensure_capacity(to_batch)

    ctx = SwitchContext(
        student=student,
        from_batch=from_batch,
        to_batch=to_batch,
        fee=fee,
        total_paid=await fee_service.total_paid(db, fee.id),
        transfer_id=uuid4(),
    )
    fee_from_status = FeeStatus(fee.status)

    outcome = await FEE_POLICIES[fee_action](db, ctx)

    await batch_service.move_occupancy(db, seat_batch, to_batch)
    await student_service.set_current_batch(db, student, to_batch.id)

    history = await history_service.append_history(
        db,
        student_id=student.id,
        from_batch_id=from_batch.id,
        to_batch_id=to_batch.id,
        change_date=change_date,
        reason=reason,
        transfer_id=ctx.transfer_id,
        fee_id_from=outcome.old_fee.id,
        fee_id_to=outcome.new_fee.id if outcome.new_fee else outcome.old_fee.id,
        fee_manage_mode=fee_action,
        fee_from_status=fee_from_status,
    )

    return BatchSwitchResult(
        batch_history=history,
        old_fee=outcome.old_fee,
        new_fee=outcome.new_fee,
        transfer_id=ctx.transfer_id,
        student=student,
        from_batch=from_batch,
        to_batch=to_batch,
    )


async def switch_batch(
    db: AsyncSession,
    request: BatchSwitchRequest,
    actor: ActorContext,
    *,
    redis: Redis | None = None,
) -> BatchSwitchResult:
    """Move a student from `request.from_batch_id` to `request.to_batch_id`."""
    fee_action = parse_fee_action(request.fee_action)

    async def work() -> BatchSwitchResult:
        student = await student_service.get_student_by_id(db, request.student_id, lock=True)
        if not student:
            raise NotFoundError("Student not found")
        if student.current_batch_id != request.from_batch_id:
            raise PreconditionFailedError(
                "Current batch mismatch",
                details={"current_batch_id": str(student.current_batch_id)},
            )
        if request.to_batch_id == request.from_batch_id:
            raise PreconditionFailedError("Student is already enrolled in the target batch")

        batches = await batch_service.lock_batches(db, request.from_batch_id, request.to_batch_id)
        to_batch = batches.get(request.to_batch_id)
        if not to_batch:
            raise NotFoundError("Target batch not found")
        from_batch = batches.get(request.from_batch_id)
        if not from_batch:
            raise ConsistencyFailureError(
                "Student's current batch does not exist",
                details={"batch_id": str(request.from_batch_id)},
            )
        batch_service.ensure_capacity(to_batch)

        fee = await fee_service.get_pending_fee(db, student.id)
        if not fee:
            raise NotFoundError("Old fee record not found")

        return await apply_switch(
            db,
            student=student,
            from_batch=from_batch,
            to_batch=to_batch,
            fee=fee,
            fee_action=fee_action,
            change_date=request.change_date,
            reason=request.reason,
        )

    try:
        result = await atomic(db, work)
    except AppException as exc:
        if exc.status_code < 500:
            logger.warning("Batch switch rejected for student %s: %s", request.student_id, exc.message)
        raise

    logger.info(
        "Student %s switched %s -> %s (%s, transfer %s) by %s",
        result.student.id,
        result.from_batch.id,
        result.to_batch.id,
        fee_action.value,
        result.transfer_id,
        actor.logged_by_id,
    )

    await notify_after_commit(
        db,
        redis,
        actor=actor,
        student_id=result.student.id,
        event_type=CommunicationEventType.BATCH_SWITCHED,
        title="Batch Switched",
        description=(
            f"Student {result.student.full_name} has been transferred from batch "
            f"{result.from_batch.name} to batch {result.to_batch.name}. "
            f"Switch processed by {actor.display_name}."
        ),
    )
    return result
