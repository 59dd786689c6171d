"""
Batch switch edit service - replace a student's latest switch.

An edit undoes the latest switch exactly and then applies the corrected one,
all in one unit of work. Each fee action is undone by its own inverse:

- TRANSFER touched no fee, so nothing on the fee side is undone.
- NEW_FEE and SPLIT raised a fee: payments on it go back to the source
  fee, the raised fee is deleted and the source fee gets back the status it
  had before the switch.

Only the latest switch is editable, so an undo never has to unwind later
switches built on top of it.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import atomic
from app.core.exceptions import (
    AppException,
    ConsistencyFailureError,
    NotFoundError,
    PreconditionFailedError,
)
from app.models.batch import Batch
from app.models.batch_history import BatchHistory
from app.models.communication_log import CommunicationEventType
from app.models.fee import FeeStatus
from app.models.student import Student
from app.schemas.batch_switch import ActorContext, BatchSwitchEditRequest
from app.services import batch as batch_service
from app.services import batch_history as history_service
from app.services import fee as fee_service
from app.services import student as student_service
from app.services.batch_switch import BatchSwitchResult, apply_switch, parse_fee_action
from app.services.notifications import notify_after_commit

logger = logging.getLogger(__name__)


@dataclass
class BatchSwitchEditResult:
    reverted_history_id: UUID
    student: Student
    # None when the edit only undid the previous switch
    switch: BatchSwitchResult | None = None


async def reverse_switch(
    db: AsyncSession,
    *,
    student: Student,
    history: BatchHistory,
    from_batch: Batch,
    to_batch: Batch,
    restore_seat: bool = True,
) -> None:
    """
    Undo `history` inside the caller's unit of work.

    With `restore_seat` unset the student's seat stays counted in
    `to_batch`; the switch applied next moves it on.
    """
    if restore_seat:
        await batch_service.move_occupancy(db, to_batch, from_batch)
    await student_service.set_current_batch(db, student, from_batch.id)

    if history.changed_fee:
        # Void payments go back too: the raised fee is deleted and payments.fee_id is RESTRICT
        await fee_service.reassign_payments(
            db, history.fee_id_to, history.fee_id_from, include_void=True
        )
        await fee_service.delete_fee(db, history.fee_id_to)

        source_fee = await fee_service.get_fee(db, history.fee_id_from, lock=True)
        if not source_fee:
            raise ConsistencyFailureError(
                "Source fee of the switch no longer exists",
                details={"fee_id": str(history.fee_id_from)},
            )
        await fee_service.set_fee_status(
            db, source_fee, FeeStatus(history.fee_from_status or FeeStatus.PENDING)
        )

    await history_service.delete_history(db, history.id)


async def edit_batch_switch(
    db: AsyncSession,
    request: BatchSwitchEditRequest,
    actor: ActorContext,
    *,
    redis: Redis | None = None,
) -> BatchSwitchEditResult:
    """
    Replace the student's latest switch with a switch to `request.new_to_batch_id`.

    Editing back to the batch the student came from is a plain undo: the
    previous switch is reversed and no new switch is recorded.
    """
    fee_action = parse_fee_action(request.new_fee_action)

    async def work() -> BatchSwitchEditResult:
        student = await student_service.get_student_by_id(db, request.student_id, lock=True)
        if not student:
            raise NotFoundError("Student not found")

        latest = await history_service.get_latest_history(db, student.id)
        if not latest or latest.id != request.batch_history_id:
            raise PreconditionFailedError(
                "Only latest switch can be edited",
                details={"latest_history_id": str(latest.id) if latest else None},
            )
        if student.current_batch_id != latest.to_batch_id:
            raise ConsistencyFailureError(
                "Student is not in the batch recorded by their latest switch",
                details={
                    "current_batch_id": str(student.current_batch_id),
                    "history_to_batch_id": str(latest.to_batch_id),
                },
            )

        batches = await batch_service.lock_batches(
            db, latest.from_batch_id, latest.to_batch_id, request.new_to_batch_id
        )
        new_to_batch = batches.get(request.new_to_batch_id)
        if not new_to_batch:
            raise NotFoundError("Target batch not found")
        prior_from = batches.get(latest.from_batch_id)
        prior_to = batches.get(latest.to_batch_id)
        if not prior_from or not prior_to:
            raise ConsistencyFailureError("A batch referenced by the latest switch no longer exists")

        # Only a plain undo puts the student back into the prior source batch
        undo = new_to_batch.id == prior_from.id
        await reverse_switch(
            db,
            student=student,
            history=latest,
            from_batch=prior_from,
            to_batch=prior_to,
            restore_seat=undo,
        )
        if undo:
            return BatchSwitchEditResult(reverted_history_id=latest.id, student=student)

        open_fee = await fee_service.get_open_fee(db, student.id)
        if not open_fee:
            raise ConsistencyFailureError(
                "Active fee missing",
                details={"student_id": str(student.id)},
            )

        switch = await apply_switch(
            db,
            student=student,
            from_batch=prior_from,
            to_batch=new_to_batch,
            fee=open_fee,
            fee_action=fee_action,
            change_date=request.change_date,
            reason=request.reason,
            seat_batch=prior_to,
        )
        return BatchSwitchEditResult(reverted_history_id=latest.id, student=student, switch=switch)

    try:
        result = await atomic(db, work)
    except AppException as exc:
        if exc.status_code < 500:
            logger.warning(
                "Batch switch edit rejected for student %s: %s", request.student_id, exc.message
            )
        raise

    logger.info(
        "Batch switch %s of student %s edited (%s) by %s",
        result.reverted_history_id,
        result.student.id,
        f"now {fee_action.value} to {result.switch.to_batch.id}" if result.switch else "undone",
        actor.logged_by_id,
    )

    await notify_after_commit(
        db,
        redis,
        actor=actor,
        student_id=result.student.id,
        event_type=CommunicationEventType.BATCH_SWITCH_EDITED,
        title="Batch Switch Edited",
        description=f"Batch switch edited for {result.student.full_name} by {actor.display_name}",
    )
    return result
