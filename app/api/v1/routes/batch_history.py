"""Batch history routes: switching a student's batch and editing the latest switch."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import BatchSwitcher, CurrentUser, actor_from_user
from app.core.permissions import Role
from app.core.redis_client import get_redis
from app.models.batch_history import FeeManageMode
from app.schemas.batch_switch import (
    ApiResponse,
    BatchHistoryResponse,
    BatchSwitchData,
    BatchSwitchEditData,
    BatchSwitchEditRequest,
    BatchSwitchRequest,
    FeeResponse,
)
from app.services import batch_history as history_service
from app.services import student as student_service
from app.services.batch_switch import BatchSwitchResult, switch_batch
from app.services.batch_switch_edit import edit_batch_switch

router = APIRouter(prefix="/batch-history", tags=["Batch History"])


# ============== Helper Functions ==============


def can_access_location(user, location_id: UUID | None) -> bool:
    """Check if user can act on data from a specific location."""
    if user.role == Role.OWNER:
        return True
    return user.location_id == location_id


async def ensure_student_access(db: AsyncSession, user, student_id: UUID) -> None:
    """Hide students of other locations behind a 404."""
    student = await student_service.get_student_by_id(db, student_id)
    if student and not can_access_location(user, student.location_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found",
        )


def switch_data(result: BatchSwitchResult) -> BatchSwitchData:
    return BatchSwitchData(
        batch_history=BatchHistoryResponse.model_validate(result.batch_history),
        old_fee=FeeResponse.model_validate(result.old_fee),
        new_fee=FeeResponse.model_validate(result.new_fee) if result.new_fee else None,
        transfer_id=result.transfer_id,
    )


# ============== Endpoints ==============


@router.post("/switch-batch", response_model=ApiResponse[BatchSwitchData])
async def switch_student_batch(
    data: BatchSwitchRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    redis: Annotated[Redis, Depends(get_redis)],
    current_user: BatchSwitcher,
) -> ApiResponse[BatchSwitchData]:
    """
    Move a student to another batch.

    `feeAction` decides what happens to the student's fee:
    TRANSFER keeps it, NEW_FEE replaces it, SPLIT closes it and raises
    the remainder on the new batch.
    """
    await ensure_student_access(db, current_user, data.student_id)

    result = await switch_batch(db, data, actor_from_user(current_user), redis=redis)

    message = "Batch switched successfully"
    if result.batch_history.fee_manage_mode == FeeManageMode.SPLIT:
        message = "Batch switched (SPLIT mode)"
    return ApiResponse(message=message, data=switch_data(result))


@router.put("/edit-batch-switch", response_model=ApiResponse[BatchSwitchEditData])
async def edit_student_batch_switch(
    data: BatchSwitchEditRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    redis: Annotated[Redis, Depends(get_redis)],
    current_user: BatchSwitcher,
) -> ApiResponse[BatchSwitchEditData]:
    """
    Replace the student's latest batch switch.

    Only the most recent switch can be edited. Editing back to the batch
    the student came from simply undoes the switch.
    """
    await ensure_student_access(db, current_user, data.student_id)

    result = await edit_batch_switch(db, data, actor_from_user(current_user), redis=redis)

    payload = BatchSwitchEditData(reverted_history_id=result.reverted_history_id)
    if result.switch:
        switched = switch_data(result.switch)
        payload.batch_history = switched.batch_history
        payload.new_fee = switched.new_fee
        payload.transfer_id = switched.transfer_id
    return ApiResponse(message="Batch switch edited successfully", data=payload)


@router.get("/students/{student_id}", response_model=ApiResponse[list[BatchHistoryResponse]])
async def list_student_batch_history(
    student_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> ApiResponse[list[BatchHistoryResponse]]:
    """List a student's batch switches, newest first. The first one is the editable one."""
    student = await student_service.get_student_by_id(db, student_id)
    if not student or not can_access_location(current_user, student.location_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found",
        )

    history = await history_service.list_history_for_student(db, student_id)
    return ApiResponse(
        message="Batch history fetched successfully",
        data=[BatchHistoryResponse.model_validate(h) for h in history],
    )
