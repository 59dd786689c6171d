"""Batch switch schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

from app.models.batch_history import FeeManageMode
from app.models.fee import FeeStatus

T = TypeVar("T")


class ActorContext(BaseModel):
    """Who is performing a switch, and from which location."""

    logged_by_id: UUID
    location_id: UUID | None = None
    display_name: str

    model_config = {"frozen": True}


class BatchSwitchRequest(BaseModel):
    """Move a student from their current batch to another one."""

    student_id: UUID = Field(validation_alias=AliasChoices("student_id", "studentId"))
    from_batch_id: UUID = Field(validation_alias=AliasChoices("from_batch_id", "fromBatchId"))
    to_batch_id: UUID = Field(validation_alias=AliasChoices("to_batch_id", "toBatchId"))
    change_date: date = Field(validation_alias=AliasChoices("change_date", "changeDate"))
    reason: str | None = Field(None, max_length=1000)
    # Checked by the engine, so an unknown action is a 400 rather than a 422
    fee_action: str = Field(validation_alias=AliasChoices("fee_action", "feeAction"))


class BatchSwitchEditRequest(BaseModel):
    """Replace the student's latest switch with a different one."""

    student_id: UUID = Field(validation_alias=AliasChoices("student_id", "studentId"))
    batch_history_id: UUID = Field(
        validation_alias=AliasChoices("batch_history_id", "batchHistoryId")
    )
    new_to_batch_id: UUID = Field(
        validation_alias=AliasChoices("new_to_batch_id", "newToBatchId")
    )
    new_fee_action: str = Field(
        validation_alias=AliasChoices("new_fee_action", "newFeeAction")
    )
    change_date: date = Field(validation_alias=AliasChoices("change_date", "changeDate"))
    reason: str | None = Field(None, max_length=1000)


class FeeResponse(BaseModel):
    """Fee response schema."""

    id: UUID
    student_id: UUID
    batch_id: UUID
    total_course_fee: Decimal
    final_fee: Decimal
    balance_amount: Decimal
    advance_amount: Decimal | None
    status: FeeStatus
    transfer_id: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BatchHistoryResponse(BaseModel):
    """Batch history response schema."""

    id: UUID
    student_id: UUID
    from_batch_id: UUID
    to_batch_id: UUID
    change_date: date
    reason: str | None
    transfer_id: UUID
    fee_id_from: UUID
    fee_id_to: UUID
    fee_manage_mode: FeeManageMode
    created_at: datetime

    model_config = {"from_attributes": True}


class BatchSwitchData(BaseModel):
    """Payload returned by a successful switch."""

    batch_history: BatchHistoryResponse
    old_fee: FeeResponse
    new_fee: FeeResponse | None = None
    transfer_id: UUID


class BatchSwitchEditData(BaseModel):
    """Payload returned by a successful edit."""

    reverted_history_id: UUID
    batch_history: BatchHistoryResponse | None = None
    new_fee: FeeResponse | None = None
    transfer_id: UUID | None = None


class ApiResponse(BaseModel, Generic[T]):
    """Standard response envelope."""

    success: bool = True
    message: str
    data: T | None = None
