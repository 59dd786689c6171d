"""Pydantic schemas."""

from app.schemas.batch_switch import (
    ActorContext,
    ApiResponse,
    BatchHistoryResponse,
    BatchSwitchData,
    BatchSwitchEditData,
    BatchSwitchEditRequest,
    BatchSwitchRequest,
    FeeResponse,
)

__all__ = [
    # Actor
    "ActorContext",
    # Requests
    "BatchSwitchRequest",
    "BatchSwitchEditRequest",
    # Responses
    "ApiResponse",
    "BatchHistoryResponse",
    "BatchSwitchData",
    "BatchSwitchEditData",
    "FeeResponse",
]
