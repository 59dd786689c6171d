# Database models

from app.models.location import Location
from app.models.user import User
from app.models.batch import Batch, Course
from app.models.student import Student
from app.models.fee import (
    OPEN_FEE_STATUSES,
    VOID_PAYMENT_STATUSES,
    Fee,
    FeeStatus,
    Payment,
    PaymentStatus,
)
from app.models.batch_history import BatchHistory, FeeManageMode
from app.models.communication_log import CommunicationEventType, CommunicationLog

__all__ = [
    "Location",
    "User",
    "Course",
    "Batch",
    "Student",
    "Fee",
    "FeeStatus",
    "OPEN_FEE_STATUSES",
    "Payment",
    "PaymentStatus",
    "VOID_PAYMENT_STATUSES",
    "BatchHistory",
    "FeeManageMode",
    "CommunicationLog",
    "CommunicationEventType",
]
