"""CommunicationLog model."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import BaseModel


class CommunicationEventType(str, Enum):
    """Event types written to a student's communication log."""

    BATCH_SWITCHED = "BATCH_SWITCHED"
    BATCH_SWITCH_EDITED = "BATCH_SWITCH_EDITED"


class CommunicationLog(BaseModel):
    """Audit trail entry shown on the student's timeline."""

    __tablename__ = "communication_logs"

    logged_by_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    event_type: Mapped[CommunicationEventType] = mapped_column(String(50), nullable=False)
    event_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    student_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    location_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)

    def __repr__(self) -> str:
        return f"<CommunicationLog(id={self.id}, event={self.event_type})>"
