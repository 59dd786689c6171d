"""Communication log service - audit entries on a student's timeline."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.communication_log import CommunicationEventType, CommunicationLog


async def add_communication_log_entry(
    db: AsyncSession,
    *,
    logged_by_id: UUID | None,
    event_type: CommunicationEventType,
    event_date: datetime,
    title: str,
    description: str | None,
    student_id: UUID | None,
    location_id: UUID | None,
) -> CommunicationLog:
    """Persist one audit entry in its own commit."""
    entry = CommunicationLog(
        logged_by_id=logged_by_id,
        event_type=event_type,
        event_date=event_date,
        title=title,
        description=description,
        student_id=student_id,
        location_id=location_id,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry
