"""Student service."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.student import Student


async def get_student_by_id(
    db: AsyncSession,
    student_id: UUID,
    *,
    lock: bool = False,
) -> Student | None:
    """Get student by ID."""
    query = select(Student).where(Student.id == student_id)
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def set_current_batch(db: AsyncSession, student: Student, batch_id: UUID) -> Student:
    """Point the student at a new batch. Flushes, does not commit."""
    student.current_batch_id = batch_id
    await db.flush()
    return student
