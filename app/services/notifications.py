"""Post-commit side effects of a switch: audit entry and cache invalidation."""

import logging
from uuid import UUID

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import utcnow
from app.models.communication_log import CommunicationEventType
from app.schemas.batch_switch import ActorContext
from app.services.cache import invalidate_switch_caches
from app.services.communication_log import add_communication_log_entry

logger = logging.getLogger(__name__)


async def notify_after_commit(
    db: AsyncSession,
    redis: Redis | None,
    *,
    actor: ActorContext,
    student_id: UUID,
    event_type: CommunicationEventType,
    title: str,
    description: str,
) -> None:
    """
    Record the audit entry and drop stale caches.

    Runs after the switch has committed. The audit entry is written through
    its own session on the same bind, so a failure there cannot disturb the
    objects of the committed switch. Failures are logged and never propagate.
    """
    try:
        async with AsyncSession(db.bind, expire_on_commit=False) as audit_db:
            await add_communication_log_entry(
                audit_db,
                logged_by_id=actor.logged_by_id,
                event_type=event_type,
                event_date=utcnow(),
                title=title,
                description=description,
                student_id=student_id,
                location_id=actor.location_id,
            )
    except Exception:
        logger.warning(
            "Could not write %s log entry for student %s",
            event_type.value,
            student_id,
            exc_info=True,
        )

    if redis is None:
        return
    try:
        await invalidate_switch_caches(redis)
    except Exception:
        logger.warning("Cache invalidation failed after %s", event_type.value, exc_info=True)
