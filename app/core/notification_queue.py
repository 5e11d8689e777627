"""
Notification queue store: NotificationLog rows are both the work queue and the audit trail.
Duplicate prevention is an existence check, not a unique index, so it is best-effort
under concurrent enqueues.
"""
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.orm import aliased
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidStatusTransitionError
from app.core.events import NOTIFICATION_CREATED, NOTIFICATION_UPDATED, EventBus, event_bus, notification_payload
from app.core.utils import local_day_bounds_utc, local_today, utcnow
from app.models.enums import ALLOWED_STATUS_TRANSITIONS, NotificationCategory, NotificationStatus
from app.models.notification_log import NotificationLog

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (NotificationStatus.queued.value, NotificationStatus.processing.value)


async def has_active_notification(
    db: AsyncSession,
    invoice_id: UUID,
    category: NotificationCategory,
) -> bool:
    """True if (invoice, category) already has a queued or processing entry."""
    result = await db.execute(
        select(NotificationLog.id).where(
            NotificationLog.invoice_id == invoice_id,
            NotificationLog.category == NotificationCategory(category).value,
            NotificationLog.status.in_(ACTIVE_STATUSES),
        ).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def was_notified_today(db: AsyncSession, invoice_id: UUID, now: Optional[datetime] = None) -> bool:
    """True if any entry, of any category, was created for the invoice since local midnight."""
    day_start, _ = local_day_bounds_utc(local_today(now))
    result = await db.execute(
        select(NotificationLog.id).where(
            NotificationLog.invoice_id == invoice_id,
            NotificationLog.created_at >= day_start,
        ).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def enqueue_notification(
    db: AsyncSession,
    *,
    school_id: UUID,
    invoice_id: UUID,
    student_name: str,
    tutor_name: str,
    phone: str,
    category: NotificationCategory = NotificationCategory.new_invoice,
    now: Optional[datetime] = None,
    events: Optional[EventBus] = None,
) -> Optional[NotificationLog]:
    """
    Add a queued entry and emit notification:created.
    Returns None (nothing written) if the same invoice/category is already queued or processing.
    """
    category = NotificationCategory(category)
    if await has_active_notification(db, invoice_id, category):
        logger.debug("Skipping duplicate notification: invoice=%s category=%s", invoice_id, category.value)
        return None

    now = now or utcnow()
    log_entry = NotificationLog(
        school_id=school_id,
        invoice_id=invoice_id,
        student_name=student_name,
        tutor_name=tutor_name,
        target_phone=phone,
        category=category.value,
        status=NotificationStatus.queued.value,
        scheduled_for=now,
        attempts=0,
        created_at=now,
        updated_at=now,
    )
    db.add(log_entry)
    await db.commit()
    await db.refresh(log_entry)
    logger.info("Queued %s notification for %s (invoice=%s)", category.value, student_name, invoice_id)
    (events or event_bus).emit(NOTIFICATION_CREATED, notification_payload(log_entry))
    return log_entry


def transition(log_entry: NotificationLog, target: NotificationStatus, now: Optional[datetime] = None) -> None:
    """Move an entry along the status state machine; raises on a forbidden edge."""
    current = NotificationStatus(log_entry.status)
    target = NotificationStatus(target)
    if target not in ALLOWED_STATUS_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(current.value, target.value)
    log_entry.status = target.value
    log_entry.updated_at = now or utcnow()


async def fetch_due_batch(db: AsyncSession, limit: int, now: Optional[datetime] = None) -> list[NotificationLog]:
    """Queued entries whose scheduled_for has passed, oldest schedule first."""
    result = await db.execute(
        select(NotificationLog)
        .where(
            NotificationLog.status == NotificationStatus.queued.value,
            NotificationLog.scheduled_for <= (now or utcnow()),
        )
        .order_by(NotificationLog.scheduled_for, NotificationLog.created_at)
        .limit(limit)
    )
    return list(result.scalars().all())


async def retry_all_failed(
    db: AsyncSession,
    school_id: UUID,
    now: Optional[datetime] = None,
    events: Optional[EventBus] = None,
) -> int:
    """
    Re-queue the school's entries that failed today (by updated_at, local day).
    error_message is cleared; attempts is kept so chronic failures stay visible.
    An (invoice, category) that already has a queued or processing entry is left failed,
    and only its most recent failure is re-queued otherwise.
    """
    now = now or utcnow()
    day_start, day_end = local_day_bounds_utc(local_today(now))
    active = aliased(NotificationLog)
    result = await db.execute(
        select(NotificationLog)
        .where(
            NotificationLog.school_id == school_id,
            NotificationLog.status == NotificationStatus.failed.value,
            NotificationLog.updated_at >= day_start,
            NotificationLog.updated_at < day_end,
            ~exists().where(
                active.invoice_id == NotificationLog.invoice_id,
                active.category == NotificationLog.category,
                active.status.in_(ACTIVE_STATUSES),
            ),
        )
        .order_by(NotificationLog.updated_at.desc(), NotificationLog.created_at.desc())
    )

    retried = []
    seen = set()
    for entry in result.scalars().all():
        key = (entry.invoice_id, entry.category)
        if key in seen:
            continue
        seen.add(key)
        transition(entry, NotificationStatus.queued, now)
        entry.error_message = None
        entry.scheduled_for = now
        retried.append(entry)
    await db.commit()

    bus = events or event_bus
    for entry in retried:
        bus.emit(NOTIFICATION_UPDATED, notification_payload(entry))
    logger.info("Re-queued %s failed notification(s) for school %s", len(retried), school_id)
    return len(retried)
