"""
Cron job: scan pending invoices of every active school and queue WhatsApp notifications
(reminder 3 days before, due today, overdue up to 60 days).
Runs hourly and on manual trigger. Never raises; failures are logged per school / per invoice.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.v1.notifications.schemas import NotificationConfigRead
from app.core.database import get_async_session_maker_instance
from app.core.eligibility import classify
from app.core.events import EventBus
from app.core.invoices import (
    PayerContact,
    candidate_due_ranges,
    find_pending_invoices_in_range,
    resolve_payer_contact,
)
from app.core.notification_queue import enqueue_notification, was_notified_today
from app.core.utils import is_within_window, local_today, utcnow
from app.models.enums import NotificationCategory
from app.models.notification_config import NotificationConfig

logger = logging.getLogger(__name__)


@dataclass
class ScanSummary:
    schools_scanned: int = 0
    schools_skipped: int = 0
    queued: int = 0
    skipped_no_phone: int = 0
    skipped_duplicate: int = 0
    errors: int = 0


@dataclass(frozen=True)
class InvoiceCandidate:
    # Plain snapshot so a rollback after one bad invoice cannot expire the rest.
    invoice_id: UUID
    school_id: UUID
    due_date: date
    contact: Optional[PayerContact]


def category_enabled(config: NotificationConfigRead, category: NotificationCategory) -> bool:
    """Per-school toggles; new_invoice is queued by invoice creation, never by the scan."""
    if category == NotificationCategory.reminder:
        return config.enable_reminder
    if category == NotificationCategory.due_today:
        return config.enable_due_today
    if category == NotificationCategory.overdue:
        return config.enable_overdue
    return False


async def _scan_school(
    session: AsyncSession,
    config: NotificationConfigRead,
    now: datetime,
    summary: ScanSummary,
    events: Optional[EventBus],
) -> None:
    today = local_today(now)
    invoices = await find_pending_invoices_in_range(session, config.school_id, candidate_due_ranges(today))
    candidates = [
        InvoiceCandidate(inv.id, inv.school_id, inv.due_date, resolve_payer_contact(inv))
        for inv in invoices
    ]
    for candidate in candidates:
        try:
            verdict = classify(candidate.due_date, today)
            if not verdict.should_send or not category_enabled(config, verdict.category):
                continue
            if await was_notified_today(session, candidate.invoice_id, now):
                summary.skipped_duplicate += 1
                continue
            if candidate.contact is None:
                summary.skipped_no_phone += 1
                continue
            queued = await enqueue_notification(
                session,
                school_id=candidate.school_id,
                invoice_id=candidate.invoice_id,
                student_name=candidate.contact.student_name,
                tutor_name=candidate.contact.payer_name,
                phone=candidate.contact.phone,
                category=verdict.category,
                now=now,
                events=events,
            )
            if queued is not None:
                summary.queued += 1
            else:
                summary.skipped_duplicate += 1
        except Exception as e:
            summary.errors += 1
            await session.rollback()
            logger.exception("Scan: error processing invoice %s: %s", candidate.invoice_id, e)


async def scan_and_queue_invoices(
    session_maker: Optional[async_sessionmaker] = None,
    now: Optional[datetime] = None,
    events: Optional[EventBus] = None,
) -> ScanSummary:
    """Queue today's reminder / due-today / overdue notifications for every active school in its sending window."""
    logger.info("Scan: invoice notification scan started")
    summary = ScanSummary()
    session_maker = session_maker or get_async_session_maker_instance()
    now = now or utcnow()
    try:
        async with session_maker() as session:
            result = await session.execute(
                select(NotificationConfig).where(NotificationConfig.is_active.is_(True))
            )
            configs = [NotificationConfigRead.model_validate(c) for c in result.scalars().all()]
            for config in configs:
                try:
                    if not is_within_window(now, config.window_start, config.window_end):
                        summary.schools_skipped += 1
                        logger.debug(
                            "Scan: school %s outside sending window %s-%s",
                            config.school_id, config.window_start, config.window_end,
                        )
                        continue
                    summary.schools_scanned += 1
                    await _scan_school(session, config, now, summary, events)
                except Exception as e:
                    summary.errors += 1
                    await session.rollback()
                    logger.exception("Scan: error processing school %s: %s", config.school_id, e)

        logger.info(
            "Scan: finished - schools=%s skipped_window=%s queued=%s duplicates=%s no_phone=%s errors=%s",
            summary.schools_scanned, summary.schools_skipped, summary.queued,
            summary.skipped_duplicate, summary.skipped_no_phone, summary.errors,
        )
    except Exception as e:
        summary.errors += 1
        logger.exception("Scan: invoice notification scan failed: %s", e)
    return summary
