"""Service behind the notification admin endpoints: logs, stats, forecast, config, retry, cancel."""
import logging
import math
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.notifications.schemas import (
    DailyStatsResponse,
    ForecastBreakdown,
    ForecastResponse,
    NotificationConfigRead,
    NotificationConfigUpdate,
    NotificationLogRead,
    NotificationLogsResponse,
)
from app.core.eligibility import classify
from app.core.events import NOTIFICATION_UPDATED, EventBus, event_bus, notification_payload
from app.core.exceptions import AppException
from app.core.errors import InvalidStatusTransitionError
from app.core.invoices import candidate_due_ranges, find_pending_invoices_in_range, resolve_payer_contact
from app.core.notification_queue import retry_all_failed, transition
from app.core.utils import local_day_bounds_utc, local_today, parse_hhmm, utcnow
from app.cron.invoice_scanner import category_enabled
from app.models.enums import NotificationStatus
from app.models.notification_config import DEFAULT_WINDOW_END, DEFAULT_WINDOW_START, NotificationConfig
from app.models.notification_log import NotificationLog

DEFAULT_PAGE_SIZE = 20
ALL_STATUSES_FILTER = "all"


class NotificationService:
    def __init__(self, db: AsyncSession, events: Optional[EventBus] = None):
        self.db = db
        self.events = events or event_bus
        self.logger = logging.getLogger(__name__)

    async def get_logs(
        self,
        school_id: UUID,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> NotificationLogsResponse:
        """Newest first. limit=0 returns every entry on a single page."""
        conditions = [NotificationLog.school_id == school_id]
        if status and status.lower() != ALL_STATUSES_FILTER:
            conditions.append(NotificationLog.status == status)

        total_result = await self.db.execute(select(func.count(NotificationLog.id)).where(*conditions))
        total = total_result.scalar() or 0

        query = (
            select(NotificationLog)
            .where(*conditions)
            .order_by(NotificationLog.created_at.desc(), NotificationLog.id)
        )
        page = max(1, page)
        if limit > 0:
            query = query.offset((page - 1) * limit).limit(limit)
            pages = math.ceil(total / limit)
        else:
            page = 1
            pages = 1 if total else 0

        result = await self.db.execute(query)
        logs = [NotificationLogRead.model_validate(row) for row in result.scalars().all()]
        return NotificationLogsResponse(logs=logs, total=total, page=page, pages=pages)

    async def get_daily_stats(self, school_id: UUID, now: Optional[datetime] = None) -> DailyStatsResponse:
        day_start, day_end = local_day_bounds_utc(local_today(now))
        result = await self.db.execute(
            select(NotificationLog.status, func.count(NotificationLog.id))
            .where(
                NotificationLog.school_id == school_id,
                NotificationLog.updated_at >= day_start,
                NotificationLog.updated_at < day_end,
            )
            .group_by(NotificationLog.status)
        )
        counts = {status: count for status, count in result.all()}
        return DailyStatsResponse(
            queued=counts.get(NotificationStatus.queued.value, 0),
            processing=counts.get(NotificationStatus.processing.value, 0),
            sent=counts.get(NotificationStatus.sent.value, 0),
            failed=counts.get(NotificationStatus.failed.value, 0),
            cancelled=counts.get(NotificationStatus.cancelled.value, 0),
            total_today=sum(counts.values()),
        )

    async def get_forecast(self, school_id: UUID, target_date: date) -> ForecastResponse:
        """
        Dry run of the scanner for `target_date`: classify pending invoices without queueing anything.
        Honors the school's category toggles but not is_active, so a school can preview before opting in.
        """
        config = await self._find_config(school_id)
        invoices = await find_pending_invoices_in_range(self.db, school_id, candidate_due_ranges(target_date))

        breakdown = ForecastBreakdown()
        for invoice in invoices:
            verdict = classify(invoice.due_date, target_date)
            if not verdict.should_send or not category_enabled(config, verdict.category):
                continue
            if resolve_payer_contact(invoice) is None:
                continue
            setattr(breakdown, verdict.category.value, getattr(breakdown, verdict.category.value) + 1)

        total = breakdown.due_today + breakdown.overdue + breakdown.reminder
        return ForecastResponse(date=target_date, total_expected=total, breakdown=breakdown)

    async def _find_config(self, school_id: UUID) -> NotificationConfigRead:
        """Read-only config lookup; falls back to defaults without creating a row."""
        result = await self.db.execute(select(NotificationConfig).where(NotificationConfig.school_id == school_id))
        config = result.scalar_one_or_none()
        if config is not None:
            return NotificationConfigRead.model_validate(config)
        return NotificationConfigRead(
            school_id=school_id,
            is_active=False,
            window_start=DEFAULT_WINDOW_START,
            window_end=DEFAULT_WINDOW_END,
            enable_reminder=True,
            enable_due_today=True,
            enable_overdue=True,
        )

    async def get_config(self, school_id: UUID) -> NotificationConfigRead:
        """Get the school's config, creating it with defaults on first read."""
        result = await self.db.execute(select(NotificationConfig).where(NotificationConfig.school_id == school_id))
        config = result.scalar_one_or_none()
        if config is None:
            config = NotificationConfig(school_id=school_id)
            self.db.add(config)
            await self.db.commit()
            await self.db.refresh(config)
            self.logger.info("Created default notification config for school %s", school_id)
        return NotificationConfigRead.model_validate(config)

    async def save_config(self, school_id: UUID, data: NotificationConfigUpdate) -> NotificationConfigRead:
        """Upsert the school's config with the provided fields."""
        result = await self.db.execute(select(NotificationConfig).where(NotificationConfig.school_id == school_id))
        config = result.scalar_one_or_none()
        if config is None:
            config = NotificationConfig(school_id=school_id)
            self.db.add(config)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in changes.items():
            setattr(config, field, value)
        start = changes.get("window_start", config.window_start or DEFAULT_WINDOW_START)
        end = changes.get("window_end", config.window_end or DEFAULT_WINDOW_END)
        if parse_hhmm(start) == parse_hhmm(end):
            AppException().raise_400("Sending window start and end must differ")

        await self.db.commit()
        await self.db.refresh(config)
        self.logger.info("Notification config saved for school %s: %s", school_id, changes)
        return NotificationConfigRead.model_validate(config)

    async def retry_all_failed(self, school_id: UUID) -> int:
        return await retry_all_failed(self.db, school_id, events=self.events)

    async def cancel_notification(self, school_id: UUID, log_id: UUID) -> NotificationLogRead:
        """Administrative queued -> cancelled."""
        log_entry = await self.db.get(NotificationLog, log_id)
        if log_entry is None or log_entry.school_id != school_id:
            AppException().raise_404("Notification not found")
        try:
            transition(log_entry, NotificationStatus.cancelled, utcnow())
        except InvalidStatusTransitionError as e:
            AppException().raise_409(str(e))
        await self.db.commit()
        await self.db.refresh(log_entry)
        self.events.emit(NOTIFICATION_UPDATED, notification_payload(log_entry))
        return NotificationLogRead.model_validate(log_entry)
