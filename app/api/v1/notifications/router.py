from datetime import date, timedelta
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.notifications.schemas import (
    DailyStatsResponse,
    ForecastResponse,
    NotificationConfigRead,
    NotificationConfigUpdate,
    NotificationLogRead,
    NotificationLogsResponse,
    RetryAllResponse,
    TriggerResponse,
)
from app.api.v1.notifications.service import NotificationService
from app.core.deps import CurrentUser, get_current_user, get_db, get_queue_processor
from app.core.utils import local_today
from app.cron.invoice_scanner import scan_and_queue_invoices
from app.cron.queue_processor import QueueProcessor

router = APIRouter()


@router.get(
    "/logs",
    response_model=NotificationLogsResponse,
    status_code=status.HTTP_200_OK,
    summary="List notification logs",
    description="Notification queue/audit entries of the current school, newest first. limit=0 returns all.",
)
async def get_logs(
    status_filter: Optional[str] = Query(None, alias="status", description="queued | processing | sent | failed | cancelled | all"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=0, le=500),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService(db).get_logs(current_user.school_id, status_filter, page, limit)


@router.get(
    "/stats",
    response_model=DailyStatsResponse,
    status_code=status.HTTP_200_OK,
    summary="Today's notification counters",
)
async def get_daily_stats(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService(db).get_daily_stats(current_user.school_id)


@router.get(
    "/forecast",
    response_model=ForecastResponse,
    status_code=status.HTTP_200_OK,
    summary="Notification forecast",
    description="How many notifications the scanner would queue on the given date (default: tomorrow). Read-only.",
)
async def get_forecast(
    target_date: Optional[date] = Query(None, alias="date", description="YYYY-MM-DD"),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    target = target_date or local_today() + timedelta(days=1)
    return await NotificationService(db).get_forecast(current_user.school_id, target)


@router.post(
    "/trigger",
    response_model=TriggerResponse,
    status_code=status.HTTP_200_OK,
    summary="Run scan and queue processing now",
    description="Scans invoices synchronously, then drains the queue in the background.",
)
async def trigger_manual_run(
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    processor: QueueProcessor = Depends(get_queue_processor),
):
    summary = await scan_and_queue_invoices(session_maker=processor.session_maker)
    background_tasks.add_task(processor.drain)
    return TriggerResponse(
        message="Scan finished; queue processing started.",
        queued=summary.queued,
    )


@router.post(
    "/retry-all",
    response_model=RetryAllResponse,
    status_code=status.HTTP_200_OK,
    summary="Re-queue today's failed notifications",
)
async def retry_all_failed(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await NotificationService(db).retry_all_failed(current_user.school_id)
    return RetryAllResponse(count=count)


@router.post(
    "/{log_id}/cancel",
    response_model=NotificationLogRead,
    status_code=status.HTTP_200_OK,
    summary="Cancel a queued notification",
)
async def cancel_notification(
    log_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService(db).cancel_notification(current_user.school_id, log_id)


@router.get(
    "/config",
    response_model=NotificationConfigRead,
    status_code=status.HTTP_200_OK,
    summary="Get notification settings",
)
async def get_config(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService(db).get_config(current_user.school_id)


@router.post(
    "/config",
    response_model=NotificationConfigRead,
    status_code=status.HTTP_200_OK,
    summary="Save notification settings",
)
async def save_config(
    data: NotificationConfigUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService(db).save_config(current_user.school_id, data)
