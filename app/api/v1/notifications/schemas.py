from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$|^24:00$"


class NotificationLogRead(BaseModel):
    """A queued/sent/failed WhatsApp notification."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    school_id: UUID
    invoice_id: UUID
    student_name: str
    tutor_name: str
    target_phone: str
    category: str
    status: str
    scheduled_for: datetime
    sent_at: Optional[datetime] = None
    attempts: int = 0
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class NotificationLogsResponse(BaseModel):
    logs: List[NotificationLogRead]
    total: int
    page: int
    pages: int


class DailyStatsResponse(BaseModel):
    """Today's entries (local day, by updated_at) grouped by status."""
    queued: int = 0
    processing: int = 0
    sent: int = 0
    failed: int = 0
    cancelled: int = 0
    total_today: int = 0


class ForecastBreakdown(BaseModel):
    due_today: int = 0
    overdue: int = 0
    reminder: int = 0


class ForecastResponse(BaseModel):
    date: date
    total_expected: int
    breakdown: ForecastBreakdown


class NotificationConfigRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    school_id: UUID
    is_active: bool
    window_start: str
    window_end: str
    enable_reminder: bool
    enable_due_today: bool
    enable_overdue: bool


class NotificationConfigUpdate(BaseModel):
    """Partial update; omitted fields keep their current (or default) value."""
    is_active: Optional[bool] = None
    window_start: Optional[str] = Field(None, pattern=HHMM_PATTERN, description="Sending window start, HH:MM local")
    window_end: Optional[str] = Field(None, pattern=HHMM_PATTERN, description="Sending window end (exclusive), HH:MM local")
    enable_reminder: Optional[bool] = None
    enable_due_today: Optional[bool] = None
    enable_overdue: Optional[bool] = None


class RetryAllResponse(BaseModel):
    success: bool = True
    count: int = Field(..., description="Failed notifications put back in the queue")


class TriggerResponse(BaseModel):
    success: bool = True
    message: str
    queued: int = Field(..., description="Notifications queued by this scan")
