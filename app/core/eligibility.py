"""
Decides whether an invoice is owed a billing notification on a given day.
Pure and deterministic: the live scanner and the forecast both call classify().
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from app.models.enums import NotificationCategory

REMINDER_LEAD_DAYS = 3
OVERDUE_WINDOW_DAYS = 60


@dataclass(frozen=True)
class Eligibility:
    should_send: bool
    category: Optional[NotificationCategory] = None


NOT_ELIGIBLE = Eligibility(should_send=False)


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def days_until_due(due_date: date | datetime, reference_date: date | datetime) -> int:
    """Whole days between the two calendar days; negative once past due."""
    return (_as_date(due_date) - _as_date(reference_date)).days


def classify(due_date: date | datetime, reference_date: date | datetime) -> Eligibility:
    """
    3 days before due -> reminder, due day -> due_today,
    1..60 days past due -> overdue, anything else -> nothing to send.
    Datetimes are reduced to their calendar day; callers pass local dates.
    """
    diff_days = days_until_due(due_date, reference_date)
    if diff_days == REMINDER_LEAD_DAYS:
        return Eligibility(True, NotificationCategory.reminder)
    if diff_days == 0:
        return Eligibility(True, NotificationCategory.due_today)
    if -OVERDUE_WINDOW_DAYS <= diff_days < 0:
        return Eligibility(True, NotificationCategory.overdue)
    return NOT_ELIGIBLE
