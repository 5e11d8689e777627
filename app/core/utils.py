"""Shared utilities used across the app."""
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from app.core.config import settings


def utcnow() -> datetime:
    """Naive UTC now. Columns are TIMESTAMP WITHOUT TIME ZONE (asyncpg rejects aware datetimes)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.NOTIFICATION_TIMEZONE)


def to_local(moment: datetime) -> datetime:
    """Convert a naive-UTC (or aware) datetime to the configured local zone."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(local_zone())


def local_today(now: datetime | None = None) -> date:
    return to_local(now or utcnow()).date()


def local_day_bounds_utc(day: date) -> tuple[datetime, datetime]:
    """[start, end) of a local calendar day, as naive UTC datetimes for DB comparisons."""
    zone = local_zone()
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        end.astimezone(timezone.utc).replace(tzinfo=None),
    )


def parse_hhmm(value: str) -> int:
    """'HH:MM' -> minutes since midnight. Raises ValueError on malformed input."""
    hours, minutes = (int(part) for part in value.strip().split(":"))
    if not (0 <= hours <= 24 and 0 <= minutes < 60) or hours * 60 + minutes > 24 * 60:
        raise ValueError(f"Invalid HH:MM value: {value!r}")
    return hours * 60 + minutes


def is_within_window(moment: datetime, window_start: str, window_end: str) -> bool:
    """True when the local wall clock of `moment` falls in [window_start, window_end).
    A start later than the end is an overnight window (e.g. 22:00 to 06:00)."""
    local = to_local(moment)
    current_minutes = local.hour * 60 + local.minute
    start_minutes = parse_hhmm(window_start)
    end_minutes = parse_hhmm(window_end)
    if start_minutes <= end_minutes:
        return start_minutes <= current_minutes < end_minutes
    return current_minutes >= start_minutes or current_minutes < end_minutes


def format_brl_cents(cents: int | None) -> str:
    """1234567 -> '12345,67'."""
    return f"{max(0, cents or 0) / 100:.2f}".replace(".", ",")


def format_br_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def first_name(full_name: str | None) -> str:
    parts = (full_name or "").split()
    return parts[0] if parts else ""
