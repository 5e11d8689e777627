from datetime import date, datetime

import pytest

from app.core.config import settings
from app.core.utils import (
    first_name,
    format_br_date,
    format_brl_cents,
    is_within_window,
    local_day_bounds_utc,
    local_today,
    parse_hhmm,
)


def test_window_is_half_open():
    assert is_within_window(datetime(2024, 3, 10, 8, 0), "08:00", "18:00") is True
    assert is_within_window(datetime(2024, 3, 10, 17, 59), "08:00", "18:00") is True
    assert is_within_window(datetime(2024, 3, 10, 18, 0), "08:00", "18:00") is False
    assert is_within_window(datetime(2024, 3, 10, 19, 0), "08:00", "18:00") is False
    assert is_within_window(datetime(2024, 3, 10, 7, 59), "08:00", "18:00") is False


def test_overnight_window_wraps_midnight():
    assert is_within_window(datetime(2024, 3, 10, 23, 0), "22:00", "06:00") is True
    assert is_within_window(datetime(2024, 3, 10, 5, 30), "22:00", "06:00") is True
    assert is_within_window(datetime(2024, 3, 10, 12, 0), "22:00", "06:00") is False


def test_window_uses_local_wall_clock(monkeypatch):
    monkeypatch.setattr(settings, "NOTIFICATION_TIMEZONE", "America/Sao_Paulo")
    # 21:30 UTC is 18:30 in Sao Paulo (UTC-3).
    assert is_within_window(datetime(2024, 3, 10, 21, 30), "08:00", "18:00") is False
    assert is_within_window(datetime(2024, 3, 10, 11, 0), "08:00", "18:00") is True


def test_local_day_bounds_in_utc(monkeypatch):
    monkeypatch.setattr(settings, "NOTIFICATION_TIMEZONE", "America/Sao_Paulo")
    start, end = local_day_bounds_utc(date(2024, 3, 10))
    assert start == datetime(2024, 3, 10, 3, 0)
    assert end == datetime(2024, 3, 11, 3, 0)
    assert local_today(datetime(2024, 3, 11, 2, 0)) == date(2024, 3, 10)


def test_parse_hhmm():
    assert parse_hhmm("08:30") == 510
    assert parse_hhmm("24:00") == 1440
    with pytest.raises(ValueError):
        parse_hhmm("25:00")
    with pytest.raises(ValueError):
        parse_hhmm("eight")


def test_message_formatting_helpers():
    assert format_brl_cents(45000) == "450,00"
    assert format_brl_cents(1999) == "19,99"
    assert format_brl_cents(None) == "0,00"
    assert format_br_date(date(2024, 3, 5)) == "05/03/2024"
    assert first_name("Maria  da Silva") == "Maria"
    assert first_name("") == ""
