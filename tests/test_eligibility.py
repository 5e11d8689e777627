from datetime import date, datetime, timedelta

import pytest

from app.core.eligibility import Eligibility, classify, days_until_due
from app.models.enums import NotificationCategory


def test_three_days_before_due_is_a_reminder():
    assert classify(date(2024, 3, 10), date(2024, 3, 7)) == Eligibility(True, NotificationCategory.reminder)


def test_due_day_is_due_today():
    assert classify(date(2024, 3, 10), date(2024, 3, 10)) == Eligibility(True, NotificationCategory.due_today)


def test_thirty_six_days_late_is_overdue():
    assert classify(date(2024, 3, 10), date(2024, 4, 15)) == Eligibility(True, NotificationCategory.overdue)


def test_debts_older_than_sixty_days_are_left_alone():
    verdict = classify(date(2024, 1, 1), date(2024, 4, 15))
    assert verdict.should_send is False
    assert verdict.category is None


@pytest.mark.parametrize(
    "offset, expected",
    [
        (4, None),
        (3, NotificationCategory.reminder),
        (2, None),
        (1, None),
        (0, NotificationCategory.due_today),
        (-1, NotificationCategory.overdue),
        (-59, NotificationCategory.overdue),
        (-60, NotificationCategory.overdue),
        (-61, None),
    ],
)
def test_bucket_boundaries(offset, expected):
    reference = date(2024, 6, 15)
    verdict = classify(reference + timedelta(days=offset), reference)
    assert verdict.should_send is (expected is not None)
    assert verdict.category == expected


def test_datetimes_are_reduced_to_calendar_days():
    # Late on the reference day vs early on the due day still counts whole days.
    verdict = classify(datetime(2024, 3, 10, 0, 5), datetime(2024, 3, 7, 23, 55))
    assert verdict == Eligibility(True, NotificationCategory.reminder)
    assert days_until_due(datetime(2024, 3, 10, 23, 0), date(2024, 3, 10)) == 0


def test_classify_across_month_and_leap_day():
    assert classify(date(2024, 3, 1), date(2024, 2, 27)).category == NotificationCategory.reminder
    assert classify(date(2024, 2, 29), date(2024, 3, 1)).category == NotificationCategory.overdue
