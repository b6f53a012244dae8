from datetime import datetime

import pytest

from models import Recurrence, Weekday
from services.recurrence import (add_interval, day_index, generate_recurrence_dates,
                                 weekday_index, weekday_tag)

MONDAY = datetime(2024, 3, 4, 9, 0)


@pytest.mark.parametrize("recurrence,weekdays,count", [
    (Recurrence.NONE, [Weekday.WEDNESDAY], 4),
    (Recurrence.WEEKLY, [Weekday.WEDNESDAY], 1),
    (Recurrence.WEEKLY, [Weekday.WEDNESDAY], 0),
    (Recurrence.WEEKLY, [], 4),
    (Recurrence.MONTHLY, [], 3),
])
def test_no_dates_for_degenerate_input(recurrence, weekdays, count):
    assert generate_recurrence_dates(MONDAY, recurrence, weekdays, count) == []


def test_weekly_wednesday_friday_two_weeks():
    dates = generate_recurrence_dates(MONDAY, Recurrence.WEEKLY, [Weekday.WEDNESDAY, Weekday.FRIDAY], 2)
    assert dates == [
        datetime(2024, 3, 6, 9, 0), datetime(2024, 3, 8, 9, 0),
        datetime(2024, 3, 13, 9, 0), datetime(2024, 3, 15, 9, 0),
    ]


def test_repeated_weekday_counts_once():
    dates = generate_recurrence_dates(MONDAY, "weekly", ["wednesday", "wednesday"], 2)
    assert dates == [datetime(2024, 3, 6, 9, 0), datetime(2024, 3, 13, 9, 0)]


def test_base_weekday_repeats_in_later_weeks_only():
    dates = generate_recurrence_dates(MONDAY, "weekly", ["monday"], 3)
    assert dates == [datetime(2024, 3, 11, 9, 0), datetime(2024, 3, 18, 9, 0)]


def test_biweekly_skips_a_week():
    dates = generate_recurrence_dates(MONDAY, Recurrence.BIWEEKLY, [Weekday.MONDAY, Weekday.THURSDAY], 2)
    assert dates == [
        datetime(2024, 3, 7, 9, 0),
        datetime(2024, 3, 18, 9, 0), datetime(2024, 3, 21, 9, 0),
    ]


def test_earlier_weekday_wraps_to_following_week():
    # Воскресенье после понедельника - это 10 марта, а не 3-е
    dates = generate_recurrence_dates(MONDAY, Recurrence.WEEKLY, [Weekday.SUNDAY], 2)
    assert dates == [datetime(2024, 3, 10, 9, 0), datetime(2024, 3, 17, 9, 0)]


def test_monthly_keeps_day_of_month():
    base = datetime(2024, 1, 31, 14, 30)
    dates = generate_recurrence_dates(base, Recurrence.MONTHLY, [Weekday.WEDNESDAY], 3)
    assert dates == [datetime(2024, 2, 29, 14, 30), datetime(2024, 3, 31, 14, 30)]


def test_monthly_first_period_stays_in_base_month():
    base = datetime(2024, 3, 28, 10, 0)  # четверг
    dates = generate_recurrence_dates(base, Recurrence.MONTHLY, [Weekday.THURSDAY, Weekday.FRIDAY, Weekday.MONDAY], 2)
    # Пятница 29 марта внутри месяца, понедельник 1 апреля - уже нет
    assert dates == [datetime(2024, 3, 29, 10, 0), datetime(2024, 4, 28, 10, 0)]


def test_monthly_later_periods_give_one_date_per_month():
    dates = generate_recurrence_dates(MONDAY, Recurrence.MONTHLY, [Weekday.MONDAY, Weekday.WEDNESDAY], 3)
    assert dates == [datetime(2024, 3, 6, 9, 0), datetime(2024, 4, 4, 9, 0), datetime(2024, 5, 4, 9, 0)]


def test_unknown_weekday_tags_are_ignored():
    assert weekday_index("funday") is None
    dates = generate_recurrence_dates(MONDAY, Recurrence.WEEKLY, ["funday", "tuesday"], 2)
    assert dates == [datetime(2024, 3, 5, 9, 0), datetime(2024, 3, 12, 9, 0)]


def test_weekday_helpers_are_sunday_based():
    assert day_index(datetime(2024, 3, 3)) == 0
    assert day_index(MONDAY) == 1
    assert weekday_tag(datetime(2024, 3, 9)) == Weekday.SATURDAY
    assert weekday_index(Weekday.SATURDAY) == 6


def test_add_interval():
    assert add_interval(MONDAY, Recurrence.WEEKLY, 2) == datetime(2024, 3, 18, 9, 0)
    assert add_interval(MONDAY, Recurrence.BIWEEKLY, 1) == datetime(2024, 3, 18, 9, 0)
    assert add_interval(MONDAY, Recurrence.MONTHLY, 1) == datetime(2024, 4, 4, 9, 0)
    assert add_interval(MONDAY, Recurrence.NONE, 5) == MONDAY
