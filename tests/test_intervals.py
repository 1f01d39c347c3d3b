"""Unit tests for the time-of-day interval model."""

import itertools
from datetime import date, datetime, time, timedelta, timezone

import pytest

from academy.core.enums import DayOfWeek
from academy.core.exceptions import InvalidInterval
from academy.core.intervals import (
    TimeSlot,
    WeeklySchedule,
    contains,
    date_range_bounds,
    dated_occurrences,
    duration_minutes,
    localize_slot,
    minutes_to_duration,
    occurrences,
    overlaps,
    validate_schedule,
    validate_slot,
    weekly_from_dated,
)


def slot(start: str, end: str) -> TimeSlot:
    return TimeSlot(start=start, end=end)


SAMPLE_SLOTS = [
    slot("08:00", "09:00"),
    slot("08:30", "09:30"),
    slot("09:00", "10:00"),
    slot("09:15", "09:45"),
    slot("10:00", "11:00"),
    slot("00:00", "23:59"),
]


def test_overlap_is_symmetric() -> None:
    for a, b in itertools.product(SAMPLE_SLOTS, repeat=2):
        assert overlaps(a, b) == overlaps(b, a)


def test_adjacent_slots_do_not_overlap() -> None:
    assert not overlaps(slot("09:00", "10:00"), slot("10:00", "11:00"))
    assert not overlaps(slot("10:00", "11:00"), slot("09:00", "10:00"))


def test_overlap_cases() -> None:
    assert overlaps(slot("09:00", "10:00"), slot("08:00", "11:00"))
    assert overlaps(slot("09:00", "10:00"), slot("09:00", "10:00"))
    assert overlaps(slot("09:00", "10:00"), slot("09:59", "10:30"))
    assert not overlaps(slot("09:00", "10:00"), slot("10:01", "10:30"))


def test_contains_and_duration() -> None:
    assert contains(slot("08:00", "12:00"), slot("08:00", "12:00"))
    assert contains(slot("08:00", "12:00"), slot("09:00", "10:00"))
    assert not contains(slot("08:00", "12:00"), slot("11:30", "12:30"))
    assert duration_minutes(slot("09:15", "10:45")) == 90


def test_slot_parses_and_serializes_24_hour_strings() -> None:
    s = slot("09:05", "17:30")
    assert s.start == time(9, 5)
    assert s.model_dump(mode="json") == {"start": "09:05", "end": "17:30"}
    assert str(s) == "09:05 - 17:30"


@pytest.mark.parametrize(
    "start,end",
    [("10:00", "10:00"), ("11:00", "10:00"), ("09:00:30", "10:00")],
)
def test_validate_slot_rejects(start: str, end: str) -> None:
    with pytest.raises(InvalidInterval):
        validate_slot(slot(start, end))


def test_validate_slot_rejects_non_utc() -> None:
    ist = timezone(timedelta(hours=5, minutes=30))
    bad = TimeSlot(start=time(9, 0, tzinfo=ist), end=time(10, 0, tzinfo=ist))
    with pytest.raises(InvalidInterval):
        validate_slot(bad)


def test_validate_schedule_rejects_same_day_overlap() -> None:
    schedule = WeeklySchedule(monday=[slot("09:00", "10:00"), slot("09:30", "11:00")])
    with pytest.raises(InvalidInterval):
        validate_schedule(schedule)

    # Same times on different days are fine
    validate_schedule(WeeklySchedule(monday=[slot("09:00", "10:00")], tuesday=[slot("09:30", "11:00")]))


def test_weekly_schedule_from_slots_sorts_and_skips_empty_days() -> None:
    schedule = WeeklySchedule.from_slots(
        [(DayOfWeek.WEDNESDAY, slot("14:00", "15:00")), (DayOfWeek.WEDNESDAY, slot("09:00", "10:00"))]
    )
    days = list(schedule.days())
    assert [d for d, _ in days] == [DayOfWeek.WEDNESDAY]
    assert schedule.wednesday[0].start == time(9, 0)
    assert WeeklySchedule().is_empty()


def test_weekly_from_dated() -> None:
    day, s = weekly_from_dated(
        datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc),  # a Monday
        datetime(2025, 3, 3, 10, 30, tzinfo=timezone.utc),
    )
    assert day == DayOfWeek.MONDAY
    assert s == slot("09:00", "10:30")


def test_weekly_from_dated_rejects_midnight_crossing() -> None:
    with pytest.raises(InvalidInterval):
        weekly_from_dated(
            datetime(2025, 3, 3, 23, 30, tzinfo=timezone.utc),
            datetime(2025, 3, 4, 0, 30, tzinfo=timezone.utc),
        )


def test_localize_slot_shifts_weekday() -> None:
    # 20:00 Monday in New York (EST, UTC-5) is 01:00 Tuesday UTC
    day, s = localize_slot(DayOfWeek.MONDAY, slot("20:00", "21:00"), "America/New_York", reference=date(2025, 1, 6))
    assert day == DayOfWeek.TUESDAY
    assert s == slot("01:00", "02:00")


def test_localize_slot_unknown_timezone() -> None:
    with pytest.raises(InvalidInterval):
        localize_slot(DayOfWeek.MONDAY, slot("09:00", "10:00"), "Mars/Olympus_Mons")


def test_occurrences_over_two_weeks() -> None:
    schedule = WeeklySchedule(monday=[slot("09:00", "10:00")], wednesday=[slot("14:00", "15:00")])
    items = list(occurrences(schedule, date(2025, 1, 6), date(2025, 1, 19)))
    assert [d for d, _ in items] == [date(2025, 1, 6), date(2025, 1, 8), date(2025, 1, 13), date(2025, 1, 15)]


def test_date_range_bounds_are_inclusive() -> None:
    start, end = date_range_bounds(date(2025, 1, 1), date(2025, 1, 31))
    assert start == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert end.date() == date(2025, 1, 31)
    assert end.hour == 23 and end.minute == 59


def test_date_range_bounds_in_a_timezone() -> None:
    start, end = date_range_bounds(date(2025, 1, 6), date(2025, 1, 12), "Asia/Tokyo")
    assert start == datetime(2025, 1, 5, 15, tzinfo=timezone.utc)
    assert end.date() == date(2025, 1, 12)
    assert (end.hour, end.minute) == (14, 59)


def test_dated_occurrences_follow_the_local_calendar() -> None:
    schedule = WeeklySchedule(monday=[slot("07:00", "08:00")])
    # Tokyo Monday morning is Sunday evening UTC
    assert list(dated_occurrences(schedule, date(2025, 1, 6), date(2025, 1, 12), "Asia/Tokyo")) == [
        (datetime(2025, 1, 5, 22, tzinfo=timezone.utc), datetime(2025, 1, 5, 23, tzinfo=timezone.utc))
    ]


def test_dated_occurrences_apply_dst_per_date() -> None:
    schedule = WeeklySchedule(monday=[slot("18:00", "19:00")])
    starts = [s for s, _ in dated_occurrences(schedule, date(2025, 3, 3), date(2025, 3, 10), "America/New_York")]
    # Clocks go forward on 9 March
    assert starts == [
        datetime(2025, 3, 3, 23, tzinfo=timezone.utc),
        datetime(2025, 3, 10, 22, tzinfo=timezone.utc),
    ]

    utc_only = list(dated_occurrences(schedule, date(2025, 3, 3), date(2025, 3, 3)))
    assert utc_only == [
        (datetime(2025, 3, 3, 18, tzinfo=timezone.utc), datetime(2025, 3, 3, 19, tzinfo=timezone.utc))
    ]


def test_minutes_to_duration() -> None:
    assert minutes_to_duration(90) == "1h 30m"
    assert minutes_to_duration(60) == "1h"
    assert minutes_to_duration(45) == "45m"
