import calendar
from datetime import date, datetime, time, timedelta, timezone

import pytest

from recoverylab.core.errors import ParseError, ValidationError
from recoverylab.modules.calendar.recurrence import (
    day_offsets,
    default_start_time,
    expand_exercise,
    local_date,
    parse_frequency,
    parse_start_time,
    resolve_timezone,
)


@pytest.mark.parametrize(
    "descriptor, expected",
    [
        ("Daily", 7),
        ("every day", 7),
        ("7x per week", 7),
        ("3x per week", 3),
        ("3 x per week", 3),
        ("3 times per week", 3),
        ("3 per week", 3),
        ("2x a week", 2),
        ("4/week", 4),
        ("Once a week", 1),
        ("twice per week", 2),
        ("THRICE A WEEK", 3),
        ("weekly", 1),
        ("  5   times   a   week ", 5),
    ],
)
def test_parse_frequency(descriptor, expected):
    assert parse_frequency("Heel raises", descriptor) == expected


@pytest.mark.parametrize("descriptor", ["", "sometimes", "0x per week", "8 times per week", "every other day", "3x per month"])
def test_parse_frequency_rejects(descriptor):
    with pytest.raises(ParseError) as exc:
        parse_frequency("Heel raises", descriptor)
    assert exc.value.exercise == "Heel raises"


def test_even_spread_offsets():
    assert day_offsets(1) == [0]
    assert day_offsets(2) == [0, 3]
    assert day_offsets(3) == [0, 2, 4]
    assert day_offsets(7) == [0, 1, 2, 3, 4, 5, 6]


def test_three_per_week_from_wednesday():
    wednesday = 2
    assert [calendar.day_name[(wednesday + off) % 7] for off in day_offsets(3)] == ["Wednesday", "Friday", "Sunday"]
    events = expand_exercise(
        name="Heel raises",
        per_week=3,
        start_time=time(9, 0),
        duration_minutes=30,
        analysis_date=date(2025, 1, 15),  # a Wednesday
        tz_name="America/New_York",
        weeks=1,
        summary="Exercise: Heel raises",
        description="",
    )
    assert [e.start.strftime("%A") for e in events] == ["Wednesday", "Friday", "Sunday"]


def test_daily_two_weeks_in_timezone():
    events = expand_exercise(
        name="Walking",
        per_week=7,
        start_time=time(7, 30),
        duration_minutes=20,
        analysis_date=date(2025, 6, 2),
        tz_name="Europe/Berlin",
        weeks=2,
        summary="Exercise: Walking",
        description="",
    )
    assert len(events) == 14
    assert events[0].start.date() == date(2025, 6, 2)
    assert events[-1].start.date() == date(2025, 6, 15)
    for e in events:
        assert (e.start.hour, e.start.minute) == (7, 30)
        assert e.start.utcoffset() == timedelta(hours=2)
        assert e.end - e.start == timedelta(minutes=20)
        assert e.timezone == "Europe/Berlin"


def test_local_time_is_kept_across_dst():
    # US clocks spring forward on 2025-03-09
    events = expand_exercise(
        name="Stretch",
        per_week=1,
        start_time=time(9, 0),
        duration_minutes=30,
        analysis_date=date(2025, 3, 5),
        tz_name="America/New_York",
        weeks=2,
        summary="Exercise: Stretch",
        description="",
    )
    assert [e.start.hour for e in events] == [9, 9]
    assert events[0].start.utcoffset() != events[1].start.utcoffset()


def test_expansion_is_deterministic():
    kwargs = dict(
        name="Squats",
        per_week=4,
        start_time=time(18, 0),
        duration_minutes=45,
        analysis_date=date(2025, 4, 1),
        tz_name="Asia/Tokyo",
        weeks=3,
        summary="Exercise: Squats",
        description="d",
    )
    assert expand_exercise(**kwargs) == expand_exercise(**kwargs)


def test_weeks_are_seven_days_apart():
    events = expand_exercise(
        name="Bridges",
        per_week=2,
        start_time=time(10, 0),
        duration_minutes=30,
        analysis_date=date(2025, 1, 6),
        tz_name="UTC",
        weeks=3,
        summary="Exercise: Bridges",
        description="",
    )
    starts = [e.start.date() for e in events]
    assert starts == [
        date(2025, 1, 6), date(2025, 1, 9),
        date(2025, 1, 13), date(2025, 1, 16),
        date(2025, 1, 20), date(2025, 1, 23),
    ]


def test_aware_analysis_date_uses_target_timezone():
    tz = resolve_timezone("America/Los_Angeles")
    # 03:00 UTC on the 16th is still the 15th in Los Angeles
    assert local_date(datetime(2025, 1, 16, 3, 0, tzinfo=timezone.utc), tz) == date(2025, 1, 15)
    assert local_date(date(2025, 1, 16), tz) == date(2025, 1, 16)


def test_unknown_timezone():
    with pytest.raises(ValidationError):
        resolve_timezone("Mars/Olympus_Mons")


def test_start_time_parsing():
    assert parse_start_time("07:05", "x") == time(7, 5)
    with pytest.raises(ValidationError):
        parse_start_time("25:00", "x")


def test_default_start_times_stagger():
    assert [default_start_time(i) for i in range(4)] == ["09:00", "09:30", "10:00", "10:30"]
