"""
Exercise prescription -> concrete dated sessions.

Pure date math, no I/O. A frequency descriptor becomes N sessions per week,
spread evenly across the 7 days that start on the analysis date's weekday.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from recoverylab.core.errors import ParseError, ValidationError
from recoverylab.platform.ports.calendar import EventDraft

WORD_COUNTS = {
    "once": 1, "one": 1, "twice": 2, "two": 2, "thrice": 3, "three": 3,
    "four": 4, "five": 5, "six": 6, "seven": 7,
}

_DAILY = re.compile(r"(?:daily|every\s*day|everyday)")
_WEEKLY = re.compile(r"weekly|once\s+weekly")
_NUMERIC = re.compile(r"(\d+)\s*(?:x|times)?\s*(?:per|a|/|each)\s*week")
_WORDS = re.compile(r"(" + "|".join(WORD_COUNTS) + r")(?:\s*(?:x|times))?\s*(?:per|a|/|each)\s*week")


@dataclass(frozen=True)
class EventInstance:
    exercise: str
    summary: str
    description: str
    start: datetime
    end: datetime
    timezone: str

    def draft(self) -> EventDraft:
        return EventDraft(
            summary=self.summary,
            description=self.description,
            start=self.start,
            end=self.end,
            timezone=self.timezone,
        )


def parse_frequency(exercise: str, descriptor: str) -> int:
    """Sessions per week for a descriptor such as "Daily" or "3x per week"."""
    norm = " ".join((descriptor or "").lower().split())
    if _DAILY.fullmatch(norm):
        return 7
    if _WEEKLY.fullmatch(norm):
        return 1
    m = _NUMERIC.fullmatch(norm)
    if m:
        n = int(m.group(1))
    else:
        m = _WORDS.fullmatch(norm)
        if not m:
            raise ParseError(exercise, descriptor)
        n = WORD_COUNTS[m.group(1)]
    if not 1 <= n <= 7:
        raise ParseError(exercise, descriptor)
    return n


def day_offsets(per_week: int) -> list[int]:
    # floor keeps ties on the earlier day
    return [(i * 7) // per_week for i in range(per_week)]


def resolve_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"Unknown timezone {name!r}", field="timezone") from e


def parse_start_time(value: str, exercise: str) -> time:
    try:
        hh, mm = value.strip().split(":")[:2]
        return time(int(hh), int(mm))
    except (ValueError, AttributeError) as e:
        raise ValidationError(f"Invalid start_time {value!r} for exercise {exercise!r}", field="start_time") from e


def default_start_time(index: int) -> str:
    """09:00, 09:30, 10:00, ... for exercises without a chosen time."""
    return f"{9 + index // 2:02d}:{(index % 2) * 30:02d}"


def local_date(value: date | datetime, tz: ZoneInfo) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(tz).date()
        return value.date()
    return value


def describe(
    *,
    plan_label: str,
    session_id: str,
    instructions: list[str],
    sets_reps: str,
    frequency: str,
    weeks: int,
) -> str:
    lines = [plan_label, f"Session: {session_id}", "", "Instructions:"]
    lines += [f"{i}. {step}" for i, step in enumerate(instructions, start=1)]
    lines += [
        "",
        f"Sets/Reps: {sets_reps}",
        f"Frequency: {frequency}",
        f"Duration: {weeks} week{'s' if weeks != 1 else ''}",
    ]
    return "\n".join(lines)


def expand_exercise(
    *,
    name: str,
    per_week: int,
    start_time: time,
    duration_minutes: int,
    analysis_date: date,
    tz_name: str,
    weeks: int,
    summary: str,
    description: str,
) -> list[EventInstance]:
    tz = resolve_timezone(tz_name)
    duration = timedelta(minutes=duration_minutes)
    out = []
    for week in range(weeks):
        for off in day_offsets(per_week):
            day = analysis_date + timedelta(days=7 * week + off)
            start = datetime.combine(day, start_time, tzinfo=tz)
            # absolute duration, so a DST switch mid-session doesn't stretch it
            end = (start.astimezone(timezone.utc) + duration).astimezone(tz)
            out.append(EventInstance(name, summary, description, start, end, tz_name))
    return out
