"""Time-of-day interval model shared by scheduling and billing.

Every slot is a half-open range [start, end) in UTC with minute granularity,
so a slot ending at 10:00 and one starting at 10:00 never overlap.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Iterator, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from academy.core.enums import DayOfWeek
from academy.core.exceptions import InvalidInterval


def parse_time_of_day(v: Union[str, time]) -> time:
    """Parse 24-hour time string (HH:MM or HH:MM:SS) to time."""
    if isinstance(v, time):
        return v
    if isinstance(v, str):
        v = v.strip()
        if len(v) == 5:  # HH:MM
            return datetime.strptime(v, "%H:%M").time()
        return datetime.strptime(v, "%H:%M:%S").time()
    raise ValueError("start/end must be 24-hour string (e.g. 09:00, 09:45) or time")


def minute_of_day(t: time) -> int:
    return t.hour * 60 + t.minute


def as_utc(dt: datetime) -> datetime:
    """Naive timestamps coming back from the store are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class TimeSlot(BaseModel):
    """A time-of-day range [start, end) in UTC. Construction does not validate; see validate_slot."""

    model_config = ConfigDict(frozen=True)

    start: time
    end: time

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_time(cls, v: Union[str, time]) -> time:
        return parse_time_of_day(v)

    @field_serializer("start", "end")
    def serialize_time_24(self, t: time) -> str:
        return t.strftime("%H:%M")

    @property
    def sort_key(self) -> Tuple[int, int]:
        return minute_of_day(self.start), minute_of_day(self.end)

    def __str__(self) -> str:
        return f"{self.start:%H:%M} - {self.end:%H:%M}"


def overlaps(a: TimeSlot, b: TimeSlot) -> bool:
    a_start, a_end = a.sort_key
    b_start, b_end = b.sort_key
    return a_start < b_end and b_start < a_end


def contains(outer: TimeSlot, inner: TimeSlot) -> bool:
    return outer.sort_key[0] <= inner.sort_key[0] and inner.sort_key[1] <= outer.sort_key[1]


def duration_minutes(slot: TimeSlot) -> int:
    start, end = slot.sort_key
    return end - start


def minutes_between(starts_at: datetime, ends_at: datetime) -> int:
    """Whole minutes between two timestamps (session durations)."""
    return int((as_utc(ends_at) - as_utc(starts_at)).total_seconds() // 60)


def validate_slot(slot: TimeSlot) -> None:
    for bound in (slot.start, slot.end):
        if bound.second or bound.microsecond:
            raise InvalidInterval(f"Time slot {slot} must have minute granularity")
        offset = bound.utcoffset()
        if offset is not None and offset != timedelta(0):
            raise InvalidInterval(f"Time slot {slot} must be expressed in UTC")
    if minute_of_day(slot.start) >= minute_of_day(slot.end):
        raise InvalidInterval(f"Time slot {slot}: end must be after start")


class WeeklySchedule(BaseModel):
    """Day-of-week to ordered time slots, keyed monday..sunday when serialized."""

    monday: List[TimeSlot] = Field(default_factory=list)
    tuesday: List[TimeSlot] = Field(default_factory=list)
    wednesday: List[TimeSlot] = Field(default_factory=list)
    thursday: List[TimeSlot] = Field(default_factory=list)
    friday: List[TimeSlot] = Field(default_factory=list)
    saturday: List[TimeSlot] = Field(default_factory=list)
    sunday: List[TimeSlot] = Field(default_factory=list)

    @classmethod
    def from_slots(cls, items: Iterable[Tuple[DayOfWeek, TimeSlot]]) -> "WeeklySchedule":
        by_day = {day.key: [] for day in DayOfWeek}
        for day, slot in items:
            by_day[DayOfWeek(day).key].append(slot)
        for slots in by_day.values():
            slots.sort(key=lambda s: s.sort_key)
        return cls(**by_day)

    def slots(self, day: DayOfWeek) -> List[TimeSlot]:
        return getattr(self, DayOfWeek(day).key)

    def days(self) -> Iterator[Tuple[DayOfWeek, List[TimeSlot]]]:
        """Days that have at least one slot, Monday first."""
        for day in DayOfWeek:
            slots = self.slots(day)
            if slots:
                yield day, slots

    def is_empty(self) -> bool:
        return not any(True for _ in self.days())


def validate_schedule(schedule: WeeklySchedule) -> None:
    """Every slot valid and no two slots of the same day overlapping."""
    for day, slots in schedule.days():
        for slot in slots:
            validate_slot(slot)
        ordered = sorted(slots, key=lambda s: s.sort_key)
        for previous, current in zip(ordered, ordered[1:]):
            if overlaps(previous, current):
                raise InvalidInterval(f"{day.label}: {previous} overlaps {current}")


def weekly_from_dated(starts_at: datetime, ends_at: datetime) -> Tuple[DayOfWeek, TimeSlot]:
    """Project a concrete UTC range onto its weekday and time of day."""
    starts_at, ends_at = as_utc(starts_at), as_utc(ends_at)
    if ends_at.date() != starts_at.date():
        raise InvalidInterval(
            f"Range {starts_at.isoformat()} .. {ends_at.isoformat()} crosses midnight UTC"
        )
    slot = TimeSlot(start=starts_at.time().replace(tzinfo=None), end=ends_at.time().replace(tzinfo=None))
    return DayOfWeek(starts_at.weekday()), slot


def date_range_bounds(
    start_date: date,
    end_date: date,
    timezone_name: Optional[str] = None,
) -> Tuple[datetime, datetime]:
    """Inclusive UTC timestamp bounds of a date range: start 00:00 to end 23:59:59.999999.

    The dates are calendar days in `timezone_name`, UTC when omitted.
    """
    zone = _zone(timezone_name) if timezone_name else timezone.utc
    return (
        as_utc(datetime.combine(start_date, time.min, tzinfo=zone)),
        as_utc(datetime.combine(end_date, time.max, tzinfo=zone)),
    )


def slot_bounds(on: date, slot: TimeSlot, timezone_name: Optional[str] = None) -> Tuple[datetime, datetime]:
    """UTC timestamps of a weekly slot on a concrete date.

    With `timezone_name` the slot and date are wall-clock in that zone and the
    offset of that very date is applied.
    """
    zone = _zone(timezone_name) if timezone_name else timezone.utc
    starts_at = datetime.combine(on, slot.start.replace(tzinfo=None), tzinfo=zone)
    ends_at = datetime.combine(on, slot.end.replace(tzinfo=None), tzinfo=zone)
    return as_utc(starts_at), as_utc(ends_at)


def _zone(timezone_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidInterval(f"Unknown timezone: {timezone_name}")


def localize_slot(
    day: DayOfWeek,
    slot: TimeSlot,
    timezone_name: str,
    reference: Optional[date] = None,
) -> Tuple[DayOfWeek, TimeSlot]:
    """Convert a wall-clock slot in `timezone_name` to UTC.

    The offset is taken on the first `day` on or after `reference` (today by default),
    so DST is resolved for the week being scheduled. The weekday may shift.
    """
    zone = _zone(timezone_name)
    reference = reference or datetime.now(timezone.utc).date()
    on = reference + timedelta(days=(int(day) - reference.weekday()) % 7)
    starts_at = datetime.combine(on, slot.start.replace(tzinfo=None), tzinfo=zone)
    ends_at = datetime.combine(on, slot.end.replace(tzinfo=None), tzinfo=zone)
    return weekly_from_dated(starts_at, ends_at)


def localize_schedule(
    schedule: WeeklySchedule,
    timezone_name: str,
    reference: Optional[date] = None,
) -> WeeklySchedule:
    return WeeklySchedule.from_slots(
        localize_slot(day, slot, timezone_name, reference)
        for day, slots in schedule.days()
        for slot in slots
    )


def occurrences(schedule: WeeklySchedule, start_date: date, end_date: date) -> Iterator[Tuple[date, TimeSlot]]:
    """Expand a weekly schedule over an inclusive date range."""
    current = start_date
    while current <= end_date:
        for slot in schedule.slots(DayOfWeek(current.weekday())):
            yield current, slot
        current += timedelta(days=1)


def minutes_to_duration(minutes: int) -> str:
    """Display form: 90 -> "1h 30m", 60 -> "1h", 0 -> "0m"."""
    hours, remaining = divmod(minutes, 60)
    if hours and remaining:
        return f"{hours}h {remaining}m"
    if hours:
        return f"{hours}h"
    return f"{remaining}m"


def dated_occurrences(
    schedule: WeeklySchedule,
    start_date: date,
    end_date: date,
    timezone_name: Optional[str] = None,
) -> Iterator[Tuple[datetime, datetime]]:
    """UTC ranges of every occurrence of `schedule` in [start_date, end_date].

    Schedule and dates are read in `timezone_name` (UTC when omitted), so a local
    Monday class stays on local Mondays whatever UTC weekday it lands on.
    """
    for on, slot in occurrences(schedule, start_date, end_date):
        yield slot_bounds(on, slot, timezone_name)
