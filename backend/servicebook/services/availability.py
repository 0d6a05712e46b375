# backend/servicebook/services/availability.py
"""
Bookable-slot computation for a single calendar date.

Pure logic: no DB, no clock, no I/O. Callers load working hours, off-duty
periods, the booking policy and the day's non-cancelled bookings, pass the
current instant explicitly, and get back an AvailabilityResult.

Order of checks (each one short-circuits to a blocked day):
1. weekday is a working day
2. date is not inside an off-duty period
3. daily booking cap not reached
then 30-minute slots inside working hours, minus past times (today only)
and minus anything closer than the buffer to an existing booking.
"""
import enum
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Iterable, Sequence

SLOT_STEP_MINUTES = 30

REASON_NOT_WORKING_DAY = "not a working day"
REASON_DAILY_LIMIT = "daily limit reached"


class Weekday(str, enum.Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def of(cls, d: date) -> "Weekday":
        return WEEK[d.weekday()]


# date.weekday(): 0=Monday ... 6=Sunday
WEEK: tuple[Weekday, ...] = tuple(Weekday)


@dataclass(frozen=True)
class WorkingHoursEntry:
    day_of_week: Weekday
    start_time: time
    end_time: time
    is_working_day: bool = True


@dataclass(frozen=True)
class OffDutyWindow:
    start_date: date
    end_date: date
    reason: str


@dataclass(frozen=True)
class BookingPolicy:
    max_bookings_per_day: int = 10
    time_buffer_minutes: int = 60


@dataclass(frozen=True)
class AvailabilityResult:
    is_bookable_day: bool
    blocking_reason: str | None = None
    available_slots: tuple[time, ...] = field(default_factory=tuple)

    @classmethod
    def blocked(cls, reason: str) -> "AvailabilityResult":
        return cls(is_bookable_day=False, blocking_reason=reason, available_slots=())

    def offers(self, t: time) -> bool:
        return self.is_bookable_day and _minutes(t) in {_minutes(s) for s in self.available_slots}


def _minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def _from_minutes(m: int) -> time:
    return time(hour=m // 60, minute=m % 60)


def _as_date(value: date | datetime) -> date:
    # datetime is a subclass of date: strip the time part ("midnight")
    if isinstance(value, datetime):
        return value.date()
    return value


def _entry_for(day: date, working_hours: Iterable[WorkingHoursEntry]) -> WorkingHoursEntry | None:
    wd = Weekday.of(day)
    for entry in working_hours:
        if Weekday(entry.day_of_week) == wd:
            return entry
    return None


def _blocking_period(day: date, periods: Iterable[OffDutyWindow]) -> OffDutyWindow | None:
    for p in periods:
        if _as_date(p.start_date) <= day <= _as_date(p.end_date):
            return p
    return None


def candidate_slots(start: time, end: time) -> list[time]:
    """30-minute grid from start, end-exclusive."""
    end_m = _minutes(end)
    return [_from_minutes(m) for m in range(_minutes(start), end_m, SLOT_STEP_MINUTES)]


def compute_availability(
    day: date | datetime,
    working_hours: Sequence[WorkingHoursEntry],
    off_duty_periods: Sequence[OffDutyWindow],
    policy: BookingPolicy,
    booked_times: Sequence[time],
    now: datetime,
) -> AvailabilityResult:
    """
    Compute whether `day` is bookable and which slots are still free.

    `booked_times` must already exclude cancelled bookings: every entry counts
    towards the daily cap and the buffer.
    """
    day = _as_date(day)

    entry = _entry_for(day, working_hours)
    # a working day with start >= end is a broken record: closed, not an error
    if (
        entry is None
        or not entry.is_working_day
        or _minutes(entry.start_time) >= _minutes(entry.end_time)
    ):
        return AvailabilityResult.blocked(REASON_NOT_WORKING_DAY)

    period = _blocking_period(day, off_duty_periods)
    if period is not None:
        return AvailabilityResult.blocked(period.reason)

    if len(booked_times) >= policy.max_bookings_per_day:
        return AvailabilityResult.blocked(REASON_DAILY_LIMIT)

    slots = candidate_slots(entry.start_time, entry.end_time)

    if day == now.date():
        now_m = now.hour * 60 + now.minute
        slots = [s for s in slots if _minutes(s) > now_m]

    booked_m = [_minutes(b) for b in booked_times]
    buffer = policy.time_buffer_minutes
    slots = [
        s for s in slots
        if all(abs(_minutes(s) - b) >= buffer for b in booked_m)
    ]

    return AvailabilityResult(
        is_bookable_day=True,
        blocking_reason=None,
        available_slots=tuple(slots),
    )
