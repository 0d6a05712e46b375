# backend/servicebook/services/schedule_store.py
"""
Reads the schedule configuration and the day's bookings from the DB and turns
them into inputs for `availability.compute_availability`.
"""
import logging
from datetime import date, datetime, time

from sqlalchemy.orm import Session

from ..models.booking import ACTIVE_STATUSES, Booking
from ..models.schedule import BookingSettings, OffDutyPeriod, WorkingHours
from .availability import (
    WEEK,
    AvailabilityResult,
    BookingPolicy,
    OffDutyWindow,
    Weekday,
    WorkingHoursEntry,
    compute_availability,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_BOOKINGS_PER_DAY = 10
DEFAULT_TIME_BUFFER_MINUTES = 60

# (start, end, is_working_day)
DEFAULT_WORKING_HOURS: dict[Weekday, tuple[str, str, bool]] = {
    Weekday.MONDAY: ("09:00", "17:00", True),
    Weekday.TUESDAY: ("09:00", "17:00", True),
    Weekday.WEDNESDAY: ("09:00", "17:00", True),
    Weekday.THURSDAY: ("09:00", "17:00", True),
    Weekday.FRIDAY: ("09:00", "17:00", True),
    Weekday.SATURDAY: ("10:00", "15:00", False),
    Weekday.SUNDAY: ("10:00", "15:00", False),
}


def parse_hhmm(value: str) -> time | None:
    try:
        return datetime.strptime(value, "%H:%M").time()
    except (TypeError, ValueError):
        return None


def fmt_hhmm(t: time) -> str:
    return t.strftime("%H:%M")


# -----------------------------------------
# Working hours
# -----------------------------------------
def list_working_hours(db: Session, seed: bool = True) -> list[WorkingHours]:
    """Weekly template ordered Monday -> Sunday; seeds the defaults when empty."""
    rows = db.query(WorkingHours).all()
    if not rows and seed:
        rows = [
            WorkingHours(day_of_week=day, start_time=st, end_time=et, is_working_day=wd)
            for day, (st, et, wd) in DEFAULT_WORKING_HOURS.items()
        ]
        db.add_all(rows)
        db.commit()
        logger.info("Default working hours created")
    order = {d: i for i, d in enumerate(WEEK)}
    return sorted(rows, key=lambda r: order[r.day_of_week])


def to_engine_entries(rows: list[WorkingHours]) -> list[WorkingHoursEntry]:
    entries: list[WorkingHoursEntry] = []
    for r in rows:
        st, et = parse_hhmm(r.start_time), parse_hhmm(r.end_time)
        if st is None or et is None:
            # unreadable record (inserted around the API): closed day
            logger.warning("Working hours for %s are malformed, treating as closed", r.day_of_week)
            entries.append(WorkingHoursEntry(r.day_of_week, time(0, 0), time(0, 0), False))
            continue
        entries.append(WorkingHoursEntry(r.day_of_week, st, et, bool(r.is_working_day)))
    return entries


# -----------------------------------------
# Booking policy
# -----------------------------------------
def get_booking_settings(db: Session) -> BookingSettings:
    row = db.query(BookingSettings).order_by(BookingSettings.id.asc()).first()
    if row is None:
        row = BookingSettings(
            max_bookings_per_day=DEFAULT_MAX_BOOKINGS_PER_DAY,
            time_buffer_minutes=DEFAULT_TIME_BUFFER_MINUTES,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        logger.info("Default booking settings created")
    return row


def to_policy(row: BookingSettings) -> BookingPolicy:
    return BookingPolicy(
        max_bookings_per_day=row.max_bookings_per_day,
        time_buffer_minutes=row.time_buffer_minutes,
    )


# -----------------------------------------
# Off-duty
# -----------------------------------------
def off_duty_covering(db: Session, start: date, end: date | None = None) -> list[OffDutyPeriod]:
    """Periods overlapping [start, end] (a single day when end is None)."""
    end = end or start
    return (
        db.query(OffDutyPeriod)
        .filter(OffDutyPeriod.start_date <= end, OffDutyPeriod.end_date >= start)
        .order_by(OffDutyPeriod.start_date.asc())
        .all()
    )


def to_windows(rows: list[OffDutyPeriod]) -> list[OffDutyWindow]:
    return [
        OffDutyWindow(start_date=r.start_date, end_date=r.end_date, reason=r.reason.value)
        for r in rows
    ]


# -----------------------------------------
# Bookings
# -----------------------------------------
def booked_times_on(db: Session, day: date) -> list[time]:
    """Start times of every non-cancelled booking on `day`."""
    rows = (
        db.query(Booking.time)
        .filter(Booking.date == day, Booking.status.in_(ACTIVE_STATUSES))
        .all()
    )
    out: list[time] = []
    for (raw,) in rows:
        t = parse_hhmm(raw)
        if t is not None:
            out.append(t)
    return out


def availability_for(db: Session, day: date, now: datetime) -> AvailabilityResult:
    return compute_availability(
        day=day,
        working_hours=to_engine_entries(list_working_hours(db)),
        off_duty_periods=to_windows(off_duty_covering(db, day)),
        policy=to_policy(get_booking_settings(db)),
        booked_times=booked_times_on(db, day),
        now=now,
    )
