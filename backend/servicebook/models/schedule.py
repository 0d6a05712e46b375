from sqlalchemy import Column, Integer, String, Date, Boolean, Enum, DateTime, CheckConstraint, func
import enum
from ..database import Base
from ..services.availability import Weekday


class OffDutyReason(str, enum.Enum):
    HOLIDAY = "Holiday"
    VACATION = "Vacation"
    SICK_LEAVE = "Sick Leave"
    PERSONAL = "Personal"
    OTHER = "Other"


class WorkingHours(Base):
    """Weekly template: one row per weekday."""
    __tablename__ = "working_hours"

    id = Column(Integer, primary_key=True)
    day_of_week = Column(Enum(Weekday), nullable=False, unique=True)
    start_time = Column(String(5), nullable=False)  # "HH:MM"
    end_time = Column(String(5), nullable=False)
    is_working_day = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class OffDutyPeriod(Base):
    __tablename__ = "off_duty_periods"

    id = Column(Integer, primary_key=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(Enum(OffDutyReason, values_callable=lambda e: [m.value for m in e]), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (CheckConstraint("end_date >= start_date", name="ck_off_duty_range"),)


class BookingSettings(Base):
    """Singleton row with the booking policy knobs."""
    __tablename__ = "booking_settings"

    id = Column(Integer, primary_key=True)
    max_bookings_per_day = Column(Integer, nullable=False, default=10)
    time_buffer_minutes = Column(Integer, nullable=False, default=60)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("max_bookings_per_day >= 1", name="ck_max_bookings_min"),
        CheckConstraint("time_buffer_minutes >= 0", name="ck_buffer_min"),
    )
