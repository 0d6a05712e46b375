# backend/servicebook/schemas/schedule.py
from __future__ import annotations

from datetime import date
from typing import Annotated, List

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, model_validator

from ..models.schedule import OffDutyReason
from ..services.availability import Weekday

# 24-hour "HH:MM"
HHMM = Annotated[str, StringConstraints(pattern=r"^([01]\d|2[0-3]):([0-5]\d)$")]


# -----------------------------
# WORKING HOURS
# -----------------------------

class WorkingHoursIn(BaseModel):
    day_of_week: Weekday
    start_time: HHMM
    end_time: HHMM
    is_working_day: bool

    @model_validator(mode="after")
    def _start_before_end(self):
        # "HH:MM" strings compare like times
        if self.is_working_day and self.start_time >= self.end_time:
            raise ValueError(
                f"{self.day_of_week.value}: start_time must be before end_time on a working day"
            )
        return self


class WorkingHoursUpdateIn(BaseModel):
    start_time: HHMM
    end_time: HHMM
    is_working_day: bool

    @model_validator(mode="after")
    def _start_before_end(self):
        if self.is_working_day and self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time on a working day")
        return self


class WorkingHoursOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    day_of_week: Weekday
    start_time: str
    end_time: str
    is_working_day: bool


# -----------------------------
# OFF-DUTY
# -----------------------------

class OffDutyIn(BaseModel):
    start_date: date
    end_date: date
    reason: OffDutyReason

    @model_validator(mode="after")
    def _range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class OffDutyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    start_date: date
    end_date: date
    reason: OffDutyReason


class DateRangeCheckOut(BaseModel):
    is_available: bool
    overlapping_periods: List[OffDutyOut] = []


# -----------------------------
# BOOKING POLICY
# -----------------------------

class BookingSettingsIn(BaseModel):
    max_bookings_per_day: int = Field(ge=1)
    time_buffer_minutes: int = Field(ge=0)


class BookingSettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    max_bookings_per_day: int
    time_buffer_minutes: int
