# backend/servicebook/schemas/booking.py
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.booking import BookingStatus
from .schedule import HHMM


class BookingCreateIn(BaseModel):
    service_id: int
    date: date
    time: HHMM
    address: Optional[str] = None
    notes: Optional[str] = None


class CancelIn(BaseModel):
    cancellation_reason: str = Field(min_length=1)


class StatusUpdateIn(BaseModel):
    status: BookingStatus
    cancellation_reason: Optional[str] = None
    completed_price: Optional[float] = Field(None, ge=0)
    service_personnel_name: Optional[str] = None


class BookingServiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: float
    icon_name: str


class BookingUserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str


class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    service_id: int
    user_id: int
    date: date
    time: str
    status: BookingStatus
    starting_price: float
    completed_price: Optional[float] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    service: Optional[BookingServiceOut] = None
    user: Optional[BookingUserOut] = None


class AvailabilityOut(BaseModel):
    date: date
    is_bookable_day: bool
    blocking_reason: Optional[str] = None
    available_slots: List[str] = []
