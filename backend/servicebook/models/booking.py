from sqlalchemy import (
    Column, Integer, String, Text, Float, Date, DateTime, Enum, ForeignKey, Index, func,
)
from sqlalchemy.orm import relationship
import enum
from ..database import Base


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# states that still occupy a slot on the calendar
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.COMPLETED)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)

    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)  # "HH:MM", naive local time

    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.PENDING)
    starting_price = Column(Float, nullable=False)
    completed_price = Column(Float, nullable=True)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    service = relationship("Service")
    user = relationship("User", back_populates="bookings")
    receipt = relationship("Receipt", back_populates="booking", uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_bookings_user_status", "user_id", "status"),
        Index("ix_bookings_service_date", "service_id", "date"),
        Index("ix_bookings_date", "date"),
    )
