# backend/servicebook/services/notifier.py
"""
Booking event fan-out: in-app row (sync, same transaction as the caller),
then websocket, push and email as background tasks after the response.
"""
import logging
import time as _time

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from ..models.booking import Booking, BookingStatus
from ..models.notification import Notification
from . import booking_emails, push
from .receipt_pdf import ReceiptDetails
from .realtime import hub

logger = logging.getLogger(__name__)


def _ts() -> int:
    return int(_time.time() * 1000)


def _status_message(service_name: str, status: str, reason: str | None) -> str:
    msg = f"Your booking for {service_name} has been {status}"
    if status == BookingStatus.CANCELLED.value and reason:
        msg += f": {reason}"
    return msg


def record(db: Session, user_id: int, title: str, message: str,
           related_id: int | None = None, kind: str = "booking_status") -> Notification:
    note = Notification(user_id=user_id, type=kind, title=title, message=message, related_id=related_id)
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


def booking_created(db: Session, background: BackgroundTasks, booking: Booking) -> None:
    service_name = booking.service.name
    customer = booking.user
    background.add_task(
        hub.send_to_admins,
        "admin:new_booking",
        {"booking_id": booking.id, "service_name": service_name, "customer_name": customer.name},
    )
    common = dict(
        booking_id=booking.id,
        service_name=service_name,
        day=booking.date.isoformat(),
        time=booking.time,
    )
    background.add_task(
        booking_emails.new_booking_to_admins,
        booking_emails.admin_emails(db),
        customer_name=customer.name,
        customer_email=customer.email,
        address=booking.address,
        notes=booking.notes,
        **common,
    )
    background.add_task(
        booking_emails.booking_received_to_customer,
        customer.email,
        customer_name=customer.name,
        **common,
    )


def booking_status_changed(db: Session, background: BackgroundTasks, booking: Booking,
                           title: str = "Booking Update", message: str | None = None) -> Notification:
    """Customer-facing: in-app + websocket + push (when offline) + email."""
    status = booking.status.value
    service_name = booking.service.name
    message = message or _status_message(service_name, status, booking.cancellation_reason)
    note = record(db, booking.user_id, title, message, related_id=booking.id)

    event = {
        "id": note.id,
        "type": "booking_status",
        "title": title,
        "message": message,
        "related_id": booking.id,
        "timestamp": _ts(),
    }
    background.add_task(hub.send_to_user, booking.user_id, "notification", event)
    background.add_task(
        hub.send_to_user,
        booking.user_id,
        "booking_status_changed",
        {
            "booking_id": booking.id,
            "service_name": service_name,
            "status": status,
            "cancellation_reason": booking.cancellation_reason,
        },
    )
    background.add_task(
        push.send_push_to_user,
        booking.user_id,
        title,
        message,
        {"type": "booking_status", "booking_id": booking.id},
    )
    # detached copy: the request session is closed when the task runs
    receipt = ReceiptDetails.from_booking(booking) if booking.status == BookingStatus.COMPLETED else None
    background.add_task(
        booking_emails.status_update_to_customer,
        booking.user.email,
        customer_name=booking.user.name,
        booking_id=booking.id,
        service_name=service_name,
        day=booking.date.isoformat(),
        time=booking.time,
        status=status,
        cancellation_reason=booking.cancellation_reason,
        final_price=booking.completed_price,
        receipt=receipt,
    )
    logger.info("Booking %s status notification queued for user %s", booking.id, booking.user_id)
    return note


def booking_cancelled_by_customer(db: Session, background: BackgroundTasks, booking: Booking) -> None:
    """Admin-facing: websocket + email."""
    customer = booking.user
    service_name = booking.service.name
    background.add_task(
        hub.send_to_admins,
        "notification",
        {
            "type": "booking_status",
            "title": "Booking Cancelled",
            "message": f"{customer.name} cancelled their booking for {service_name}",
            "related_id": booking.id,
            "timestamp": _ts(),
        },
    )
    background.add_task(
        booking_emails.cancellation_to_admins,
        booking_emails.admin_emails(db),
        booking_id=booking.id,
        service_name=service_name,
        day=booking.date.isoformat(),
        time=booking.time,
        customer_name=customer.name,
        customer_email=customer.email,
        reason=booking.cancellation_reason or "",
    )
