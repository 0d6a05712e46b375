import logging
from datetime import date, datetime
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload

from ..database import get_db
from ..deps import auth_admin, clock, ensure_owner_or_admin, get_current_user
from ..models.booking import Booking, BookingStatus
from ..models.service import Service
from ..models.user import Role, User
from ..schemas.booking import AvailabilityOut, BookingCreateIn, BookingOut, CancelIn, StatusUpdateIn
from ..services import notifier
from ..services.receipts import ReceiptError, issue_receipt
from ..services.schedule_store import availability_for, fmt_hhmm, parse_hhmm

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


# -----------------------------------------
# Helpers
# -----------------------------------------
def _with_relations(q):
    return q.options(joinedload(Booking.service), joinedload(Booking.user))


def _get_or_404(db: Session, booking_id: int) -> Booking:
    b = _with_relations(db.query(Booking)).filter(Booking.id == booking_id).first()
    if not b:
        raise HTTPException(404, "Booking not found")
    return b


def _filtered(q, status_: BookingStatus | None, service_id: int | None, day: date | None):
    if status_:
        q = q.filter(Booking.status == status_)
    if service_id:
        q = q.filter(Booking.service_id == service_id)
    if day:
        q = q.filter(Booking.date == day)
    return q.order_by(Booking.created_at.desc(), Booking.id.desc())


# -----------------------------------------------------------------------------
# AVAILABILITY (slots for a date)
# -----------------------------------------------------------------------------
@router.get("/availability", response_model=AvailabilityOut)
def availability(day: date = Query(..., alias="date"), db: Session = Depends(get_db), now: datetime = Depends(clock)):
    result = availability_for(db, day, now)
    return AvailabilityOut(
        date=day,
        is_bookable_day=result.is_bookable_day,
        blocking_reason=result.blocking_reason,
        available_slots=[fmt_hhmm(s) for s in result.available_slots],
    )


# -----------------------------------------------------------------------------
# CUSTOMER
# -----------------------------------------------------------------------------
@router.get("", response_model=List[BookingOut])
def my_bookings(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    q = _with_relations(db.query(Booking)).filter(Booking.user_id == me.id)
    return q.order_by(Booking.created_at.desc(), Booking.id.desc()).all()


@router.post("", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreateIn,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
    now: datetime = Depends(clock),
):
    if payload.date < now.date():
        raise HTTPException(400, "Cannot book a date in the past")

    service = db.get(Service, payload.service_id)
    if not service or not service.active:
        raise HTTPException(404, "Service not found")

    # authoritative check, right before the insert in the same session;
    # two concurrent requests can still both pass (accepted, see DESIGN.md)
    result = availability_for(db, payload.date, now)
    if not result.is_bookable_day:
        logger.info("Booking refused for %s: %s", payload.date, result.blocking_reason)
        raise HTTPException(
            400,
            detail={
                "message": "The selected date is unavailable for booking",
                "blocking_reason": result.blocking_reason,
            },
        )
    if not result.offers(parse_hhmm(payload.time)):
        raise HTTPException(409, "The selected time slot is no longer available. Please select another time.")

    b = Booking(
        service_id=service.id,
        user_id=me.id,
        date=payload.date,
        time=payload.time,
        status=BookingStatus.PENDING,
        starting_price=service.price,
        address=payload.address,
        notes=payload.notes,
    )
    db.add(b)
    db.commit()
    b = _get_or_404(db, b.id)
    logger.info("Booking %s created by user %s for %s %s", b.id, me.id, b.date, b.time)

    notifier.booking_created(db, background, b)
    return b


@router.get("/admin/all", response_model=List[BookingOut])
def all_bookings(
    status_: BookingStatus | None = Query(None, alias="status"),
    service_id: int | None = None,
    day: date | None = Query(None, alias="date"),
    db: Session = Depends(get_db),
    _: User = Depends(auth_admin),
):
    q = _with_relations(db.query(Booking))
    return _filtered(q, status_, service_id, day).all()


@router.get("/customer/{customer_id}", response_model=List[BookingOut])
def customer_bookings(
    customer_id: int,
    status_: BookingStatus | None = Query(None, alias="status"),
    service_id: int | None = None,
    day: date | None = Query(None, alias="date"),
    db: Session = Depends(get_db),
    _: User = Depends(auth_admin),
):
    if not db.get(User, customer_id):
        raise HTTPException(404, "Customer not found")
    q = _with_relations(db.query(Booking)).filter(Booking.user_id == customer_id)
    return _filtered(q, status_, service_id, day).all()


@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    b = _get_or_404(db, booking_id)
    ensure_owner_or_admin(me, b.user_id, "Not authorized to access this booking")
    return b


@router.patch("/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(
    booking_id: int,
    payload: CancelIn,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    b = _get_or_404(db, booking_id)
    ensure_owner_or_admin(me, b.user_id, "Not authorized to cancel this booking")
    if b.status in (BookingStatus.CANCELLED, BookingStatus.COMPLETED):
        raise HTTPException(400, f"Booking is already {b.status.value}")

    b.status = BookingStatus.CANCELLED
    b.cancellation_reason = payload.cancellation_reason.strip()
    db.commit()
    db.refresh(b)
    logger.info("Booking %s cancelled by user %s", b.id, me.id)

    if me.role == Role.ADMIN:
        notifier.booking_status_changed(
            db, background, b,
            title="Booking Cancelled",
            message=f"Your booking for {b.service.name} has been cancelled by the admin",
        )
    else:
        notifier.booking_cancelled_by_customer(db, background, b)
    return b


# -----------------------------------------------------------------------------
# ADMIN: status workflow
# -----------------------------------------------------------------------------
@router.patch("/{booking_id}/status", response_model=BookingOut)
def update_status(
    booking_id: int,
    payload: StatusUpdateIn,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    _: User = Depends(auth_admin),
):
    b = _get_or_404(db, booking_id)

    reason = (payload.cancellation_reason or "").strip()
    if payload.status == BookingStatus.CANCELLED and not reason:
        raise HTTPException(400, "Please provide a cancellation reason")

    b.status = payload.status
    if payload.status == BookingStatus.CANCELLED:
        b.cancellation_reason = reason

    if payload.status == BookingStatus.COMPLETED and payload.completed_price is not None:
        b.completed_price = payload.completed_price
        if payload.service_personnel_name and payload.service_personnel_name.strip():
            try:
                issue_receipt(db, b, payload.completed_price, payload.service_personnel_name)
            except ReceiptError as e:
                # status change still goes through
                logger.warning("Receipt not generated for booking %s: %s", b.id, e)

    db.commit()
    db.refresh(b)
    logger.info("Booking %s status set to %s", b.id, b.status.value)

    notifier.booking_status_changed(db, background, b)
    return b
