import logging
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import auth_admin
from ..models.schedule import OffDutyPeriod, WorkingHours
from ..models.user import User
from ..schemas.schedule import (
    BookingSettingsIn,
    BookingSettingsOut,
    DateRangeCheckOut,
    OffDutyIn,
    OffDutyOut,
    WorkingHoursIn,
    WorkingHoursOut,
    WorkingHoursUpdateIn,
)
from ..services.availability import WEEK
from ..services.schedule_store import get_booking_settings, list_working_hours, off_duty_covering

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


# -----------------------------------------------------------------------------
# WORKING HOURS
# -----------------------------------------------------------------------------
@router.get("/working-hours", response_model=List[WorkingHoursOut])
def working_hours(db: Session = Depends(get_db)):
    return list_working_hours(db)


@router.post("/working-hours", response_model=WorkingHoursOut, status_code=status.HTTP_201_CREATED)
def working_hours_create(payload: WorkingHoursIn, db: Session = Depends(get_db), _: User = Depends(auth_admin)):
    exists = db.query(WorkingHours).filter(WorkingHours.day_of_week == payload.day_of_week).first()
    if exists:
        raise HTTPException(400, f"Working hours for {payload.day_of_week.value} already exist")
    row = WorkingHours(**payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Working hours created for %s", row.day_of_week.value)
    return row


# declared before /{wh_id} so "bulk" is not parsed as an id
@router.put("/working-hours/bulk", response_model=List[WorkingHoursOut])
def working_hours_bulk(payload: List[WorkingHoursIn], db: Session = Depends(get_db),
                       _: User = Depends(auth_admin)):
    """Replace the whole weekly template: exactly one entry per weekday."""
    if len(payload) != len(WEEK):
        raise HTTPException(400, "Invalid data format. Expected an array of 7 working hours entries.")
    days = {e.day_of_week for e in payload}
    if days != set(WEEK):
        missing = [d.value for d in WEEK if d not in days]
        raise HTTPException(400, f"Each weekday must appear exactly once (missing: {', '.join(missing)})")

    # delete + insert in one transaction: all or nothing
    try:
        db.query(WorkingHours).delete(synchronize_session=False)
        db.add_all(WorkingHours(**e.model_dump()) for e in payload)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Bulk working hours update failed")
        raise
    logger.info("All working hours updated")
    return list_working_hours(db, seed=False)


@router.put("/working-hours/{wh_id}", response_model=WorkingHoursOut)
def working_hours_update(wh_id: int, payload: WorkingHoursUpdateIn, db: Session = Depends(get_db),
                         _: User = Depends(auth_admin)):
    row = db.get(WorkingHours, wh_id)
    if not row:
        raise HTTPException(404, "Working hours not found")
    row.start_time = payload.start_time
    row.end_time = payload.end_time
    row.is_working_day = payload.is_working_day
    db.commit()
    db.refresh(row)
    logger.info("Working hours updated: %s", wh_id)
    return row


@router.delete("/working-hours/{wh_id}")
def working_hours_delete(wh_id: int, db: Session = Depends(get_db), _: User = Depends(auth_admin)):
    row = db.get(WorkingHours, wh_id)
    if not row:
        raise HTTPException(404, "Working hours not found")
    db.delete(row)
    db.commit()
    logger.info("Working hours deleted: %s", wh_id)
    return {"ok": True, "message": "Working hours deleted successfully"}


# -----------------------------------------------------------------------------
# OFF-DUTY PERIODS
# -----------------------------------------------------------------------------
def _off_duty_or_404(db: Session, period_id: int) -> OffDutyPeriod:
    row = db.get(OffDutyPeriod, period_id)
    if not row:
        raise HTTPException(404, "Off-duty period not found")
    return row


@router.get("/off-duty", response_model=List[OffDutyOut])
def off_duty_list(db: Session = Depends(get_db)):
    return db.query(OffDutyPeriod).order_by(OffDutyPeriod.start_date.asc()).all()


@router.post("/off-duty", response_model=OffDutyOut, status_code=status.HTTP_201_CREATED)
def off_duty_create(payload: OffDutyIn, db: Session = Depends(get_db), _: User = Depends(auth_admin)):
    row = OffDutyPeriod(**payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("New off-duty period created: %s (%s..%s)", row.id, row.start_date, row.end_date)
    return row


@router.get("/off-duty/{period_id}", response_model=OffDutyOut)
def off_duty_get(period_id: int, db: Session = Depends(get_db)):
    return _off_duty_or_404(db, period_id)


@router.put("/off-duty/{period_id}", response_model=OffDutyOut)
def off_duty_update(period_id: int, payload: OffDutyIn, db: Session = Depends(get_db),
                    _: User = Depends(auth_admin)):
    row = _off_duty_or_404(db, period_id)
    row.start_date = payload.start_date
    row.end_date = payload.end_date
    row.reason = payload.reason
    db.commit()
    db.refresh(row)
    logger.info("Off-duty period updated: %s", period_id)
    return row


@router.delete("/off-duty/{period_id}")
def off_duty_delete(period_id: int, db: Session = Depends(get_db), _: User = Depends(auth_admin)):
    row = _off_duty_or_404(db, period_id)
    db.delete(row)
    db.commit()
    logger.info("Off-duty period deleted: %s", period_id)
    return {"ok": True, "message": "Off-duty period deleted successfully"}


# -----------------------------------------------------------------------------
# BOOKING POLICY
# -----------------------------------------------------------------------------
@router.get("/booking", response_model=BookingSettingsOut)
def booking_settings(db: Session = Depends(get_db)):
    return get_booking_settings(db)


@router.put("/booking", response_model=BookingSettingsOut)
def booking_settings_update(payload: BookingSettingsIn, db: Session = Depends(get_db),
                            _: User = Depends(auth_admin)):
    row = get_booking_settings(db)
    row.max_bookings_per_day = payload.max_bookings_per_day
    row.time_buffer_minutes = payload.time_buffer_minutes
    db.commit()
    db.refresh(row)
    logger.info(
        "Booking settings updated: max/day=%s buffer=%smin",
        row.max_bookings_per_day, row.time_buffer_minutes,
    )
    return row


# -----------------------------------------------------------------------------
# DATE RANGE CHECK (off-duty only, not the slot engine)
# -----------------------------------------------------------------------------
@router.get("/check-availability", response_model=DateRangeCheckOut)
def check_availability(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    db: Session = Depends(get_db),
):
    if end_date < start_date:
        raise HTTPException(400, "endDate must be on or after startDate")
    overlapping = off_duty_covering(db, start_date, end_date)
    return DateRangeCheckOut(
        is_available=not overlapping,
        overlapping_periods=[OffDutyOut.model_validate(p) for p in overlapping],
    )
