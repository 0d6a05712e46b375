import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import auth_admin
from ..models.booking import Booking
from ..models.service import Service
from ..models.user import User
from ..schemas.service import ServiceIn, ServiceOut, ServiceUpdateIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["services"])


def _get_or_404(db: Session, service_id: int) -> Service:
    s = db.get(Service, service_id)
    if not s:
        raise HTTPException(404, "Service not found")
    return s


# -----------------------------------------------------------------------------
# PUBLIC CATALOG
# -----------------------------------------------------------------------------
@router.get("", response_model=list[ServiceOut])
def list_services(db: Session = Depends(get_db)):
    return db.query(Service).filter(Service.active == True).order_by(Service.name.asc()).all()  # noqa: E712


@router.get("/admin/all", response_model=list[ServiceOut])
def list_all_services(db: Session = Depends(get_db), _: User = Depends(auth_admin)):
    return db.query(Service).order_by(Service.name.asc()).all()


@router.get("/{service_id}", response_model=ServiceOut)
def get_service(service_id: int, db: Session = Depends(get_db)):
    return _get_or_404(db, service_id)


# -----------------------------------------------------------------------------
# ADMIN
# -----------------------------------------------------------------------------
@router.post("", response_model=ServiceOut, status_code=status.HTTP_201_CREATED)
def create_service(payload: ServiceIn, db: Session = Depends(get_db), _: User = Depends(auth_admin)):
    s = Service(**payload.model_dump())
    db.add(s)
    db.commit()
    db.refresh(s)
    logger.info("Service created: %s (%s)", s.id, s.name)
    return s


@router.patch("/{service_id}", response_model=ServiceOut)
def update_service(service_id: int, payload: ServiceUpdateIn, db: Session = Depends(get_db),
                   _: User = Depends(auth_admin)):
    s = _get_or_404(db, service_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(s, key, value)
    db.commit()
    db.refresh(s)
    logger.info("Service updated: %s", s.id)
    return s


@router.delete("/{service_id}")
def delete_service(service_id: int, db: Session = Depends(get_db), _: User = Depends(auth_admin)):
    s = _get_or_404(db, service_id)
    # bookings keep pointing at the service: hide it instead of deleting the row
    if db.query(Booking.id).filter(Booking.service_id == s.id).first():
        s.active = False
        db.commit()
        logger.info("Service %s has bookings, deactivated instead of deleted", s.id)
        return {"ok": True, "deactivated": True}
    db.delete(s)
    db.commit()
    logger.info("Service deleted: %s", service_id)
    return {"ok": True, "deactivated": False}
