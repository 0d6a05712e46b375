import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import auth_admin, ensure_owner_or_admin, get_current_user
from ..models.booking import Booking
from ..models.receipt import Receipt
from ..models.user import User
from ..schemas.receipt import ReceiptIn, ReceiptOut
from ..services.receipts import ReceiptError, issue_receipt

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/receipts", tags=["receipts"])


@router.get("/booking/{booking_id}", response_model=ReceiptOut)
def receipt_for_booking(booking_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    b = db.get(Booking, booking_id)
    if not b:
        raise HTTPException(404, "Booking not found")
    ensure_owner_or_admin(me, b.user_id)
    if not b.receipt:
        raise HTTPException(404, "Receipt not found for this booking")
    return b.receipt


# -----------------------------------------------------------------------------
# ADMIN
# -----------------------------------------------------------------------------
@router.get("", response_model=List[ReceiptOut])
def list_receipts(db: Session = Depends(get_db), _: User = Depends(auth_admin)):
    return db.query(Receipt).order_by(Receipt.created_at.desc(), Receipt.id.desc()).all()


@router.post("", response_model=ReceiptOut, status_code=status.HTTP_201_CREATED)
def create_receipt(payload: ReceiptIn, db: Session = Depends(get_db), _: User = Depends(auth_admin)):
    b = db.get(Booking, payload.booking_id)
    if not b:
        raise HTTPException(404, "Booking not found")
    try:
        receipt = issue_receipt(db, b, payload.final_price, payload.service_personnel_name)
    except ReceiptError as e:
        raise HTTPException(400, str(e))
    db.commit()
    db.refresh(receipt)
    return receipt


@router.get("/{receipt_id}", response_model=ReceiptOut)
def get_receipt(receipt_id: int, db: Session = Depends(get_db), _: User = Depends(auth_admin)):
    r = db.get(Receipt, receipt_id)
    if not r:
        raise HTTPException(404, "Receipt not found")
    return r
