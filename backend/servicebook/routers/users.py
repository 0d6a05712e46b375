import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.security import hash_password
from ..database import get_db
from ..deps import auth_admin, get_current_user
from ..models.booking import Booking
from ..models.user import Role, User
from ..schemas.auth import AdminUserIn, CustomerOut, ProfileUpdateIn, UserOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _apply_profile(db: Session, user: User, payload: ProfileUpdateIn) -> User:
    if payload.email and payload.email.lower() != user.email:
        taken = db.query(User).filter(User.email == payload.email.lower(), User.id != user.id).first()
        if taken:
            raise HTTPException(400, "Email already in use")
        user.email = payload.email.lower()
    if payload.name:
        user.name = payload.name.strip()
    if payload.phone is not None:
        user.phone = payload.phone or None
    db.commit()
    db.refresh(user)
    return user


@router.get("/profile", response_model=UserOut)
def get_profile(me: User = Depends(get_current_user)):
    return me


@router.patch("/profile", response_model=UserOut)
def update_profile(payload: ProfileUpdateIn, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    return _apply_profile(db, me, payload)


# -----------------------------------------------------------------------------
# ADMIN
# -----------------------------------------------------------------------------
@router.get("", response_model=list[UserOut])
def list_users(role: Role | None = None, db: Session = Depends(get_db), _: User = Depends(auth_admin)):
    q = db.query(User)
    if role:
        q = q.filter(User.role == role)
    return q.order_by(User.name, User.email).all()


@router.get("/customers", response_model=list[CustomerOut])
def list_customers(db: Session = Depends(get_db), _: User = Depends(auth_admin)):
    rows = (
        db.query(User, func.count(Booking.id))
        .outerjoin(Booking, Booking.user_id == User.id)
        .filter(User.role == Role.CUSTOMER)
        .group_by(User.id)
        .order_by(User.name, User.email)
        .all()
    )
    out = []
    for user, count in rows:
        item = CustomerOut.model_validate(user)
        item.booking_count = count
        out.append(item)
    return out


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: AdminUserIn, db: Session = Depends(get_db), admin: User = Depends(auth_admin)):
    email = payload.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(400, "User with this email already exists")
    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        name=payload.name.strip(),
        phone=payload.phone,
        role=payload.role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User %s created by admin %s", user.id, admin.id)
    return user


@router.patch("/{user_id}", response_model=UserOut)
def update_user(user_id: int, payload: ProfileUpdateIn, db: Session = Depends(get_db), _: User = Depends(auth_admin)):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(404, "User not found")
    return _apply_profile(db, user, payload)


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), admin: User = Depends(auth_admin)):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(404, "User not found")
    if user.id == admin.id:
        raise HTTPException(400, "You cannot delete your own account")
    db.delete(user)
    db.commit()
    logger.info("User %s deleted by admin %s", user_id, admin.id)
    return {"ok": True, "message": "User deleted successfully"}
