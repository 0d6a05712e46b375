import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..config import settings
from ..core.security import create_access_token, hash_password, new_reset_token, verify_password
from ..database import get_db
from ..deps import get_current_user
from ..models.password_reset import PasswordResetToken
from ..models.user import Role, User
from ..schemas.auth import ForgotIn, LoginIn, RegisterIn, ResetIn, TokenOut, UserOut
from ..services import booking_emails

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

RESET_TOKEN_TTL = timedelta(hours=2)


def _token_for(user: User) -> TokenOut:
    return TokenOut(
        access_token=create_access_token(user.id, user.role.value),
        user=UserOut.model_validate(user),
    )


def _as_aware(dt: datetime) -> datetime:
    # SQLite drops tzinfo on read
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


@router.post("/register", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    email = payload.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="User already exists, please login instead")

    # self-registration is always a customer; admins are created by admins
    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        name=payload.name.strip(),
        phone=payload.phone,
        role=Role.CUSTOMER,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User registered: %s", user.id)
    return _token_for(user)


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if not user or not user.is_active or not verify_password(payload.password, user.password_hash):
        logger.warning("Login failed for %s", payload.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    logger.info("User logged in: %s", user.id)
    return _token_for(user)


@router.post("/admin/login", response_model=TokenOut)
def admin_login(payload: LoginIn, db: Session = Depends(get_db)):
    user = (
        db.query(User)
        .filter(User.email == payload.email.lower(), User.role == Role.ADMIN)
        .first()
    )
    if not user or not user.is_active:
        logger.warning("Admin login failed, not an admin: %s", payload.email)
        raise HTTPException(status_code=401, detail="Invalid credentials or not an admin")
    if not verify_password(payload.password, user.password_hash):
        logger.warning("Admin login failed, bad password: %s", user.id)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    logger.info("Admin logged in: %s", user.id)
    return _token_for(user)


@router.get("/me", response_model=UserOut)
def me(current: User = Depends(get_current_user)):
    return current


@router.post("/forgot")
def forgot(payload: ForgotIn, background: BackgroundTasks, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    # same answer whether or not the email exists
    if not user:
        return {"ok": True}

    token = new_reset_token()
    db.add(
        PasswordResetToken(
            user_id=user.id,
            token=token,
            expires_at=datetime.now(timezone.utc) + RESET_TOKEN_TTL,
            used=False,
        )
    )
    db.commit()

    reset_link = f"{settings.PUBLIC_BASE_URL}/reset-password?token={token}"
    background.add_task(booking_emails.password_reset, user.email, reset_link)

    resp = {"ok": True}
    if settings.APP_ENV == "dev":
        resp["dev_reset_link"] = reset_link
    return resp


@router.post("/reset")
def reset_password(payload: ResetIn, db: Session = Depends(get_db)):
    now = datetime.now(timezone.utc)
    rec = db.query(PasswordResetToken).filter(PasswordResetToken.token == payload.token).first()
    if not rec or rec.used or _as_aware(rec.expires_at) < now:
        raise HTTPException(status_code=400, detail="Invalid or expired token")

    user = db.get(User, rec.user_id)
    if not user:
        raise HTTPException(status_code=400, detail="User not found")

    user.password_hash = hash_password(payload.new_password)
    rec.used = True
    db.commit()
    logger.info("Password reset for user %s", user.id)
    return {"ok": True}
