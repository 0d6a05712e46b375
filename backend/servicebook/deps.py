from datetime import datetime
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from .database import get_db
from .core.security import decode_token
from .models.user import User, Role

oauth2 = OAuth2PasswordBearer(tokenUrl="/auth/login")


def user_from_token(token: str, db: Session) -> User | None:
    data = decode_token(token)
    if not data or "sub" not in data:
        return None
    try:
        user_id = int(data["sub"])
    except (TypeError, ValueError):
        return None
    user = db.get(User, user_id)
    if not user or not user.is_active:
        return None
    return user


def get_current_user(token: str = Depends(oauth2), db: Session = Depends(get_db)) -> User:
    user = user_from_token(token, db)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return user


def auth_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != Role.ADMIN:
        raise HTTPException(status_code=403, detail="Admin only")
    return user


def ensure_owner_or_admin(me: User, owner_id: int, detail: str = "Not authorized") -> None:
    if me.role != Role.ADMIN and owner_id != me.id:
        raise HTTPException(status_code=403, detail=detail)


def clock() -> datetime:
    """Current local wall-clock time; overridden in tests."""
    return datetime.now()
