from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, func
from ..database import Base


class PasswordResetToken(Base):
    """Single-use token mailed by /auth/forgot, consumed by /auth/reset."""
    __tablename__ = "password_reset_tokens"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(128), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
