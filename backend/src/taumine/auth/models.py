"""Authentication models for user accounts."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy import Boolean, Column, DateTime, Integer, String

from taumine.storage.models import Base


class UserAccount(Base):
    """Login identity for TAUMine.

    The pioneer profile shares its primary key with the account.
    """
    __tablename__ = "user_accounts"

    id = Column(Integer, primary_key=True)

    # Identity
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(50), nullable=True)  # Copied onto the profile at registration

    # Auth
    password_hash = Column(String(255), nullable=False)
    email_verified = Column(Boolean, default=False)

    # Status
    is_active = Column(Boolean, default=True)
    is_admin = Column(Boolean, default=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<UserAccount(id={self.id}, email={self.email})>"


# Pydantic models for API


class User(BaseModel):
    """Account data returned by the session and login endpoints."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    username: str | None
    email_verified: bool
    is_admin: bool
    created_at: datetime


class UserLogin(BaseModel):
    """User login request."""
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """JWT token response."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: User


class ResetPasswordRequest(BaseModel):
    """Password reset request."""
    email: EmailStr


class ResetPasswordConfirm(BaseModel):
    """Password reset confirmation."""
    token: str
    new_password: str = Field(..., min_length=6, max_length=100)
