"""Database models for profiles, referrals and reward tracking."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Profile(Base):
    """Pioneer profile, one per user account."""

    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(Integer, ForeignKey("user_accounts.id"), primary_key=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    # Referral
    referral_code: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True, index=True)
    referred_by: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)  # Referrer's code
    referral_source: Mapped[str | None] = mapped_column(String(100), nullable=True)
    total_referrals: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Pioneer numbering
    pioneer_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_genesis_pioneer: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_pi_user: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Verification steps
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    twitter_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    twitter_handle: Mapped[str | None] = mapped_column(String(100), nullable=True)
    twitter_verified_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    telegram_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    telegram_handle: Mapped[str | None] = mapped_column(String(100), nullable=True)
    telegram_verified_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    twitter_shared: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_twitter_share: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    first_referral: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    stats: Mapped["ReferralStats | None"] = relationship(
        "ReferralStats", back_populates="profile", uselist=False
    )

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, username='{self.username}', code={self.referral_code})>"


class Referral(Base):
    """Individual referral event (referrer brought in referred)."""

    __tablename__ = "referrals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    referrer_id: Mapped[int] = mapped_column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    referred_id: Mapped[int] = mapped_column(Integer, ForeignKey("profiles.id"), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Referral(referrer={self.referrer_id}, referred={self.referred_id})>"


class ReferralStats(Base):
    """Derived referral statistics, recomputed by the referral sync."""

    __tablename__ = "referral_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("profiles.id"), unique=True, nullable=False)

    # Counts
    total_referrals: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    active_referrals: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    pending_referrals: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    verified_referrals: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Tier
    current_tier: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    next_tier: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    current_tier_name: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    next_tier_name: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    current_tier_progress: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    referrals_needed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    overall_completion_percentage: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    # Rewards (TAU)
    step_rewards: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    milestone_rewards: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_earnings: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    claimed_rewards: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    pending_rewards: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Leaderboard
    rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_users: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    profile: Mapped[Profile] = relationship("Profile", back_populates="stats")

    def __repr__(self) -> str:
        return f"<ReferralStats(user={self.user_id}, tier={self.current_tier}, rank={self.rank})>"


class PioneerStats(Base):
    """Singleton counter row (id=1) for registered pioneers."""

    __tablename__ = "pioneer_stats_table"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    total_pioneers: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    genesis_pioneers: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class Notification(Base):
    """In-app notification for a user."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class UserIP(Base):
    """IP addresses a user has been seen from."""

    __tablename__ = "user_ips"
    __table_args__ = (UniqueConstraint("user_id", "ip", name="uq_user_ips_user_ip"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_accounts.id"), nullable=False, index=True)
    ip: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    last_seen: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class PageView(Base):
    """Page view analytics."""

    __tablename__ = "page_views"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_accounts.id"), nullable=False, index=True)
    page: Mapped[str] = mapped_column(String(255), nullable=False)
    viewed_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
