"""Request and response models for the v1 API.

Every successful response is wrapped as ``{"data": ...}``.
"""

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from taumine.auth.models import User

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    """Success envelope."""
    data: T


class MessageResponse(BaseModel):
    message: str


# ==================== AUTH ====================


class RegisterRequest(BaseModel):
    """Pioneer registration request."""
    email: str
    password: str
    username: str | None = Field(default=None, max_length=50)
    referral_code: str | None = Field(default=None, max_length=20)
    is_pi_user: bool = False
    country: str | None = Field(default=None, max_length=100)
    referral_source: str | None = Field(default=None, max_length=100)


class RegisterResponse(BaseModel):
    message: str
    user_id: int
    username: str
    referral_code: str
    pioneer_number: int
    is_genesis_pioneer: bool


class TokenRequest(BaseModel):
    token: str


# ==================== PROFILE ====================


class ProfileResponse(BaseModel):
    """Pioneer profile."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    referral_code: str | None
    referred_by: str | None
    pioneer_number: int | None
    is_genesis_pioneer: bool
    is_pi_user: bool
    country: str | None
    total_referrals: int
    email_verified: bool
    twitter_verified: bool
    twitter_handle: str | None
    telegram_verified: bool
    telegram_handle: str | None
    twitter_shared: bool
    first_referral: bool
    created_at: datetime


class SessionResponse(BaseModel):
    user: User
    profile: ProfileResponse | None


class VerifyStepRequest(BaseModel):
    handle: str = Field(..., min_length=1, max_length=100)


# ==================== REFERRALS ====================


class TierResponse(BaseModel):
    tier: int
    required: int
    reward: int
    name: str


class ReferralStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_referrals: int
    active_referrals: int
    pending_referrals: int
    verified_referrals: int
    current_tier: int
    next_tier: int
    current_tier_name: str
    next_tier_name: str
    current_tier_progress: float
    referrals_needed: int
    overall_completion_percentage: float
    step_rewards: int
    milestone_rewards: int
    total_earnings: int
    claimed_rewards: int
    pending_rewards: int
    rank: int | None
    total_users: int


class ReferredUserResponse(BaseModel):
    id: int
    username: str
    joined_at: datetime
    steps: dict[str, bool]
    completed_steps: int
    completion_percentage: float
    unlocked_rewards: int
    pending_rewards: int
    is_verified: bool


class LeaderboardEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rank: int
    user_id: int
    username: str
    total_referrals: int
    verified_referrals: int
    earnings: int


class DashboardResponse(BaseModel):
    referral_code: str | None
    referral_link: str | None
    stats: ReferralStatsResponse
    referrals: list[ReferredUserResponse]
    tiers: list[TierResponse]
    top_referrers: list[LeaderboardEntryResponse]


class SyncForUserRequest(BaseModel):
    user_id: int


class SyncForUserResponse(BaseModel):
    synced: bool
    message: str
    referrer_id: int | None = None
    stats: ReferralStatsResponse | None = None


# ==================== PIONEERS ====================


class PioneerStatsResponse(BaseModel):
    total_pioneers: int
    genesis_pioneers: int
    genesis_limit: int
    genesis_remaining: int
    genesis_percentage: float
    updated_at: datetime | None = None


class PioneerStatusResponse(BaseModel):
    pioneer_number: int | None
    is_genesis_pioneer: bool
    message: str


# ==================== NOTIFICATIONS / TRACKING ====================


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    message: str
    read: bool
    created_at: datetime


class PageViewRequest(BaseModel):
    page: str = Field(..., min_length=1, max_length=255)


# ==================== ADMIN ====================


class SyncErrorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    error: str


class ReferralSyncResponse(BaseModel):
    updated: list[int]
    errors: list[SyncErrorResponse]
    message: str


class ProfileSyncResponse(BaseModel):
    created: list[int]
    errors: list[SyncErrorResponse]
    message: str
