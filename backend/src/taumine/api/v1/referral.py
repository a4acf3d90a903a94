"""Referral API v1 endpoints."""

from fastapi import APIRouter, Depends, Query

from taumine.api.deps import get_referral_service, get_settings
from taumine.api.schemas import (
    DashboardResponse,
    DataResponse,
    LeaderboardEntryResponse,
    ReferralStatsResponse,
    ReferredUserResponse,
    SyncForUserRequest,
    SyncForUserResponse,
    TierResponse,
)
from taumine.auth.middleware import require_auth
from taumine.auth.models import UserAccount
from taumine.errors import NotFoundError
from taumine.logging_config import get_logger
from taumine.referral.service import ReferralService
from taumine.rewards import STEP_FLAGS
from taumine.settings import Settings
from taumine.storage.models import Profile

logger = get_logger(__name__)

router = APIRouter(prefix="/referrals", tags=["referrals"])


def _referral_link(app_settings: Settings, code: str | None) -> str | None:
    if not code:
        return None
    base_url = app_settings.frontend_url or app_settings.allowed_origins.split(",")[0].strip()
    return f"{base_url}/register?ref={code}"


def _tiers(service: ReferralService) -> list[TierResponse]:
    return [
        TierResponse(tier=t.tier, required=t.required, reward=t.reward, name=t.name)
        for t in service.tiers
    ]


# ==================== ENDPOINTS ====================


@router.get("/dashboard", response_model=DataResponse[DashboardResponse])
async def get_dashboard(
    user: UserAccount = Depends(require_auth),
    service: ReferralService = Depends(get_referral_service),
    app_settings: Settings = Depends(get_settings),
):
    """Referral dashboard for the current user.

    Includes:
    - Tier, progress and earnings
    - Verification progress of every referred user
    - The tier table and the top referrers
    """
    profile = service.session.get(Profile, user.id)
    if not profile:
        raise NotFoundError("User profile not found")

    stats = service.get_stats(profile)
    snapshot = service.snapshot(profile)

    referrals = [
        ReferredUserResponse(
            id=referred.id,
            username=referred.username,
            joined_at=referred.created_at,
            steps={step.value: step in progress.steps for step in STEP_FLAGS},
            completed_steps=progress.completed,
            completion_percentage=progress.completion_percentage,
            unlocked_rewards=progress.unlocked,
            pending_rewards=progress.pending,
            is_verified=progress.is_verified,
        )
        for referred, progress in snapshot.referrals
    ]

    return {
        "data": DashboardResponse(
            referral_code=profile.referral_code,
            referral_link=_referral_link(app_settings, profile.referral_code),
            stats=ReferralStatsResponse.model_validate(stats),
            referrals=referrals,
            tiers=_tiers(service),
            top_referrers=[LeaderboardEntryResponse.model_validate(row) for row in service.get_leaderboard()],
        )
    }


@router.get("/leaderboard", response_model=DataResponse[list[LeaderboardEntryResponse]])
async def get_leaderboard(
    limit: int | None = Query(default=None, ge=1, le=100),
    service: ReferralService = Depends(get_referral_service),
):
    """Top referrers by rank."""
    return {"data": [LeaderboardEntryResponse.model_validate(row) for row in service.get_leaderboard(limit)]}


@router.get("/tiers", response_model=DataResponse[list[TierResponse]])
async def get_tiers(service: ReferralService = Depends(get_referral_service)):
    """Tier table, lowest first."""
    return {"data": _tiers(service)}


@router.post("/sync-for-user", response_model=DataResponse[SyncForUserResponse])
async def sync_for_user(
    body: SyncForUserRequest,
    user: UserAccount = Depends(require_auth),
    service: ReferralService = Depends(get_referral_service),
):
    """Recompute the stats of the user's referrer after a referral event."""
    stats = service.sync_referrer_of(body.user_id)
    if stats is None:
        return {"data": SyncForUserResponse(synced=False, message="User was not referred")}

    logger.info("referrer_synced_on_request", requested_by=user.id, user_id=body.user_id, referrer_id=stats.user_id)
    return {
        "data": SyncForUserResponse(
            synced=True,
            message="Referrer stats updated",
            referrer_id=stats.user_id,
            stats=ReferralStatsResponse.model_validate(stats),
        )
    }
