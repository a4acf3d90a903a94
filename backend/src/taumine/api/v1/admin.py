"""Admin API v1 endpoints."""

from fastapi import APIRouter, Depends, Query

from taumine.api.deps import get_profile_service, get_referral_service
from taumine.api.schemas import (
    DataResponse,
    MessageResponse,
    ProfileSyncResponse,
    ReferralSyncResponse,
    SyncErrorResponse,
)
from taumine.auth.middleware import require_admin
from taumine.auth.models import User, UserAccount
from taumine.logging_config import get_logger
from taumine.profiles.service import ProfileService
from taumine.referral.service import ReferralService

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/sync-referrals", response_model=DataResponse[ReferralSyncResponse])
async def sync_referrals(
    admin: UserAccount = Depends(require_admin),
    service: ReferralService = Depends(get_referral_service),
):
    """Recompute every user's referral stats and the leaderboard."""
    logger.info("admin_sync_referrals", admin_id=admin.id)
    result = service.sync_all()
    return {
        "data": ReferralSyncResponse(
            updated=result.updated,
            errors=[SyncErrorResponse.model_validate(e) for e in result.errors],
            message=result.message,
        )
    }


@router.post("/sync-profiles", response_model=DataResponse[ProfileSyncResponse])
async def sync_profiles(
    admin: UserAccount = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
):
    """Create profiles for accounts without one and fix the pioneer counter."""
    logger.info("admin_sync_profiles", admin_id=admin.id)
    result = service.sync_profiles()
    service.pioneers.refresh_pioneer_stats()
    return {
        "data": ProfileSyncResponse(
            created=result.created,
            errors=[SyncErrorResponse.model_validate(e) for e in result.errors],
            message=result.message,
        )
    }


@router.get("/users", response_model=DataResponse[list[User]])
async def list_users(
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    admin: UserAccount = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
):
    users = service.auth.list_users(limit=limit, offset=offset)
    return {"data": [User.model_validate(u) for u in users]}


@router.delete("/users/{user_id}", response_model=DataResponse[MessageResponse])
async def delete_user(
    user_id: int,
    admin: UserAccount = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
):
    """Delete an account and its pioneer data."""
    service.delete_pioneer(user_id)
    logger.warning("admin_deleted_user", admin_id=admin.id, user_id=user_id)
    return {"data": MessageResponse(message="User deleted")}
