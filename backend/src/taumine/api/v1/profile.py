"""Profile API v1 endpoints."""

from fastapi import APIRouter, Depends

from taumine.api.deps import get_profile_service
from taumine.api.schemas import DataResponse, ProfileResponse, VerifyStepRequest
from taumine.auth.middleware import require_auth
from taumine.auth.models import UserAccount
from taumine.profiles.service import ProfileService
from taumine.rewards import VerificationStep

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=DataResponse[ProfileResponse])
async def get_profile(
    user: UserAccount = Depends(require_auth),
    service: ProfileService = Depends(get_profile_service),
):
    """Current user's pioneer profile."""
    return {"data": ProfileResponse.model_validate(service.get_profile(user.id))}


@router.post("/verify/{step}", response_model=DataResponse[ProfileResponse])
async def verify_step(
    step: VerificationStep,
    body: VerifyStepRequest,
    user: UserAccount = Depends(require_auth),
    service: ProfileService = Depends(get_profile_service),
):
    """Complete the Twitter follow or Telegram join step with a handle."""
    profile = service.verify_social_step(user.id, step, body.handle)
    return {"data": ProfileResponse.model_validate(profile)}


@router.post("/share", response_model=DataResponse[ProfileResponse])
async def share(
    user: UserAccount = Depends(require_auth),
    service: ProfileService = Depends(get_profile_service),
):
    """Record the Twitter share step."""
    return {"data": ProfileResponse.model_validate(service.record_share(user.id))}
