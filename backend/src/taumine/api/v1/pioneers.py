"""Pioneer counter API v1 endpoints."""

from fastapi import APIRouter, Depends

from taumine.api.deps import get_pioneer_service
from taumine.api.schemas import DataResponse, PioneerStatsResponse, PioneerStatusResponse
from taumine.auth.middleware import require_auth
from taumine.auth.models import UserAccount
from taumine.errors import NotFoundError
from taumine.pioneers.service import PioneerStatsService
from taumine.storage.models import Profile

router = APIRouter(prefix="/pioneer-stats", tags=["pioneers"])


@router.get("", response_model=DataResponse[PioneerStatsResponse])
async def get_pioneer_stats(service: PioneerStatsService = Depends(get_pioneer_service)):
    """Total and Genesis Pioneer counts."""
    stats = service.get_extended_pioneer_stats()
    return {"data": PioneerStatsResponse(**stats.to_dict())}


@router.get("/status", response_model=DataResponse[PioneerStatusResponse])
async def get_pioneer_status(
    user: UserAccount = Depends(require_auth),
    service: PioneerStatsService = Depends(get_pioneer_service),
):
    """Pioneer number and status message for the current user."""
    profile = service.session.get(Profile, user.id)
    if not profile:
        raise NotFoundError("User profile not found")

    return {
        "data": PioneerStatusResponse(
            pioneer_number=profile.pioneer_number,
            is_genesis_pioneer=profile.is_genesis_pioneer,
            message=service.get_pioneer_status_message(profile),
        )
    }
