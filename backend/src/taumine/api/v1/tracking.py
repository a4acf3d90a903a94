"""Analytics API v1 endpoints."""

from fastapi import APIRouter, Depends, Request, status

from taumine.api.deps import get_tracking_service
from taumine.api.rate_limit import TRACKING_LIMIT, limiter
from taumine.api.schemas import DataResponse, MessageResponse, PageViewRequest
from taumine.auth.middleware import require_auth
from taumine.auth.models import UserAccount
from taumine.tracking.service import TrackingService

router = APIRouter(prefix="/tracking", tags=["tracking"])


@router.post(
    "/page-view",
    response_model=DataResponse[MessageResponse],
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(TRACKING_LIMIT)
async def track_page_view(
    request: Request,
    body: PageViewRequest,
    user: UserAccount = Depends(require_auth),
    service: TrackingService = Depends(get_tracking_service),
):
    service.record_page_view(user.id, body.page)
    return {"data": MessageResponse(message="Page view recorded")}
