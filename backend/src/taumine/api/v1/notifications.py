"""Notification API v1 endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from taumine.api.schemas import DataResponse, NotificationResponse
from taumine.auth.middleware import require_auth
from taumine.auth.models import UserAccount
from taumine.notifications.service import NotificationService
from taumine.storage.db import get_session

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=DataResponse[list[NotificationResponse]])
async def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    user: UserAccount = Depends(require_auth),
    session: Session = Depends(get_session),
):
    """Current user's notifications, newest first."""
    notifications = NotificationService(session).list_for_user(user.id, unread_only=unread_only, limit=limit)
    return {"data": [NotificationResponse.model_validate(n) for n in notifications]}


@router.post("/{notification_id}/read", response_model=DataResponse[NotificationResponse])
async def mark_notification_read(
    notification_id: int,
    user: UserAccount = Depends(require_auth),
    session: Session = Depends(get_session),
):
    notification = NotificationService(session).mark_read(notification_id, user.id)
    return {"data": NotificationResponse.model_validate(notification)}
