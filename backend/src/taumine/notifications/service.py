"""In-app notifications."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from taumine.errors import NotFoundError
from taumine.logging_config import get_logger
from taumine.storage.models import Notification

logger = get_logger(__name__)


class NotificationService:
    """Create, list and acknowledge user notifications."""

    def __init__(self, session: Session):
        self.session = session

    def notify(self, user_id: int, message: str) -> Notification:
        """Queue a notification; the caller commits."""
        notification = Notification(user_id=user_id, message=message)
        self.session.add(notification)
        logger.info("notification_created", user_id=user_id)
        return notification

    def list_for_user(self, user_id: int, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.read == False)  # noqa: E712
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        return list(self.session.scalars(query))

    def mark_read(self, notification_id: int, user_id: int) -> Notification:
        """Mark one of the user's notifications as read.

        Raises:
            NotFoundError: If the notification does not belong to the user
        """
        notification = self.session.get(Notification, notification_id)
        if not notification or notification.user_id != user_id:
            raise NotFoundError("Notification not found")

        notification.read = True
        self.session.commit()
        return notification
