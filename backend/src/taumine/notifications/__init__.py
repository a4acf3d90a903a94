"""User notifications."""

from taumine.notifications.service import NotificationService

__all__ = ["NotificationService"]
