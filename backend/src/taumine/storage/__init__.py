"""Persistence layer."""

from taumine.storage.db import Database, get_db, get_session
from taumine.storage.models import (
    Base,
    Notification,
    PageView,
    PioneerStats,
    Profile,
    Referral,
    ReferralStats,
    UserIP,
)

__all__ = [
    "Base",
    "Database",
    "Notification",
    "PageView",
    "PioneerStats",
    "Profile",
    "Referral",
    "ReferralStats",
    "UserIP",
    "get_db",
    "get_session",
]
