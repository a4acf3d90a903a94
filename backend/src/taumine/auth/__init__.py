"""Authentication for TAUMine (local email/password with JWT sessions)."""

from taumine.auth.local import LocalAuthService
from taumine.auth.middleware import get_current_user, require_admin, require_auth
from taumine.auth.models import User, UserAccount
from taumine.auth.retry import auth_retrying, call_with_retry

__all__ = [
    "User",
    "UserAccount",
    "LocalAuthService",
    "auth_retrying",
    "call_with_retry",
    "get_current_user",
    "require_admin",
    "require_auth",
]
