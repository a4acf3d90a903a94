"""Request throttling for the TAUMine API."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from taumine.settings import settings

# Per-route limits
REGISTER_LIMIT = "5/minute"
LOGIN_LIMIT = "10/minute"
EMAIL_LIMIT = "3/minute"
TRACKING_LIMIT = "60/minute"

# Throttling only applies in production so tests and local runs are unrestricted
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["120/minute"],
    storage_uri="memory://",
    enabled=settings.env == "production",
)
