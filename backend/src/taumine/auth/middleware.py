"""Authentication dependencies for FastAPI."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from taumine.auth.local import LocalAuthService
from taumine.auth.models import UserAccount
from taumine.logging_config import get_logger
from taumine.storage.db import get_session

logger = get_logger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    session: Session = Depends(get_session),
) -> UserAccount | None:
    """Get current authenticated user.

    Args:
        request: FastAPI request
        credentials: Bearer token
        session: Database session

    Returns:
        User account or None if not authenticated
    """
    if not credentials:
        return None

    user = LocalAuthService(session).get_user_from_token(credentials.credentials)

    if user:
        # Store user in request state for later use
        request.state.user = user

    return user


def require_auth(user: UserAccount | None = Depends(get_current_user)) -> UserAccount:
    """Require authentication - raises 401 if not authenticated."""
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(user: UserAccount = Depends(require_auth)) -> UserAccount:
    """Require admin privileges - raises 403 otherwise."""
    if not user.is_admin:
        logger.warning("admin_access_denied", user_id=user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
