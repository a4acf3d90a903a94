"""Authentication API v1 endpoints."""

from fastapi import APIRouter, Depends, Request, status

from taumine.api.deps import client_ip, get_email_service, get_profile_service, get_tracking_service
from taumine.api.rate_limit import EMAIL_LIMIT, LOGIN_LIMIT, REGISTER_LIMIT, limiter
from taumine.api.schemas import (
    DataResponse,
    MessageResponse,
    ProfileResponse,
    RegisterRequest,
    RegisterResponse,
    SessionResponse,
    TokenRequest,
)
from taumine.auth.local import JWT_EXPIRE_HOURS
from taumine.auth.middleware import require_auth
from taumine.auth.models import (
    ResetPasswordConfirm,
    ResetPasswordRequest,
    TokenResponse,
    User,
    UserAccount,
    UserLogin,
)
from taumine.email.service import EmailService
from taumine.errors import InvalidRequestError, NotAuthenticatedError
from taumine.logging_config import get_logger
from taumine.profiles.service import ProfileService
from taumine.storage.models import Profile
from taumine.tracking.service import TrackingService

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _track_login(tracking: TrackingService, user_id: int, ip: str | None) -> None:
    """Record the client IP and run the fraud heuristics; never fails the request."""
    try:
        tracking.track_ip(user_id, ip)
        tracking.check_for_fraud(user_id, ip)
    except Exception as e:
        tracking.session.rollback()
        logger.error("ip_tracking_failed", user_id=user_id, error=str(e))


async def _send_verification(email_service: EmailService, email: str, username: str | None, token: str) -> None:
    try:
        await email_service.send_verification_email(email, username, token)
    except Exception as e:
        logger.error("verification_email_failed", to=email, error=str(e))


# ==================== ENDPOINTS ====================


@router.post(
    "/register",
    response_model=DataResponse[RegisterResponse],
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(REGISTER_LIMIT)
async def register(
    request: Request,
    body: RegisterRequest,
    service: ProfileService = Depends(get_profile_service),
    email_service: EmailService = Depends(get_email_service),
    tracking: TrackingService = Depends(get_tracking_service),
):
    """Register a new pioneer.

    Assigns a pioneer number, attributes the referral code if one is given
    and sends the verification email.
    """
    result = service.register(
        email=body.email,
        password=body.password,
        username=body.username,
        referral_code=body.referral_code,
        is_pi_user=body.is_pi_user,
        country=body.country,
        referral_source=body.referral_source,
    )

    _track_login(tracking, result.user_id, client_ip(request))

    if result.verification_token:
        await _send_verification(email_service, result.email, result.username, result.verification_token)

    return {
        "data": RegisterResponse(
            message=result.message,
            user_id=result.user_id,
            username=result.username,
            referral_code=result.referral_code,
            pioneer_number=result.pioneer_number,
            is_genesis_pioneer=result.is_genesis_pioneer,
        )
    }


@router.post("/login", response_model=DataResponse[TokenResponse])
@limiter.limit(LOGIN_LIMIT)
async def login(
    request: Request,
    body: UserLogin,
    service: ProfileService = Depends(get_profile_service),
    tracking: TrackingService = Depends(get_tracking_service),
):
    """Sign in with email and password."""
    user = service.auth.sign_in(body.email, body.password)
    if not user:
        logger.warning("login_failed", email=body.email)
        raise NotAuthenticatedError("Invalid email or password")

    _track_login(tracking, user.id, client_ip(request))

    return {
        "data": TokenResponse(
            access_token=service.auth.create_access_token(user),
            expires_in=JWT_EXPIRE_HOURS * 3600,
            user=User.model_validate(user),
        )
    }


@router.get("/session", response_model=DataResponse[SessionResponse])
async def get_session_info(
    user: UserAccount = Depends(require_auth),
    service: ProfileService = Depends(get_profile_service),
):
    """Current account and its pioneer profile."""
    profile = service.session.get(Profile, user.id)
    return {
        "data": SessionResponse(
            user=User.model_validate(user),
            profile=ProfileResponse.model_validate(profile) if profile else None,
        )
    }


@router.post("/reset-password", response_model=DataResponse[MessageResponse])
@limiter.limit(EMAIL_LIMIT)
async def request_password_reset(
    request: Request,
    body: ResetPasswordRequest,
    service: ProfileService = Depends(get_profile_service),
    email_service: EmailService = Depends(get_email_service),
):
    """Request a password reset email.

    Always succeeds so the response does not reveal which emails exist.
    """
    token = service.auth.generate_reset_token(body.email)
    if token:
        account = service.auth.get_user_by_email(body.email)
        try:
            await email_service.send_password_reset_email(body.email, account.username, token)
        except Exception as e:
            logger.error("reset_email_failed", to=body.email, error=str(e))

    return {"data": MessageResponse(message="If an account exists for this email, a reset link has been sent.")}


@router.post("/complete-reset-password", response_model=DataResponse[MessageResponse])
async def complete_password_reset(
    body: ResetPasswordConfirm,
    service: ProfileService = Depends(get_profile_service),
):
    """Set a new password using a reset token."""
    if not service.auth.reset_password(body.token, body.new_password):
        raise InvalidRequestError("Invalid or expired reset token")
    return {"data": MessageResponse(message="Password has been reset successfully.")}


@router.post("/verify-email", response_model=DataResponse[ProfileResponse])
async def verify_email(
    body: TokenRequest,
    service: ProfileService = Depends(get_profile_service),
):
    """Confirm an email verification token."""
    profile = service.confirm_email(body.token)
    return {"data": ProfileResponse.model_validate(profile)}


@router.post("/resend-verification", response_model=DataResponse[MessageResponse])
@limiter.limit(EMAIL_LIMIT)
async def resend_verification(
    request: Request,
    user: UserAccount = Depends(require_auth),
    service: ProfileService = Depends(get_profile_service),
    email_service: EmailService = Depends(get_email_service),
):
    """Send a fresh verification email to the current user."""
    if user.email_verified:
        return {"data": MessageResponse(message="Email is already verified.")}

    token = service.auth.generate_verification_token(user)
    sent = await email_service.send_verification_email(user.email, user.username, token)
    if not sent:
        logger.warning("verification_email_not_sent", user_id=user.id)

    return {"data": MessageResponse(message="Verification email sent.")}
