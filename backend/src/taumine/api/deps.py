"""Request-scoped dependencies shared by the v1 routers.

Services are configured from the settings the application was created with,
not the module-level defaults.
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from taumine.email.service import EmailService
from taumine.pioneers.service import PioneerStatsService
from taumine.profiles.service import ProfileService
from taumine.referral.service import ReferralService
from taumine.settings import Settings
from taumine.storage.db import get_session
from taumine.tracking.service import TrackingService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


def get_profile_service(
    request: Request,
    session: Session = Depends(get_session),
    app_settings: Settings = Depends(get_settings),
) -> ProfileService:
    return ProfileService(
        session,
        retrying=request.app.state.auth_retrying,
        genesis_limit=app_settings.genesis_pioneer_limit,
        reward_per_step=app_settings.reward_per_step,
        ranking_metric=app_settings.leaderboard_metric,
    )


def get_referral_service(
    session: Session = Depends(get_session),
    app_settings: Settings = Depends(get_settings),
) -> ReferralService:
    return ReferralService(
        session,
        reward_per_step=app_settings.reward_per_step,
        ranking_metric=app_settings.leaderboard_metric,
        leaderboard_size=app_settings.leaderboard_size,
    )


def get_pioneer_service(
    session: Session = Depends(get_session),
    app_settings: Settings = Depends(get_settings),
) -> PioneerStatsService:
    return PioneerStatsService(session, genesis_limit=app_settings.genesis_pioneer_limit)


def get_tracking_service(
    session: Session = Depends(get_session),
    app_settings: Settings = Depends(get_settings),
) -> TrackingService:
    return TrackingService(
        session,
        max_accounts_per_ip=app_settings.fraud_max_accounts_per_ip,
        min_account_age_seconds=app_settings.fraud_min_account_age_seconds,
    )


def client_ip(request: Request) -> str | None:
    """Client IP, honouring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
