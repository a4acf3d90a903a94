"""Pioneer registration and profile verification steps."""

import random
import re
from dataclasses import dataclass, field

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from tenacity import Retrying

from taumine.auth.local import LocalAuthService
from taumine.auth.models import UserAccount
from taumine.errors import ConflictError, InvalidRequestError, NotFoundError, UpstreamError
from taumine.logging_config import get_logger
from taumine.pioneers.service import PioneerStatsService
from taumine.referral.service import ReferralService, SyncError
from taumine.rewards import VerificationStep, mark_step
from taumine.storage.models import (
    Notification,
    PageView,
    Profile,
    Referral,
    ReferralStats,
    UserIP,
)

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6
USERNAME_ATTEMPTS = 5

REGISTRATION_MESSAGE = "Registration successful! Please check your email to verify your account."


@dataclass(frozen=True)
class RegistrationResult:
    user_id: int
    username: str
    email: str
    referral_code: str
    pioneer_number: int
    is_genesis_pioneer: bool
    referred_by: str | None = None
    verification_token: str | None = None
    message: str = REGISTRATION_MESSAGE


@dataclass
class ProfileSyncResult:
    """Outcome of creating missing profiles."""

    created: list[int] = field(default_factory=list)
    errors: list[SyncError] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Created {len(self.created)} profiles, encountered {len(self.errors)} errors"


class ProfileService:
    """Service for pioneer registration and verification steps."""

    def __init__(
        self,
        session: Session,
        retrying: Retrying | None = None,
        genesis_limit: int | None = None,
        reward_per_step: int | None = None,
        ranking_metric: str | None = None,
    ):
        """Initialize profile service.

        Args:
            session: Database session
            retrying: Retry controller for auth calls
            genesis_limit: Number of Genesis Pioneer spots
            reward_per_step: TAU per completed verification step
            ranking_metric: Stats column the leaderboard ranks by
        """
        self.session = session
        self.auth = LocalAuthService(session, retrying=retrying)
        self.referrals = ReferralService(session, reward_per_step=reward_per_step, ranking_metric=ranking_metric)
        self.pioneers = PioneerStatsService(session, genesis_limit=genesis_limit)

    # ==================== LOOKUPS ====================

    def get_profile(self, user_id: int) -> Profile:
        profile = self.session.get(Profile, user_id)
        if not profile:
            raise NotFoundError("User profile not found")
        return profile

    def email_taken(self, email: str) -> bool:
        email = email.lower().strip()
        in_profiles = self.session.scalar(select(Profile.id).where(func.lower(Profile.email) == email))
        return bool(in_profiles) or self.auth.get_user_by_email(email) is not None

    def username_taken(self, username: str) -> bool:
        return self.session.scalar(select(Profile.id).where(Profile.username == username)) is not None

    def generate_username(self, email: str) -> str:
        """Email local part plus a random number below 1000."""
        local_part = email.split("@")[0]
        for _ in range(USERNAME_ATTEMPTS):
            candidate = f"{local_part}{random.randint(0, 999)}"
            if not self.username_taken(candidate):
                return candidate
        raise ConflictError(
            "This username is already taken. Please choose a different username.",
            code="username_already_exists",
        )

    # ==================== REGISTRATION ====================

    @staticmethod
    def validate_credentials(email: str | None, password: str | None) -> None:
        if not email or not password:
            raise InvalidRequestError("Email and password are required")
        if not EMAIL_PATTERN.match(email):
            raise InvalidRequestError("Invalid email format")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidRequestError("Password must be at least 6 characters long")

    def register(
        self,
        email: str,
        password: str,
        username: str | None = None,
        referral_code: str | None = None,
        is_pi_user: bool = False,
        country: str | None = None,
        referral_source: str | None = None,
    ) -> RegistrationResult:
        """Register a new pioneer.

        Creates the account and profile, then attributes the referral,
        bumps the pioneer counter and issues an email verification token.
        Failures after the profile exists are logged and do not fail the
        registration.

        Raises:
            InvalidRequestError: Missing or malformed credentials
            ConflictError: Email or username already in use
            UpstreamError: Account or profile could not be saved
        """
        self.validate_credentials(email, password)
        email = email.lower().strip()

        if self.email_taken(email):
            raise ConflictError(
                "This email address is already registered. Please use a different email or try logging in.",
                code="email_already_registered",
            )

        if username:
            username = username.strip()
            if self.username_taken(username):
                raise ConflictError(
                    "This username is already taken. Please choose a different username.",
                    code="username_already_exists",
                )
        else:
            username = self.generate_username(email)

        referrer = self.referrals.find_referrer(referral_code)
        if referral_code and not referrer:
            logger.warning("registration_unknown_referral_code", code=referral_code)

        pioneer_number = self.pioneers.next_pioneer_number()
        is_genesis = self.pioneers.is_genesis(pioneer_number)

        try:
            account = self.auth.sign_up(email, password, username)
        except SQLAlchemyError as e:
            logger.error("account_creation_failed", email=email, error=str(e))
            raise UpstreamError("Error creating user") from e

        profile = self.create_user_profile_safe(
            account,
            username=username,
            referral_code=self.referrals.generate_unique_code(),
            referred_by=referrer.referral_code if referrer else None,
            pioneer_number=pioneer_number,
            is_genesis_pioneer=is_genesis,
            is_pi_user=is_pi_user,
            country=country,
            referral_source=referral_source,
        )

        if referrer:
            try:
                self.referrals.record_signup(referrer, profile)
            except Exception as e:
                self.session.rollback()
                logger.error("referral_recording_failed", referrer_id=referrer.id, user_id=profile.id, error=str(e))

        try:
            self.pioneers.increment_pioneer_stats(is_genesis)
        except Exception as e:
            self.session.rollback()
            logger.error("pioneer_stats_increment_failed", user_id=profile.id, error=str(e))

        verification_token = None
        try:
            verification_token = self.auth.generate_verification_token(account)
        except Exception as e:
            logger.error("verification_token_failed", user_id=profile.id, error=str(e))

        logger.info(
            "pioneer_registered",
            user_id=profile.id,
            pioneer_number=pioneer_number,
            genesis=is_genesis,
            referred_by=profile.referred_by,
        )

        return RegistrationResult(
            user_id=profile.id,
            username=profile.username,
            email=profile.email,
            referral_code=profile.referral_code,
            pioneer_number=pioneer_number,
            is_genesis_pioneer=is_genesis,
            referred_by=profile.referred_by,
            verification_token=verification_token,
        )

    def _insert_profile(self, account: UserAccount, **fields) -> Profile:
        profile = Profile(
            id=account.id,
            email=account.email,
            email_verified=bool(account.email_verified),
            total_referrals=0,
            **fields,
        )
        self.session.add(profile)
        self.session.commit()
        return profile

    def create_user_profile_safe(self, account: UserAccount, **fields) -> Profile:
        """Insert the profile for a freshly created account.

        If the insert fails the account is deleted so no account is left
        without a profile.

        Raises:
            UpstreamError: If the profile could not be saved
        """
        try:
            return self._insert_profile(account, **fields)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("profile_creation_failed", user_id=account.id, error=str(e))
            try:
                self.auth.delete_user(account.id)
                logger.info("orphan_account_removed", user_id=account.id)
            except Exception as cleanup_error:
                logger.error("orphan_account_cleanup_failed", user_id=account.id, error=str(cleanup_error))
            raise UpstreamError("Database error saving new user") from e

    def sync_profiles(self) -> ProfileSyncResult:
        """Create profiles for accounts that have none.

        New profiles are numbered after the current highest pioneer number.
        """
        result = ProfileSyncResult()
        accounts = list(
            self.session.scalars(
                select(UserAccount)
                .outerjoin(Profile, Profile.id == UserAccount.id)
                .where(Profile.id.is_(None))
                .order_by(UserAccount.id)
            )
        )

        for account in accounts:
            try:
                highest = self.session.scalar(select(func.max(Profile.pioneer_number))) or 0
                pioneer_number = highest + 1
                is_genesis = self.pioneers.is_genesis(pioneer_number)

                username = account.username
                if not username or self.username_taken(username):
                    username = self.generate_username(account.email)

                self._insert_profile(
                    account,
                    username=username,
                    referral_code=self.referrals.generate_unique_code(),
                    pioneer_number=pioneer_number,
                    is_genesis_pioneer=is_genesis,
                )
                self.pioneers.increment_pioneer_stats(is_genesis)
                result.created.append(account.id)
            except Exception as e:
                self.session.rollback()
                logger.error("profile_sync_failed", user_id=account.id, error=str(e))
                result.errors.append(SyncError(user_id=account.id, error=str(e)))

        logger.info("profile_sync_completed", created=len(result.created), errors=len(result.errors))
        return result

    def delete_pioneer(self, user_id: int) -> None:
        """Delete an account with its profile and everything hanging off it.

        The referrer's stats and the leaderboard are recomputed afterwards so
        the deleted pioneer no longer counts.

        Raises:
            NotFoundError: If the account does not exist
        """
        if not self.session.get(UserAccount, user_id):
            raise NotFoundError("User not found")

        profile = self.session.get(Profile, user_id)
        referrer = self.referrals.find_referrer(profile.referred_by) if profile else None

        for model, condition in (
            (ReferralStats, ReferralStats.user_id == user_id),
            (Notification, Notification.user_id == user_id),
            (Referral, (Referral.referrer_id == user_id) | (Referral.referred_id == user_id)),
            (UserIP, UserIP.user_id == user_id),
            (PageView, PageView.user_id == user_id),
            (Profile, Profile.id == user_id),
        ):
            self.session.execute(delete(model).where(condition))
        self.session.commit()

        self.auth.delete_user(user_id)
        self.pioneers.refresh_pioneer_stats()

        if referrer and referrer.id != user_id:
            self.referrals.sync_user(referrer)
        self.referrals.update_rankings()

    # ==================== VERIFICATION STEPS ====================

    def _resync_referrer(self, profile: Profile) -> None:
        """Push a referred user's step change into the referrer's stats."""
        if not profile.referred_by:
            return
        try:
            self.referrals.sync_referrer_of(profile.id)
        except Exception as e:
            self.session.rollback()
            logger.error("referrer_resync_failed", user_id=profile.id, error=str(e))

    def complete_step(self, user_id: int, step: VerificationStep, handle: str | None = None) -> Profile:
        """Mark a verification step done and refresh the referrer's rewards."""
        profile = self.get_profile(user_id)

        if step in (VerificationStep.TWITTER, VerificationStep.TELEGRAM):
            if not handle or not handle.strip():
                raise InvalidRequestError(f"A {step.value} handle is required")
            handle = handle.strip()

        changed = mark_step(profile, step, handle)
        self.session.commit()

        logger.info("verification_step_completed", user_id=user_id, step=step.value, changed=changed)

        if changed:
            self._resync_referrer(profile)
        return profile

    def verify_social_step(self, user_id: int, step: VerificationStep, handle: str | None) -> Profile:
        if step not in (VerificationStep.TWITTER, VerificationStep.TELEGRAM):
            raise InvalidRequestError(f"Step cannot be verified with a handle: {step.value}")
        return self.complete_step(user_id, step, handle)

    def record_share(self, user_id: int) -> Profile:
        return self.complete_step(user_id, VerificationStep.TWITTER_SHARE)

    def confirm_email(self, token: str) -> Profile:
        """Verify an email token and flag the profile's email step.

        Raises:
            InvalidRequestError: If the token is invalid or expired
        """
        account = self.auth.verify_email(token)
        if not account:
            raise InvalidRequestError("Invalid or expired verification token")
        return self.complete_step(account.id, VerificationStep.EMAIL)
