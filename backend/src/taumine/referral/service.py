"""Referral service: signups, stats reconciliation and leaderboard ranking."""

import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taumine.errors import NotFoundError
from taumine.logging_config import get_logger
from taumine.notifications.service import NotificationService
from taumine.rewards import (
    TIERS,
    LeaderboardEntry,
    RankedEntry,
    ReferralProgress,
    RewardSummary,
    Tier,
    TierStatus,
    calculate_rewards,
    completed_steps,
    rank_entries,
    referral_progress,
    resolve_tier,
    validate_tiers,
)
from taumine.settings import settings
from taumine.storage.models import Profile, Referral, ReferralStats

logger = get_logger(__name__)

REFERRAL_CODE_PREFIX = "TAU"
_BASE36 = string.digits + string.ascii_uppercase

# Columns the leaderboard can rank by
RANKING_METRICS = {
    "total_referrals": ReferralStats.total_referrals,
    "verified_referrals": ReferralStats.verified_referrals,
}


def _to_base36(value: int) -> str:
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits)) or "0"


def generate_referral_code() -> str:
    """Generate a referral code.

    Format: TAU + last 4 base-36 digits of the millisecond clock + 4 random
    base-36 characters, e.g. ``TAUK3F9X2QA``.
    """
    timestamp = _to_base36(int(time.time() * 1000))[-4:]
    random_part = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"{REFERRAL_CODE_PREFIX}{timestamp}{random_part}"


@dataclass(frozen=True)
class ReferralSnapshot:
    """Everything derived from one user's referred profiles."""

    referrals: list[tuple[Profile, ReferralProgress]]
    tier: TierStatus
    rewards: RewardSummary

    @property
    def total(self) -> int:
        return len(self.referrals)

    @property
    def verified(self) -> int:
        return sum(1 for _, progress in self.referrals if progress.is_verified)

    @property
    def active(self) -> int:
        return sum(1 for _, progress in self.referrals if progress.is_active)

    @property
    def overall_completion(self) -> float:
        if not self.referrals:
            return 0.0
        total = sum(progress.completion_percentage for _, progress in self.referrals)
        return round(total / len(self.referrals), 2)


@dataclass
class SyncError:
    user_id: int
    error: str


@dataclass
class SyncResult:
    """Outcome of a batch reconciliation."""

    updated: list[int] = field(default_factory=list)
    errors: list[SyncError] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Updated {len(self.updated)} referral stats, encountered {len(self.errors)} errors"


@dataclass(frozen=True)
class LeaderboardRow:
    rank: int
    user_id: int
    username: str
    total_referrals: int
    verified_referrals: int
    earnings: int


class ReferralService:
    """Service for referral attribution and reward reconciliation."""

    def __init__(
        self,
        session: Session,
        tiers: Sequence[Tier] = TIERS,
        reward_per_step: int | None = None,
        ranking_metric: str | None = None,
        leaderboard_size: int | None = None,
    ):
        """Initialize referral service.

        Args:
            session: Database session
            tiers: Tier table
            reward_per_step: TAU per completed verification step
            ranking_metric: Stats column the leaderboard ranks by
            leaderboard_size: Default number of leaderboard rows

        Raises:
            ValueError: If the tier table or ranking metric is invalid
        """
        validate_tiers(tiers)
        self.session = session
        self.tiers = tiers
        self.reward_per_step = reward_per_step or settings.reward_per_step
        self.ranking_metric = ranking_metric or settings.leaderboard_metric
        self.leaderboard_size = leaderboard_size or settings.leaderboard_size
        if self.ranking_metric not in RANKING_METRICS:
            raise ValueError(f"Unknown ranking metric: {self.ranking_metric}")
        self.notifications = NotificationService(session)

    # ==================== CODES ====================

    def generate_unique_code(self, max_attempts: int = 10) -> str:
        """Generate a referral code not yet used by any profile."""
        code = generate_referral_code()
        for _ in range(max_attempts):
            taken = self.session.scalar(select(Profile.id).where(Profile.referral_code == code))
            if not taken:
                return code
            code = generate_referral_code()
        raise RuntimeError("Could not generate a unique referral code")

    def find_referrer(self, code: str | None) -> Profile | None:
        """Find the profile owning a referral code.

        Tries an exact match first, then a case-insensitive one.
        """
        if not code or not code.strip():
            return None
        code = code.strip()

        referrer = self.session.scalar(select(Profile).where(Profile.referral_code == code))
        if referrer:
            return referrer

        referrer = self.session.scalar(
            select(Profile)
            .where(func.lower(Profile.referral_code) == code.lower())
            .order_by(Profile.id)
            .limit(1)
        )
        if referrer:
            logger.info("referrer_matched_case_insensitive", code=code, matched=referrer.referral_code)
        else:
            logger.info("referrer_not_found", code=code)
        return referrer

    # ==================== SIGNUP ====================

    def record_signup(self, referrer: Profile, referred: Profile) -> Referral:
        """Record that ``referred`` signed up with ``referrer``'s code.

        Flags the referrer's first-referral step, recomputes their stats and
        re-ranks the leaderboard. The first-referral flag is itself a step
        counted by the referrer's own referrer, whose stats are recomputed too.
        """
        referral = Referral(referrer_id=referrer.id, referred_id=referred.id)
        self.session.add(referral)
        first_referral = not referrer.first_referral
        referrer.first_referral = True
        self.session.commit()

        logger.info("referral_recorded", referrer_id=referrer.id, referred_id=referred.id)

        self.sync_user(referrer)
        if first_referral and referrer.referred_by:
            upstream = self.find_referrer(referrer.referred_by)
            if upstream and upstream.id != referrer.id:
                self.sync_user(upstream)
        self.update_rankings()
        return referral

    # ==================== RECONCILIATION ====================

    def referred_profiles(self, profile: Profile) -> list[Profile]:
        if not profile.referral_code:
            return []
        return list(
            self.session.scalars(
                select(Profile)
                .where(Profile.referred_by == profile.referral_code)
                .order_by(Profile.created_at.desc(), Profile.id.desc())
            )
        )

    def snapshot(self, profile: Profile) -> ReferralSnapshot:
        """Compute tier and rewards for a profile from its referred users."""
        referrals = [
            (referred, referral_progress(completed_steps(referred), per_step=self.reward_per_step))
            for referred in self.referred_profiles(profile)
        ]
        verified = sum(1 for _, progress in referrals if progress.is_verified)
        tier = resolve_tier(verified, self.tiers)
        rewards = calculate_rewards([progress for _, progress in referrals], tier.current)
        return ReferralSnapshot(referrals=referrals, tier=tier, rewards=rewards)

    def sync_user(self, profile: Profile) -> ReferralStats:
        """Recompute and upsert a profile's referral stats.

        Always rebuilds from the referred profiles, so repeated runs converge.
        """
        snap = self.snapshot(profile)

        stats = self.session.scalar(select(ReferralStats).where(ReferralStats.user_id == profile.id))
        previous_tier = stats.current_tier if stats else 0
        if stats is None:
            stats = ReferralStats(user_id=profile.id, claimed_rewards=0, total_users=0)
            self.session.add(stats)

        stats.total_referrals = snap.total
        stats.active_referrals = snap.active
        stats.pending_referrals = snap.total - snap.active
        stats.verified_referrals = snap.verified
        stats.current_tier = snap.tier.current_tier
        stats.next_tier = snap.tier.next_tier
        stats.current_tier_name = snap.tier.current.name
        stats.next_tier_name = snap.tier.next.name
        stats.current_tier_progress = snap.tier.progress
        stats.referrals_needed = snap.tier.referrals_needed
        stats.overall_completion_percentage = snap.overall_completion
        stats.step_rewards = snap.rewards.step_rewards
        stats.milestone_rewards = snap.rewards.milestone_reward
        stats.total_earnings = snap.rewards.total_earnings
        stats.pending_rewards = snap.rewards.pending_rewards
        stats.updated_at = datetime.utcnow()

        profile.total_referrals = snap.total

        if snap.tier.current_tier > previous_tier:
            current = snap.tier.current
            self.notifications.notify(
                profile.id,
                f"Congratulations! You reached Tier {current.tier} ({current.name}) "
                f"and unlocked {current.reward:,} TAU.",
            )

        self.session.commit()

        logger.info(
            "referral_stats_synced",
            user_id=profile.id,
            total=snap.total,
            verified=snap.verified,
            tier=snap.tier.current_tier,
            earnings=snap.rewards.total_earnings,
        )
        return stats

    def sync_all(self) -> SyncResult:
        """Recompute stats for every profile with a referral code, then re-rank.

        A failure for one user is recorded and the batch moves on.
        """
        result = SyncResult()
        profile_ids = list(
            self.session.scalars(
                select(Profile.id).where(Profile.referral_code.is_not(None)).order_by(Profile.id)
            )
        )

        for profile_id in profile_ids:
            try:
                profile = self.session.get(Profile, profile_id)
                self.sync_user(profile)
                result.updated.append(profile_id)
            except Exception as e:
                self.session.rollback()
                logger.error("referral_sync_failed", user_id=profile_id, error=str(e))
                result.errors.append(SyncError(user_id=profile_id, error=str(e)))

        self.update_rankings()

        logger.info("referral_sync_completed", updated=len(result.updated), errors=len(result.errors))
        return result

    def sync_referrer_of(self, user_id: int) -> ReferralStats | None:
        """Resync the referrer of ``user_id`` after a referral event.

        Returns:
            The referrer's stats, or None if the user was not referred

        Raises:
            NotFoundError: If the user has no profile
        """
        profile = self.session.get(Profile, user_id)
        if not profile:
            raise NotFoundError("User profile not found")

        if not profile.referred_by:
            return None

        referrer = self.find_referrer(profile.referred_by)
        if not referrer:
            logger.warning("referrer_missing", user_id=user_id, referred_by=profile.referred_by)
            return None

        stats = self.sync_user(referrer)
        self.update_rankings()
        self.session.refresh(stats)
        return stats

    # ==================== LEADERBOARD ====================

    def _write_rank(self, entry: RankedEntry) -> None:
        self.session.execute(
            update(ReferralStats)
            .where(ReferralStats.user_id == entry.user_id)
            .values(rank=entry.rank, total_users=entry.total_users)
        )
        self.session.commit()

    def update_rankings(self) -> int:
        """Rank every stats row and write back rank and total_users.

        Rows are read in ascending user id order so ties rank by user id.
        A failed write is logged and skipped.

        Returns:
            Number of rows ranked successfully
        """
        metric = RANKING_METRICS[self.ranking_metric]
        rows = self.session.execute(
            select(ReferralStats.user_id, metric).order_by(ReferralStats.user_id)
        ).all()

        ranked = rank_entries([LeaderboardEntry(user_id=row[0], score=row[1] or 0) for row in rows])

        written = 0
        for entry in ranked:
            try:
                self._write_rank(entry)
                written += 1
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error("rank_update_failed", user_id=entry.user_id, error=str(e))

        logger.info("leaderboard_updated", ranked=written, total_users=len(ranked), metric=self.ranking_metric)
        return written

    def get_leaderboard(self, limit: int | None = None) -> list[LeaderboardRow]:
        """Top referrers by rank."""
        limit = limit or self.leaderboard_size
        rows = self.session.execute(
            select(ReferralStats, Profile.username)
            .join(Profile, Profile.id == ReferralStats.user_id)
            .where(ReferralStats.rank.is_not(None))
            .order_by(ReferralStats.rank)
            .limit(limit)
        ).all()

        return [
            LeaderboardRow(
                rank=stats.rank,
                user_id=stats.user_id,
                username=username or "Anonymous",
                total_referrals=stats.total_referrals,
                verified_referrals=stats.verified_referrals,
                earnings=stats.total_earnings,
            )
            for stats, username in rows
        ]

    def get_stats(self, profile: Profile) -> ReferralStats:
        """Get a profile's stats, syncing them first if they do not exist yet."""
        stats = self.session.scalar(select(ReferralStats).where(ReferralStats.user_id == profile.id))
        if stats is None:
            stats = self.sync_user(profile)
            self.update_rankings()
            self.session.refresh(stats)
        return stats
