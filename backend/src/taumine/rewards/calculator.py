"""Verification-step rewards and milestone earnings."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Sequence

from taumine.rewards.tiers import NO_TIER, Tier

# Canonical per-step value: five steps unlock 10,000 TAU per referral
REWARD_PER_STEP = 2000


class VerificationStep(str, Enum):
    """Verification steps a pioneer completes."""
    EMAIL = "email"
    TWITTER = "twitter"
    TELEGRAM = "telegram"
    TWITTER_SHARE = "twitter_share"
    FIRST_REFERRAL = "first_referral"


# Profile flag backing each step
STEP_FLAGS: dict[VerificationStep, str] = {
    VerificationStep.EMAIL: "email_verified",
    VerificationStep.TWITTER: "twitter_verified",
    VerificationStep.TELEGRAM: "telegram_verified",
    VerificationStep.TWITTER_SHARE: "twitter_shared",
    VerificationStep.FIRST_REFERRAL: "first_referral",
}

# Steps confirmed by submitting a social handle
SOCIAL_STEPS: dict[VerificationStep, tuple[str, str]] = {
    VerificationStep.TWITTER: ("twitter_handle", "twitter_verified_at"),
    VerificationStep.TELEGRAM: ("telegram_handle", "telegram_verified_at"),
}

TOTAL_STEPS = len(VerificationStep)


def completed_steps(profile: Any) -> frozenset[VerificationStep]:
    """Get the verification steps a profile has completed."""
    return frozenset(
        step for step, flag in STEP_FLAGS.items() if getattr(profile, flag, False)
    )


def mark_step(profile: Any, step: VerificationStep, handle: str | None = None) -> bool:
    """Mark a verification step complete on a profile.

    Args:
        profile: Profile to update
        step: Step to complete
        handle: Social handle for Twitter/Telegram steps

    Returns:
        True if the flag changed
    """
    changed = not getattr(profile, STEP_FLAGS[step])
    setattr(profile, STEP_FLAGS[step], True)

    now = datetime.utcnow()
    if step in SOCIAL_STEPS:
        handle_field, timestamp_field = SOCIAL_STEPS[step]
        if handle:
            setattr(profile, handle_field, handle)
        setattr(profile, timestamp_field, now)
    elif step == VerificationStep.TWITTER_SHARE:
        profile.last_twitter_share = now

    return changed


@dataclass(frozen=True)
class ReferralProgress:
    """Reward progress of a single referred user."""

    steps: frozenset[VerificationStep]
    per_step: int = REWARD_PER_STEP

    @property
    def completed(self) -> int:
        return len(self.steps)

    @property
    def completion_percentage(self) -> float:
        return self.completed / TOTAL_STEPS * 100

    @property
    def unlocked(self) -> int:
        return self.completed * self.per_step

    @property
    def pending(self) -> int:
        return (TOTAL_STEPS - self.completed) * self.per_step

    @property
    def is_verified(self) -> bool:
        return self.completed == TOTAL_STEPS

    @property
    def is_active(self) -> bool:
        return self.completed > 0


@dataclass(frozen=True)
class RewardSummary:
    """Earnings derived from a user's referrals and tier."""

    step_rewards: int
    milestone_reward: int
    pending_rewards: int

    @property
    def total_earnings(self) -> int:
        return self.step_rewards + self.milestone_reward


def referral_progress(
    steps: Iterable[VerificationStep],
    per_step: int = REWARD_PER_STEP,
) -> ReferralProgress:
    """Build progress for one referral from its completed steps."""
    return ReferralProgress(steps=frozenset(steps), per_step=per_step)


def calculate_rewards(
    referrals: Sequence[ReferralProgress],
    tier: Tier = NO_TIER,
) -> RewardSummary:
    """Sum step rewards, the milestone reward and pending rewards.

    The milestone reward is the reward of the highest tier achieved only,
    not the sum of all tiers below it.
    """
    return RewardSummary(
        step_rewards=sum(r.unlocked for r in referrals),
        milestone_reward=tier.reward,
        pending_rewards=sum(r.pending for r in referrals),
    )
