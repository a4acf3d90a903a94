"""Referral tier, reward and leaderboard computations.

Pure functions only; persistence lives in ``taumine.referral``.
"""

from taumine.rewards.calculator import (
    REWARD_PER_STEP,
    STEP_FLAGS,
    TOTAL_STEPS,
    ReferralProgress,
    RewardSummary,
    VerificationStep,
    calculate_rewards,
    completed_steps,
    mark_step,
    referral_progress,
)
from taumine.rewards.leaderboard import LeaderboardEntry, RankedEntry, rank_entries
from taumine.rewards.tiers import NO_TIER, TIERS, Tier, TierStatus, resolve_tier, tier_by_number, validate_tiers

__all__ = [
    "NO_TIER",
    "REWARD_PER_STEP",
    "STEP_FLAGS",
    "TIERS",
    "TOTAL_STEPS",
    "LeaderboardEntry",
    "RankedEntry",
    "ReferralProgress",
    "RewardSummary",
    "Tier",
    "TierStatus",
    "VerificationStep",
    "calculate_rewards",
    "completed_steps",
    "mark_step",
    "rank_entries",
    "referral_progress",
    "resolve_tier",
    "tier_by_number",
    "validate_tiers",
]
