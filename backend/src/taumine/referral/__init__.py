"""Referral attribution and reward reconciliation.

Referral stats are always recomputed from the referred profiles:
- tier from fully verified referrals
- 2,000 TAU per completed verification step of each referral
- lump-sum reward of the highest tier reached
"""

from taumine.referral.service import (
    LeaderboardRow,
    ReferralService,
    ReferralSnapshot,
    SyncError,
    SyncResult,
    generate_referral_code,
)

__all__ = [
    "LeaderboardRow",
    "ReferralService",
    "ReferralSnapshot",
    "SyncError",
    "SyncResult",
    "generate_referral_code",
]
