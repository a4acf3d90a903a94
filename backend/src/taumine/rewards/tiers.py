"""Referral tier definitions and tier resolution."""

from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class Tier:
    """A referral milestone.

    Reaching ``required`` verified referrals unlocks ``reward`` TAU.
    """

    tier: int
    required: int
    reward: int
    name: str = ""


# Tier 0 is the implicit "no tier yet" level
NO_TIER = Tier(tier=0, required=0, reward=0, name="")

TIERS: tuple[Tier, ...] = (
    Tier(tier=1, required=1, reward=10_000, name="Community Founder"),
    Tier(tier=2, required=3, reward=25_000, name="Community Builder"),
    Tier(tier=3, required=6, reward=45_000, name="Community Leader"),
    Tier(tier=4, required=12, reward=100_000, name="Community Champion"),
    Tier(tier=5, required=25, reward=250_000, name="Community Visionary"),
    Tier(tier=6, required=50, reward=500_000, name="Community Luminary"),
    Tier(tier=7, required=100, reward=1_000_000, name="Community Legend"),
)


@dataclass(frozen=True)
class TierStatus:
    """Where a referral count sits in the tier table."""

    count: int
    current: Tier
    next: Tier
    progress: float  # Percent towards ``next`` (100 at max tier)
    referrals_needed: int

    @property
    def current_tier(self) -> int:
        return self.current.tier

    @property
    def next_tier(self) -> int:
        return self.next.tier

    @property
    def is_max_tier(self) -> bool:
        return self.current.tier == self.next.tier and self.current.tier > 0


def validate_tiers(tiers: Sequence[Tier]) -> None:
    """Check that a tier table is usable for resolution.

    Raises:
        ValueError: If the table is empty, misnumbered or not strictly ascending
    """
    if not tiers:
        raise ValueError("Tier table must not be empty")

    for index, tier in enumerate(tiers):
        if tier.tier != index + 1:
            raise ValueError(f"Tier at position {index} must be numbered {index + 1}, got {tier.tier}")
        if tier.required < 1:
            raise ValueError(f"Tier {tier.tier} must require at least one referral")
        if index > 0:
            previous = tiers[index - 1]
            if tier.required <= previous.required:
                raise ValueError(f"Tier {tier.tier} requirement must exceed tier {previous.tier}")
            if tier.reward <= previous.reward:
                raise ValueError(f"Tier {tier.tier} reward must exceed tier {previous.tier}")


def resolve_tier(count: int, tiers: Sequence[Tier] = TIERS) -> TierStatus:
    """Resolve the current and next tier for a verified-referral count.

    The current tier is the last tier whose requirement is met (tier 0 when
    none is). The next tier is the one after it, clamped to the top tier.

    Args:
        count: Number of verified referrals
        tiers: Tier table ordered by ascending requirement

    Returns:
        Tier status with progress and referrals still needed

    Raises:
        ValueError: If count is negative
    """
    if count < 0:
        raise ValueError(f"Referral count must be non-negative, got {count}")

    current = NO_TIER
    reached = 0
    for tier in tiers:
        if tier.required <= count:
            current = tier
            reached += 1
        else:
            break

    next_tier = tiers[min(reached, len(tiers) - 1)]

    if reached == len(tiers):
        # Top tier reached, nothing left to unlock
        return TierStatus(
            count=count,
            current=current,
            next=next_tier,
            progress=100.0,
            referrals_needed=0,
        )

    span = next_tier.required - current.required
    progress = (count - current.required) / span * 100
    progress = max(0.0, min(100.0, progress))

    return TierStatus(
        count=count,
        current=current,
        next=next_tier,
        progress=round(progress, 2),
        referrals_needed=max(0, next_tier.required - count),
    )


def tier_by_number(number: int, tiers: Sequence[Tier] = TIERS) -> Tier:
    """Look up a tier by its number (0 returns the empty tier)."""
    if number == 0:
        return NO_TIER
    for tier in tiers:
        if tier.tier == number:
            return tier
    raise KeyError(f"Unknown tier {number}")


validate_tiers(TIERS)
