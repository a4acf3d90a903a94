"""Tests for tier resolution."""

import pytest

from taumine.rewards import NO_TIER, TIERS, Tier, resolve_tier, tier_by_number, validate_tiers

TWO_TIERS = (
    Tier(tier=1, required=1, reward=10_000),
    Tier(tier=2, required=3, reward=25_000),
)


class TestResolveTier:
    """Test mapping verified-referral counts to tiers."""

    def test_zero_referrals_has_no_tier(self):
        """No referrals means tier 0 with one referral to go."""
        status = resolve_tier(0, TWO_TIERS)

        assert status.current == NO_TIER
        assert status.next_tier == 1
        assert status.referrals_needed == 1
        assert status.progress == 0.0

    def test_between_thresholds(self):
        """Two verified referrals sit between tier 1 and tier 2."""
        status = resolve_tier(2, TWO_TIERS)

        assert status.current.reward == 10_000
        assert status.next.required == 3
        assert status.referrals_needed == 1
        assert status.progress == 50.0

    def test_exact_threshold_reaches_tier(self):
        status = resolve_tier(3, TIERS)

        assert status.current_tier == 2
        assert status.current.name == "Community Builder"
        assert status.next_tier == 3
        assert status.progress == 0.0
        assert status.referrals_needed == 3

    def test_top_tier(self):
        """At the top tier there is nothing left to unlock."""
        status = resolve_tier(100, TIERS)

        assert status.current_tier == 7
        assert status.next_tier == 7
        assert status.is_max_tier
        assert status.progress == 100.0
        assert status.referrals_needed == 0

    def test_beyond_top_tier(self):
        status = resolve_tier(5000, TIERS)

        assert status.current.name == "Community Legend"
        assert status.referrals_needed == 0

    def test_next_tier_found_by_position(self):
        """Tier numbers that are not 1..N still resolve to the following row."""
        table = (Tier(tier=5, required=2, reward=100), Tier(tier=9, required=4, reward=200))

        status = resolve_tier(2, table)

        assert (status.current_tier, status.next_tier) == (5, 9)
        assert status.referrals_needed == 2
        assert not status.is_max_tier

        top = resolve_tier(4, table)
        assert top.current_tier == 9
        assert top.progress == 100.0
        assert top.referrals_needed == 0

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            resolve_tier(-1)

    def test_progress_is_rounded(self):
        """One of six needed referrals past tier 2 is a third of the way."""
        status = resolve_tier(4, TIERS)

        assert status.current_tier == 2
        assert status.progress == 33.33

    @pytest.mark.parametrize("count", range(0, 151))
    def test_current_tier_is_highest_met(self, count):
        """The resolved tier is met and no higher tier is."""
        status = resolve_tier(count, TIERS)

        assert status.current.required <= count
        assert all(t.required > count for t in TIERS if t.tier > status.current_tier)
        assert 0.0 <= status.progress <= 100.0


class TestValidateTiers:
    """Test tier table validation."""

    def test_default_table_is_valid(self):
        validate_tiers(TIERS)

    def test_empty_table(self):
        with pytest.raises(ValueError, match="empty"):
            validate_tiers(())

    def test_requirements_must_increase(self):
        tiers = (
            Tier(tier=1, required=3, reward=10),
            Tier(tier=2, required=3, reward=20),
        )
        with pytest.raises(ValueError, match="requirement"):
            validate_tiers(tiers)

    def test_rewards_must_increase(self):
        tiers = (
            Tier(tier=1, required=1, reward=20),
            Tier(tier=2, required=3, reward=20),
        )
        with pytest.raises(ValueError, match="reward"):
            validate_tiers(tiers)

    def test_tiers_numbered_from_one(self):
        with pytest.raises(ValueError, match="numbered"):
            validate_tiers((Tier(tier=2, required=1, reward=10),))


class TestTierByNumber:
    def test_lookup(self):
        assert tier_by_number(4).reward == 100_000

    def test_zero_is_no_tier(self):
        assert tier_by_number(0) == NO_TIER

    def test_unknown(self):
        with pytest.raises(KeyError):
            tier_by_number(8)
