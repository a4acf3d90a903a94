"""Tests for referral stats reconciliation and ranking."""

import re

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from taumine.errors import NotFoundError
from taumine.referral.service import ReferralService, generate_referral_code
from taumine.rewards import Tier, VerificationStep
from taumine.storage.models import Notification, Referral, ReferralStats

ALL_STEPS = tuple(VerificationStep)


@pytest.fixture
def service(session):
    return ReferralService(session, reward_per_step=2000, ranking_metric="total_referrals")


def stats_tuple(stats: ReferralStats) -> tuple:
    return (
        stats.total_referrals,
        stats.active_referrals,
        stats.verified_referrals,
        stats.current_tier,
        stats.next_tier,
        stats.current_tier_progress,
        stats.referrals_needed,
        stats.step_rewards,
        stats.milestone_rewards,
        stats.total_earnings,
        stats.pending_rewards,
    )


class TestReferralCodes:
    """Test referral code generation and lookup."""

    def test_code_format(self):
        assert re.fullmatch(r"TAU[0-9A-Z]{8}", generate_referral_code())

    def test_unique_code_not_taken(self, service, make_profile):
        make_profile(referral_code="TAUAAAA0000")

        code = service.generate_unique_code()

        assert code != "TAUAAAA0000"
        assert code.startswith("TAU")

    def test_exact_match(self, service, make_profile):
        referrer = make_profile(referral_code="TAUABCD1234")

        assert service.find_referrer("TAUABCD1234").id == referrer.id

    def test_case_insensitive_match(self, service, make_profile):
        referrer = make_profile(referral_code="TAUABCD1234")

        found = service.find_referrer("tauabcd1234")

        assert found.id == referrer.id
        assert found.referral_code == "TAUABCD1234"

    def test_case_insensitive_match_prefers_oldest_profile(self, service, make_profile):
        oldest = make_profile(referral_code="TAUABCD1234")
        make_profile(referral_code="tauabcd1234")

        assert service.find_referrer("TauAbcd1234").id == oldest.id

    def test_unknown_or_blank_code(self, service, make_profile):
        make_profile()

        assert service.find_referrer("TAUNOPE0000") is None
        assert service.find_referrer("  ") is None
        assert service.find_referrer(None) is None


class TestSyncUser:
    """Test recomputing a single user's stats."""

    def test_stats_from_referred_profiles(self, service, make_profile):
        """One fully verified, one partial and one idle referral."""
        referrer = make_profile()
        make_profile(referred_by=referrer.referral_code, steps=ALL_STEPS)
        make_profile(referred_by=referrer.referral_code, steps=[VerificationStep.EMAIL, VerificationStep.TWITTER])
        make_profile(referred_by=referrer.referral_code)

        stats = service.sync_user(referrer)

        assert stats.total_referrals == 3
        assert stats.active_referrals == 2
        assert stats.pending_referrals == 1
        assert stats.verified_referrals == 1
        assert stats.current_tier == 1
        assert stats.current_tier_name == "Community Founder"
        assert stats.next_tier == 2
        assert stats.referrals_needed == 2
        assert stats.step_rewards == 14_000
        assert stats.milestone_rewards == 10_000
        assert stats.total_earnings == 24_000
        assert stats.pending_rewards == 16_000
        assert stats.overall_completion_percentage == 46.67
        assert referrer.total_referrals == 3

    def test_user_without_referrals(self, service, make_profile):
        stats = service.sync_user(make_profile())

        assert stats.total_referrals == 0
        assert stats.current_tier == 0
        assert stats.next_tier == 1
        assert stats.referrals_needed == 1
        assert stats.total_earnings == 0

    def test_sync_is_idempotent(self, service, session, make_profile):
        """Running the sync twice without changes yields identical stats."""
        referrer = make_profile()
        make_profile(referred_by=referrer.referral_code, steps=ALL_STEPS)
        make_profile(referred_by=referrer.referral_code, steps=[VerificationStep.EMAIL])

        first = stats_tuple(service.sync_user(referrer))
        second = stats_tuple(service.sync_user(referrer))

        assert first == second
        assert len(list(session.scalars(select(ReferralStats)))) == 1

    def test_claimed_rewards_preserved(self, service, session, make_profile):
        referrer = make_profile()
        make_profile(referred_by=referrer.referral_code, steps=ALL_STEPS)
        stats = service.sync_user(referrer)
        stats.claimed_rewards = 5_000
        session.commit()

        stats = service.sync_user(referrer)

        assert stats.claimed_rewards == 5_000

    def test_tier_promotion_notifies_once(self, service, session, make_profile):
        referrer = make_profile()
        make_profile(referred_by=referrer.referral_code, steps=ALL_STEPS)

        service.sync_user(referrer)
        service.sync_user(referrer)

        notifications = list(session.scalars(select(Notification).where(Notification.user_id == referrer.id)))
        assert len(notifications) == 1
        assert "Tier 1" in notifications[0].message

    def test_partial_referral_does_not_promote(self, service, session, make_profile):
        referrer = make_profile()
        make_profile(referred_by=referrer.referral_code, steps=ALL_STEPS[:4])

        stats = service.sync_user(referrer)

        assert stats.current_tier == 0
        assert session.scalar(select(Notification)) is None


class TestSyncAll:
    """Test the batch reconciliation."""

    def test_syncs_every_profile_and_ranks(self, service, make_profile):
        alice = make_profile()
        bob = make_profile()
        make_profile(referred_by=bob.referral_code)
        make_profile(referred_by=bob.referral_code)
        make_profile(referred_by=alice.referral_code)

        result = service.sync_all()

        assert result.errors == []
        assert len(result.updated) == 5
        board = service.get_leaderboard(limit=2)
        assert [row.user_id for row in board] == [bob.id, alice.id]
        assert board[0].rank == 1
        assert board[0].total_referrals == 2

    def test_one_failure_does_not_abort_batch(self, service, make_profile, monkeypatch):
        good = make_profile()
        bad = make_profile()
        original = service.sync_user

        def flaky(profile):
            if profile.id == bad.id:
                raise RuntimeError("boom")
            return original(profile)

        monkeypatch.setattr(service, "sync_user", flaky)

        result = service.sync_all()

        assert result.updated == [good.id]
        assert [(e.user_id, e.error) for e in result.errors] == [(bad.id, "boom")]
        assert "1 errors" in result.message


class TestRankings:
    """Test writing leaderboard ranks."""

    def test_ties_rank_by_user_id(self, service, session, make_profile):
        """Scores [5, 5, 3] for users 1, 2, 3 get ranks [1, 2, 3]."""
        profiles = [make_profile() for _ in range(3)]
        for profile, score in zip(reversed(profiles), [3, 5, 5]):
            session.add(ReferralStats(user_id=profile.id, total_referrals=score))
        session.commit()

        written = service.update_rankings()

        assert written == 3
        ranks = {
            s.user_id: (s.rank, s.total_users)
            for s in session.scalars(select(ReferralStats))
        }
        assert ranks == {
            profiles[0].id: (1, 3),
            profiles[1].id: (2, 3),
            profiles[2].id: (3, 3),
        }

    def test_rank_by_verified_referrals(self, session, make_profile):
        service = ReferralService(session, ranking_metric="verified_referrals")
        first, second = make_profile(), make_profile()
        session.add(ReferralStats(user_id=first.id, total_referrals=9, verified_referrals=1))
        session.add(ReferralStats(user_id=second.id, total_referrals=2, verified_referrals=2))
        session.commit()

        service.update_rankings()

        assert [row.user_id for row in service.get_leaderboard()] == [second.id, first.id]

    def test_failed_rank_write_is_skipped(self, service, session, make_profile, monkeypatch):
        profiles = [make_profile() for _ in range(3)]
        for profile, score in zip(profiles, [3, 2, 1]):
            session.add(ReferralStats(user_id=profile.id, total_referrals=score))
        session.commit()
        failing = profiles[1].id
        original = service._write_rank

        def flaky(entry):
            if entry.user_id == failing:
                raise OperationalError("UPDATE referral_stats", {}, Exception("database is locked"))
            original(entry)

        monkeypatch.setattr(service, "_write_rank", flaky)

        written = service.update_rankings()

        assert written == 2
        ranks = {s.user_id: s.rank for s in session.scalars(select(ReferralStats))}
        assert ranks == {profiles[0].id: 1, failing: None, profiles[2].id: 3}

    def test_unknown_metric(self, session):
        with pytest.raises(ValueError):
            ReferralService(session, ranking_metric="earnings")

    def test_invalid_tier_table(self, session):
        with pytest.raises(ValueError):
            ReferralService(session, tiers=(Tier(tier=5, required=1, reward=100),))


class TestSyncReferrerOf:
    """Test syncing after a referral event."""

    def test_syncs_referrer(self, service, make_profile):
        referrer = make_profile()
        referred = make_profile(referred_by=referrer.referral_code, steps=ALL_STEPS)

        stats = service.sync_referrer_of(referred.id)

        assert stats.user_id == referrer.id
        assert stats.verified_referrals == 1
        assert stats.rank == 1

    def test_user_not_referred(self, service, make_profile):
        assert service.sync_referrer_of(make_profile().id) is None

    def test_missing_user(self, service):
        with pytest.raises(NotFoundError):
            service.sync_referrer_of(999)

    def test_get_stats_creates_missing_row(self, service, make_profile):
        profile = make_profile()

        stats = service.get_stats(profile)

        assert stats.user_id == profile.id
        assert stats.rank == 1


class TestRecordSignup:
    """Test recording a referral at sign-up."""

    def test_first_referral_updates_upstream_referrer(self, service, session, make_profile):
        """A refers B; B's first referral is a completed step that A earns for."""
        a = make_profile()
        b = make_profile(referred_by=a.referral_code)
        service.sync_user(a)
        c = make_profile(referred_by=b.referral_code)

        service.record_signup(b, c)

        stats_a = session.scalar(select(ReferralStats).where(ReferralStats.user_id == a.id))
        stats_b = session.scalar(select(ReferralStats).where(ReferralStats.user_id == b.id))
        assert b.first_referral is True
        assert stats_a.step_rewards == 2000
        assert stats_a.step_rewards == service.snapshot(a).rewards.step_rewards
        assert stats_b.total_referrals == 1
        assert session.scalar(select(Referral).where(Referral.referred_id == c.id)).referrer_id == b.id

    def test_ranks_written_after_signup(self, service, make_profile):
        a = make_profile()
        b = make_profile(referred_by=a.referral_code)

        service.record_signup(a, b)

        assert [(row.user_id, row.rank) for row in service.get_leaderboard()] == [(a.id, 1)]
