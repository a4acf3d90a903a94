"""Tests for pioneer registration and verification steps."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from taumine.auth.models import UserAccount
from taumine.errors import ConflictError, InvalidRequestError, NotFoundError, UpstreamError
from taumine.profiles.service import ProfileService
from taumine.rewards import VerificationStep
from taumine.storage.models import PioneerStats, Profile, Referral, ReferralStats


@pytest.fixture
def service(session, fast_retrying):
    return ProfileService(session, retrying=fast_retrying)


def register(service, email, **kwargs):
    kwargs.setdefault("password", "secret123")
    return service.register(email=email, **kwargs)


class TestRegistration:
    """Test the registration flow."""

    def test_first_pioneer(self, service, session):
        result = register(service, "alice@example.com", username="alice")

        assert result.pioneer_number == 1
        assert result.is_genesis_pioneer is True
        assert result.referral_code.startswith("TAU")
        assert result.verification_token
        assert "Registration successful" in result.message

        profile = session.get(Profile, result.user_id)
        assert profile.username == "alice"
        assert profile.email == "alice@example.com"
        assert profile.email_verified is False
        assert session.get(PioneerStats, 1).total_pioneers == 1

    def test_pioneer_numbers_increase(self, service):
        first = register(service, "one@example.com")
        second = register(service, "two@example.com")

        assert (first.pioneer_number, second.pioneer_number) == (1, 2)

    def test_genesis_limit(self, session, fast_retrying):
        service = ProfileService(session, retrying=fast_retrying, genesis_limit=1)

        register(service, "one@example.com")
        late = register(service, "two@example.com")

        assert late.is_genesis_pioneer is False
        stats = session.get(PioneerStats, 1)
        assert (stats.total_pioneers, stats.genesis_pioneers) == (2, 1)

    def test_generated_username(self, service):
        result = register(service, "carol@example.com")

        assert result.username.startswith("carol")
        assert 0 <= int(result.username[len("carol"):]) <= 999

    def test_duplicate_email(self, service):
        register(service, "alice@example.com")

        with pytest.raises(ConflictError) as exc_info:
            register(service, "Alice@Example.com")

        assert exc_info.value.code == "email_already_registered"

    def test_duplicate_username(self, service):
        register(service, "alice@example.com", username="alice")

        with pytest.raises(ConflictError) as exc_info:
            register(service, "other@example.com", username="alice")

        assert exc_info.value.code == "username_already_exists"

    @pytest.mark.parametrize(
        "email,password,message",
        [
            ("", "secret123", "Email and password are required"),
            ("not-an-email", "secret123", "Invalid email format"),
            ("dave@example.com", "12345", "Password must be at least 6 characters long"),
        ],
    )
    def test_invalid_credentials(self, service, email, password, message):
        with pytest.raises(InvalidRequestError, match=message):
            service.register(email=email, password=password)

    def test_referral_attribution(self, service, session):
        """The referrer gets a referral record, the first-referral step and fresh stats."""
        referrer = register(service, "alice@example.com")

        referred = register(service, "bob@example.com", referral_code=referrer.referral_code)

        assert referred.referred_by == referrer.referral_code
        record = session.scalar(select(Referral))
        assert (record.referrer_id, record.referred_id) == (referrer.user_id, referred.user_id)

        referrer_profile = session.get(Profile, referrer.user_id)
        assert referrer_profile.first_referral is True
        assert referrer_profile.total_referrals == 1
        stats = session.scalar(select(ReferralStats).where(ReferralStats.user_id == referrer.user_id))
        assert stats.total_referrals == 1
        assert stats.rank == 1

    def test_referral_code_case_insensitive(self, service):
        referrer = register(service, "alice@example.com")

        referred = register(service, "bob@example.com", referral_code=referrer.referral_code.lower())

        assert referred.referred_by == referrer.referral_code

    def test_unknown_referral_code_still_registers(self, service, session):
        result = register(service, "bob@example.com", referral_code="TAUNOPE0000")

        assert result.referred_by is None
        assert session.scalar(select(Referral)) is None

    def test_profile_failure_removes_account(self, service, session, monkeypatch):
        """A failed profile insert deletes the account it belonged to."""
        def fail(account, **fields):
            raise SQLAlchemyError("insert failed")

        monkeypatch.setattr(service, "_insert_profile", fail)

        with pytest.raises(UpstreamError, match="Database error saving new user"):
            register(service, "alice@example.com")

        assert session.scalar(select(UserAccount)) is None


class TestSyncProfiles:
    """Test creating profiles for accounts that lack one."""

    def test_creates_missing_profiles(self, service, session):
        register(service, "alice@example.com")
        orphan = service.auth.sign_up("orphan@example.com", "secret123", "orphan")

        result = service.sync_profiles()

        assert result.created == [orphan.id]
        assert result.errors == []
        profile = session.get(Profile, orphan.id)
        assert profile.pioneer_number == 2
        assert profile.username == "orphan"
        assert profile.referral_code.startswith("TAU")
        assert session.get(PioneerStats, 1).total_pioneers == 2

    def test_nothing_to_do(self, service):
        register(service, "alice@example.com")

        result = service.sync_profiles()

        assert result.created == []
        assert "Created 0 profiles" in result.message


class TestVerificationSteps:
    """Test completing verification steps."""

    def test_social_step_requires_handle(self, service):
        result = register(service, "alice@example.com")

        with pytest.raises(InvalidRequestError):
            service.verify_social_step(result.user_id, VerificationStep.TWITTER, "  ")

    def test_only_social_steps_take_handles(self, service):
        result = register(service, "alice@example.com")

        with pytest.raises(InvalidRequestError):
            service.verify_social_step(result.user_id, VerificationStep.EMAIL, "@alice")

    def test_step_updates_referrer(self, service, session):
        referrer = register(service, "alice@example.com")
        referred = register(service, "bob@example.com", referral_code=referrer.referral_code)

        service.verify_social_step(referred.user_id, VerificationStep.TWITTER, "@bob")
        service.record_share(referred.user_id)

        profile = session.get(Profile, referred.user_id)
        assert profile.twitter_handle == "@bob"
        assert profile.twitter_shared is True
        stats = session.scalar(select(ReferralStats).where(ReferralStats.user_id == referrer.user_id))
        assert stats.step_rewards == 4_000

    def test_confirm_email(self, service):
        result = register(service, "alice@example.com")

        profile = service.confirm_email(result.verification_token)

        assert profile.email_verified is True
        assert service.auth.get_user_by_email("alice@example.com").email_verified is True

    def test_confirm_email_bad_token(self, service):
        with pytest.raises(InvalidRequestError):
            service.confirm_email("garbage")

    def test_missing_profile(self, service):
        with pytest.raises(NotFoundError):
            service.record_share(999)


class TestDeletePioneer:
    def test_removes_account_and_profile(self, service, session):
        referrer = register(service, "alice@example.com")
        referred = register(service, "bob@example.com", referral_code=referrer.referral_code)

        service.delete_pioneer(referred.user_id)

        assert session.get(Profile, referred.user_id) is None
        assert session.get(UserAccount, referred.user_id) is None
        assert session.scalar(select(Referral)) is None
        assert session.get(PioneerStats, 1).total_pioneers == 1

    def test_unknown_user(self, service):
        with pytest.raises(NotFoundError):
            service.delete_pioneer(999)

    def test_referrer_and_ranks_recomputed(self, service, session):
        """Deleting a referred pioneer leaves ranks 1..N-1 and updates the referrer."""
        alice = register(service, "alice@example.com")
        bob = register(service, "bob@example.com", referral_code=alice.referral_code)
        carol = register(service, "carol@example.com")
        service.referrals.sync_all()

        service.delete_pioneer(bob.user_id)

        rows = {s.user_id: s for s in session.scalars(select(ReferralStats))}
        assert set(rows) == {alice.user_id, carol.user_id}
        assert sorted(s.rank for s in rows.values()) == [1, 2]
        assert {s.total_users for s in rows.values()} == {2}
        assert rows[alice.user_id].total_referrals == 0
        assert rows[alice.user_id].pending_rewards == 0
        assert session.get(Profile, alice.user_id).total_referrals == 0
