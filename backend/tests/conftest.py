"""Pytest configuration and shared fixtures for all tests."""

import itertools

import pytest
from fastapi.testclient import TestClient
from tenacity import wait_none

from taumine.api.main import create_app
from taumine.auth.models import UserAccount
from taumine.auth.retry import auth_retrying
from taumine.rewards import STEP_FLAGS
from taumine.storage.db import Database
from taumine.storage.models import Profile


class StubEmailService:
    """Records outgoing emails instead of calling Brevo."""

    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []

    async def send_verification_email(self, to_email, user_name, verification_token):
        self.sent.append(("verification", to_email, verification_token))
        return True

    async def send_password_reset_email(self, to_email, user_name, reset_token):
        self.sent.append(("reset", to_email, reset_token))
        return True

    def last_token(self, kind: str, to_email: str) -> str:
        for sent_kind, email, token in reversed(self.sent):
            if sent_kind == kind and email == to_email:
                return token
        raise AssertionError(f"No {kind} email sent to {to_email}")


@pytest.fixture
def database():
    """In-memory SQLite database with all tables."""
    db = Database("sqlite://")
    db.create_tables()
    yield db
    db.drop_tables()
    db.engine.dispose()


@pytest.fixture
def session(database):
    session = database.SessionLocal()
    yield session
    session.close()


@pytest.fixture
def fast_retrying():
    """Auth retry policy without backoff sleeps."""
    return auth_retrying(wait=wait_none())


@pytest.fixture
def make_profile(session):
    """Factory creating an account plus its pioneer profile.

    ``steps`` lists the verification steps already completed.
    """
    counter = itertools.count(1)

    def _make(referred_by=None, steps=(), referral_code=None, **fields) -> Profile:
        n = next(counter)
        account = UserAccount(
            email=f"pioneer{n}@example.com",
            username=f"pioneer{n}",
            password_hash="not-a-real-hash",
        )
        session.add(account)
        session.flush()

        values = {
            "pioneer_number": n,
            "is_genesis_pioneer": True,
            **fields,
        }
        profile = Profile(
            id=account.id,
            username=f"pioneer{n}",
            email=account.email,
            referral_code=referral_code or f"TAUTEST{n:04d}",
            referred_by=referred_by,
            **values,
        )
        for step in steps:
            setattr(profile, STEP_FLAGS[step], True)
        session.add(profile)
        session.commit()
        return profile

    return _make


@pytest.fixture
def email_service():
    return StubEmailService()


@pytest.fixture
def client(database, email_service, fast_retrying):
    """API client bound to the in-memory database."""
    app = create_app(database=database, email_service=email_service, auth_retrying=fast_retrying)
    with TestClient(app) as test_client:
        yield test_client
