"""Local authentication service (email/password)."""

from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.orm import Session
from tenacity import Retrying

from taumine.auth.models import UserAccount
from taumine.auth.retry import call_with_retry
from taumine.errors import ConflictError
from taumine.logging_config import get_logger
from taumine.settings import settings

logger = get_logger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# JWT settings
JWT_ALGORITHM = "HS256"
JWT_EXPIRE_HOURS = 2
VERIFICATION_TOKEN_HOURS = 24
RESET_TOKEN_HOURS = 1


class LocalAuthService:
    """Authentication service for local (email/password) users.

    Every call that reaches the database goes through the auth retry policy.
    """

    def __init__(self, session: Session, retrying: Retrying | None = None):
        """Initialize auth service.

        Args:
            session: Database session
            retrying: Retry controller (defaults to the auth policy)
        """
        self.session = session
        self.retrying = retrying
        self.logger = get_logger(__name__)

    def _call(self, fn, *args, **kwargs):
        return call_with_retry(fn, *args, retrying=self.retrying, **kwargs)

    # ==================== PASSWORD ====================

    def _truncate_password(self, password: str) -> str:
        """Truncate password to 72 bytes (bcrypt limit)."""
        return password.encode('utf-8')[:72].decode('utf-8', errors='ignore')

    def hash_password(self, password: str) -> str:
        return pwd_context.hash(self._truncate_password(password))

    def verify_password(self, password: str, hashed: str) -> bool:
        return pwd_context.verify(self._truncate_password(password), hashed)

    # ==================== SIGN UP / SIGN IN ====================

    def sign_up(self, email: str, password: str, username: str | None = None) -> UserAccount:
        """Create a new account.

        Args:
            email: User email
            password: Plain password
            username: Display name stored with the account

        Returns:
            Created user account

        Raises:
            ConflictError: If the email is already registered
        """
        email = email.lower().strip()
        password_hash = self.hash_password(password)

        def _insert() -> UserAccount:
            existing = self.session.scalar(select(UserAccount).where(UserAccount.email == email))
            if existing:
                raise ConflictError(
                    "This email address is already registered. Please use a different email or try logging in.",
                    code="email_already_registered",
                )

            account = UserAccount(email=email, username=username, password_hash=password_hash)
            self.session.add(account)
            try:
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise
            return account

        account = self._call(_insert)
        self.logger.info("user_created", user_id=account.id, email=email)
        return account

    def sign_in(self, email: str, password: str) -> UserAccount | None:
        """Authenticate a user.

        Returns:
            User account if valid, None otherwise
        """
        email = email.lower().strip()

        def _lookup() -> UserAccount | None:
            return self.session.scalar(
                select(UserAccount).where(
                    UserAccount.email == email,
                    UserAccount.is_active == True,  # noqa: E712
                )
            )

        user = self._call(_lookup)
        if not user or not self.verify_password(password, user.password_hash):
            return None

        user.last_login_at = datetime.utcnow()
        self.session.commit()

        self.logger.info("user_authenticated", user_id=user.id)
        return user

    def get_user_by_id(self, user_id: int) -> UserAccount | None:
        def _lookup() -> UserAccount | None:
            return self.session.scalar(
                select(UserAccount).where(
                    UserAccount.id == user_id,
                    UserAccount.is_active == True,  # noqa: E712
                )
            )

        return self._call(_lookup)

    def get_user_by_email(self, email: str) -> UserAccount | None:
        return self._call(
            self.session.scalar,
            select(UserAccount).where(UserAccount.email == email.lower().strip()),
        )

    # ==================== ADMIN ====================

    def list_users(self, limit: int = 100, offset: int = 0) -> list[UserAccount]:
        """List accounts ordered by id."""
        def _list() -> list[UserAccount]:
            return list(
                self.session.scalars(
                    select(UserAccount).order_by(UserAccount.id).limit(limit).offset(offset)
                )
            )

        return self._call(_list)

    def delete_user(self, user_id: int) -> bool:
        """Delete an account.

        Returns:
            True if an account was deleted
        """
        def _delete() -> bool:
            user = self.session.get(UserAccount, user_id)
            if not user:
                return False
            self.session.delete(user)
            try:
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise
            return True

        deleted = self._call(_delete)
        if deleted:
            self.logger.warning("user_deleted", user_id=user_id)
        return deleted

    # ==================== JWT TOKENS ====================

    def _encode(self, payload: dict[str, Any]) -> str:
        return jwt.encode(payload, settings.jwt_secret_key, algorithm=JWT_ALGORITHM)

    def create_access_token(
        self,
        user: UserAccount,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create JWT access token."""
        if expires_delta is None:
            expires_delta = timedelta(hours=JWT_EXPIRE_HOURS)

        now = datetime.utcnow()
        return self._encode({
            "sub": str(user.id),
            "email": user.email,
            "type": "access",
            "exp": now + expires_delta,
            "iat": now,
        })

    def verify_token(self, token: str) -> dict[str, Any] | None:
        """Verify and decode JWT token.

        Returns:
            Token payload or None if invalid
        """
        try:
            return jwt.decode(token, settings.jwt_secret_key, algorithms=[JWT_ALGORITHM])
        except JWTError as e:
            self.logger.debug("token_verification_failed", error=str(e))
            return None

    def get_user_from_token(self, token: str) -> UserAccount | None:
        """Resolve the session's user from an access token."""
        payload = self.verify_token(token)
        if not payload or payload.get("type") != "access":
            return None

        user_id = payload.get("sub")
        if not user_id:
            return None

        return self.get_user_by_id(int(user_id))

    # ==================== EMAIL VERIFICATION ====================

    def generate_verification_token(self, user: UserAccount) -> str:
        return self._encode({
            "sub": str(user.id),
            "email": user.email,
            "type": "email_verification",
            "exp": datetime.utcnow() + timedelta(hours=VERIFICATION_TOKEN_HOURS),
        })

    def verify_email(self, token: str) -> UserAccount | None:
        """Mark the token's account as email-verified.

        Returns:
            The verified account, or None if the token is invalid
        """
        payload = self.verify_token(token)
        if not payload or payload.get("type") != "email_verification":
            return None

        user = self.get_user_by_id(int(payload["sub"]))
        if not user:
            return None

        user.email_verified = True
        user.updated_at = datetime.utcnow()
        self.session.commit()

        self.logger.info("email_verified", user_id=user.id)
        return user

    # ==================== PASSWORD RESET ====================

    def generate_reset_token(self, email: str) -> str | None:
        """Generate password reset token.

        Returns:
            Reset token or None if user not found
        """
        user = self.get_user_by_email(email)
        if not user:
            return None

        return self._encode({
            "sub": str(user.id),
            "type": "password_reset",
            "exp": datetime.utcnow() + timedelta(hours=RESET_TOKEN_HOURS),
        })

    def reset_password(self, token: str, new_password: str) -> bool:
        """Reset password with token.

        Returns:
            True if reset successfully
        """
        payload = self.verify_token(token)
        if not payload or payload.get("type") != "password_reset":
            return False

        user = self.get_user_by_id(int(payload["sub"]))
        if not user:
            return False

        user.password_hash = self.hash_password(new_password)
        user.updated_at = datetime.utcnow()
        self.session.commit()

        self.logger.info("password_reset", user_id=user.id)
        return True
