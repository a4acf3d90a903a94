"""IP tracking, fraud heuristics and page-view analytics."""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from taumine.auth.models import UserAccount
from taumine.logging_config import get_logger
from taumine.settings import settings
from taumine.storage.models import PageView, UserIP

logger = get_logger(__name__)


@dataclass
class FraudCheck:
    suspicious: bool = False
    reasons: list[str] = field(default_factory=list)


class TrackingService:
    """Record where users come from and flag suspicious accounts.

    Flags are advisory only; nothing is blocked.
    """

    def __init__(
        self,
        session: Session,
        max_accounts_per_ip: int | None = None,
        min_account_age_seconds: int | None = None,
    ):
        self.session = session
        self.max_accounts_per_ip = max_accounts_per_ip or settings.fraud_max_accounts_per_ip
        self.min_account_age_seconds = min_account_age_seconds or settings.fraud_min_account_age_seconds

    def track_ip(self, user_id: int, ip: str | None) -> UserIP | None:
        """Upsert the (user, ip) pair and refresh its last_seen."""
        if not ip:
            return None

        now = datetime.utcnow()
        record = self.session.scalar(
            select(UserIP).where(UserIP.user_id == user_id, UserIP.ip == ip)
        )
        if record:
            record.last_seen = now
        else:
            record = UserIP(user_id=user_id, ip=ip, created_at=now, last_seen=now)
            self.session.add(record)
        self.session.commit()
        return record

    def check_for_fraud(self, user_id: int, ip: str | None) -> FraudCheck:
        """Apply the shared-IP and account-age heuristics."""
        result = FraudCheck()

        if ip:
            accounts = self.session.scalar(
                select(func.count(func.distinct(UserIP.user_id))).where(UserIP.ip == ip)
            ) or 0
            if accounts > self.max_accounts_per_ip:
                result.reasons.append(f"{accounts} accounts share IP {ip}")

        account = self.session.get(UserAccount, user_id)
        if account and account.created_at:
            age = (datetime.utcnow() - account.created_at).total_seconds()
            if age < self.min_account_age_seconds:
                result.reasons.append(f"account is {int(age)}s old")

        result.suspicious = bool(result.reasons)
        if result.suspicious:
            logger.warning("suspicious_activity", user_id=user_id, ip=ip, reasons=result.reasons)
        return result

    def record_page_view(self, user_id: int, page: str) -> PageView:
        view = PageView(user_id=user_id, page=page)
        self.session.add(view)
        self.session.commit()
        return view
