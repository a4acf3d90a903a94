"""Pioneer numbering and the global pioneer counter."""

from dataclasses import asdict, dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from taumine.logging_config import get_logger
from taumine.settings import settings
from taumine.storage.models import PioneerStats, Profile

logger = get_logger(__name__)

PIONEER_STATS_ID = 1


@dataclass(frozen=True)
class ExtendedPioneerStats:
    total_pioneers: int
    genesis_pioneers: int
    genesis_limit: int
    genesis_remaining: int
    genesis_percentage: float
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        return asdict(self)


class PioneerStatsService:
    """Maintain the singleton pioneer counter row."""

    def __init__(self, session: Session, genesis_limit: int | None = None):
        self.session = session
        self.genesis_limit = genesis_limit or settings.genesis_pioneer_limit

    def ensure_row(self) -> PioneerStats:
        """Get the counter row, creating it if needed."""
        row = self.session.get(PioneerStats, PIONEER_STATS_ID)
        if row is None:
            row = PioneerStats(id=PIONEER_STATS_ID, total_pioneers=0, genesis_pioneers=0)
            self.session.add(row)
            self.session.flush()
        return row

    def next_pioneer_number(self) -> int:
        """Pioneer number for the next registration (profile count + 1)."""
        count = self.session.scalar(select(func.count()).select_from(Profile)) or 0
        return count + 1

    def is_genesis(self, pioneer_number: int) -> bool:
        return pioneer_number <= self.genesis_limit

    def increment_pioneer_stats(self, is_genesis: bool) -> PioneerStats:
        row = self.ensure_row()
        row.total_pioneers += 1
        if is_genesis:
            row.genesis_pioneers += 1
        row.updated_at = datetime.utcnow()
        self.session.commit()

        logger.info("pioneer_stats_incremented", total=row.total_pioneers, genesis=row.genesis_pioneers)
        return row

    def refresh_pioneer_stats(self) -> PioneerStats:
        """Recount the counter from the profiles table."""
        total = self.session.scalar(select(func.count()).select_from(Profile)) or 0
        genesis = self.session.scalar(
            select(func.count()).select_from(Profile).where(Profile.is_genesis_pioneer == True)  # noqa: E712
        ) or 0

        row = self.ensure_row()
        row.total_pioneers = total
        row.genesis_pioneers = genesis
        row.updated_at = datetime.utcnow()
        self.session.commit()

        logger.info("pioneer_stats_refreshed", total=total, genesis=genesis)
        return row

    def get_extended_pioneer_stats(self) -> ExtendedPioneerStats:
        row = self.ensure_row()
        remaining = max(0, self.genesis_limit - row.genesis_pioneers)
        percentage = round(min(100.0, row.genesis_pioneers / self.genesis_limit * 100), 2)
        return ExtendedPioneerStats(
            total_pioneers=row.total_pioneers,
            genesis_pioneers=row.genesis_pioneers,
            genesis_limit=self.genesis_limit,
            genesis_remaining=remaining,
            genesis_percentage=percentage,
            updated_at=row.updated_at,
        )

    def get_pioneer_status_message(self, profile: Profile) -> str:
        if profile.pioneer_number is None:
            return "Your pioneer number has not been assigned yet."

        if profile.is_genesis_pioneer:
            return (
                f"You are Genesis Pioneer #{profile.pioneer_number:,} "
                f"of {self.genesis_limit:,}."
            )

        return f"You are Pioneer #{profile.pioneer_number:,}. All Genesis Pioneer spots have been claimed."

    def api_get_pioneer_stats(self) -> dict:
        """Public counter payload."""
        stats = self.get_extended_pioneer_stats()
        return {
            "total_pioneers": stats.total_pioneers,
            "genesis_pioneers": stats.genesis_pioneers,
            "genesis_limit": stats.genesis_limit,
            "genesis_remaining": stats.genesis_remaining,
        }
