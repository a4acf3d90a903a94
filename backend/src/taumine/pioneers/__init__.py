"""Pioneer numbering and counters."""

from taumine.pioneers.service import ExtendedPioneerStats, PioneerStatsService

__all__ = ["ExtendedPioneerStats", "PioneerStatsService"]
