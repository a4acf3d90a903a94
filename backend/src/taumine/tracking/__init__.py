"""IP tracking and page-view analytics."""

from taumine.tracking.service import FraudCheck, TrackingService

__all__ = ["FraudCheck", "TrackingService"]
