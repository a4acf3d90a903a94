"""Pioneer registration and profiles."""

from taumine.profiles.service import ProfileService, ProfileSyncResult, RegistrationResult

__all__ = ["ProfileService", "ProfileSyncResult", "RegistrationResult"]
