"""Transactional email."""

from taumine.email.service import EmailService

__all__ = ["EmailService"]
