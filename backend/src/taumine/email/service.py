"""Email service for TAUMine using the Brevo transactional API."""

from typing import Optional

import httpx

from taumine.logging_config import get_logger
from taumine.settings import Settings, settings

logger = get_logger(__name__)


class EmailService:
    """Email service using the Brevo API.

    Handles transactional emails:
    - Email verification
    - Password reset
    """

    BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"

    def __init__(self, api_key: str | None = None, app_settings: Settings | None = None):
        """Initialize email service.

        Args:
            api_key: Brevo API key (defaults to settings)
            app_settings: Settings for the sender and link base URL
        """
        self.settings = app_settings or settings
        self.api_key = api_key or self.settings.brevo_api_key
        self.from_email = self.settings.email_from_address
        self.from_name = self.settings.email_from_name
        self.enabled = bool(self.api_key)

        if not self.enabled:
            logger.warning("email_service_disabled", reason="BREVO_API_KEY not set")

    def _base_url(self) -> str:
        return self.settings.frontend_url or self.settings.allowed_origins.split(",")[0].strip()

    async def _send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> bool:
        """Send an email via the Brevo API.

        Returns:
            True if sent successfully, False otherwise
        """
        if not self.enabled:
            logger.warning("email_not_sent", reason="service_disabled", to=to_email)
            return False

        payload = {
            "sender": {"email": self.from_email, "name": self.from_name},
            "to": [{"email": to_email}],
            "subject": subject,
            "htmlContent": html_content,
        }
        if text_content:
            payload["textContent"] = text_content

        headers = {
            "api-key": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.BREVO_API_URL,
                    json=payload,
                    headers=headers,
                    timeout=30.0,
                )

                if response.status_code in (200, 201, 202):
                    logger.info("email_sent", to=to_email, subject=subject)
                    return True
                else:
                    logger.error(
                        "email_send_failed",
                        to=to_email,
                        status=response.status_code,
                        body=response.text[:200],
                    )
                    return False

        except httpx.RequestError as e:
            logger.error("email_send_error", to=to_email, error=str(e))
            return False

    async def send_verification_email(
        self,
        to_email: str,
        user_name: Optional[str],
        verification_token: str,
    ) -> bool:
        """Send email verification link.

        Args:
            to_email: User's email address
            user_name: User's name (optional)
            verification_token: JWT verification token

        Returns:
            True if sent successfully
        """
        verification_url = f"{self._base_url()}/verify-email?token={verification_token}"
        greeting = f"Hello{' ' + user_name if user_name else ''},"

        subject = "Verify your email - TAU Network"

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; color: #333;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                <h2 style="color: #7c3aed;">TAU Network</h2>
                <p>{greeting}</p>
                <p>Welcome, Pioneer! Please confirm your email address to unlock your first verification reward:</p>
                <p style="text-align: center;">
                    <a href="{verification_url}" style="display: inline-block; background-color: #7c3aed; color: white; padding: 12px 30px; text-decoration: none; border-radius: 6px;">Verify email</a>
                </p>
                <p style="font-size: 12px; color: #666;">This link expires in 24 hours.</p>
            </div>
        </body>
        </html>
        """

        text_content = f"""{greeting}

Welcome, Pioneer! Please confirm your email address:
{verification_url}

This link expires in 24 hours.
"""

        return await self._send_email(to_email, subject, html_content, text_content)

    async def send_password_reset_email(
        self,
        to_email: str,
        user_name: Optional[str],
        reset_token: str,
    ) -> bool:
        """Send password reset link."""
        reset_url = f"{self._base_url()}/reset-password?token={reset_token}"
        greeting = f"Hello{' ' + user_name if user_name else ''},"

        subject = "Reset your password - TAU Network"

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; color: #333;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                <h2 style="color: #7c3aed;">TAU Network</h2>
                <p>{greeting}</p>
                <p>We received a request to reset your password. Click the button below to choose a new one:</p>
                <p style="text-align: center;">
                    <a href="{reset_url}" style="display: inline-block; background-color: #7c3aed; color: white; padding: 12px 30px; text-decoration: none; border-radius: 6px;">Reset password</a>
                </p>
                <p style="font-size: 12px; color: #666;">This link expires in 1 hour. If you did not request a reset, ignore this email.</p>
            </div>
        </body>
        </html>
        """

        text_content = f"""{greeting}

We received a request to reset your password:
{reset_url}

This link expires in 1 hour. If you did not request a reset, ignore this email.
"""

        return await self._send_email(to_email, subject, html_content, text_content)
