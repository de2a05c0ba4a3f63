"""Courier notification service."""

import asyncio
import logging

from courier.client import Courier
from tenacity import retry, stop_after_attempt, wait_exponential

from src.trustgate.config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when an email could not be handed to Courier."""


class CourierService:
    """Service for sending transactional email via Courier API."""

    def __init__(self) -> None:
        """Initialize Courier service (no client in development mode)."""
        self.client = (
            Courier(authorization_token=settings.courier_api_key)
            if settings.courier_api_key
            else None
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def _deliver(self, message: dict) -> None:
        # the SDK client is blocking
        await asyncio.to_thread(self.client.send_message, message=message)

    async def send_email(
        self, email: str, subject: str, body: str, template_id: str | None = None
    ) -> None:
        """
        Send an email notification.

        Retries up to 3 times with exponential backoff for transient failures.

        Args:
            email: Recipient email address
            subject: Email subject
            body: Email body (plain text or HTML)
            template_id: Optional Courier template ID

        Raises:
            EmailDeliveryError: If Courier is not configured or delivery fails after retries
        """
        if self.client is None:
            raise EmailDeliveryError("Courier is not configured")

        message = {
            "to": {"email": email},
            "content": {"title": subject, "body": body},
            "routing": {"method": "single", "channels": ["email"]},
        }

        if template_id:
            message["template"] = template_id

        try:
            await self._deliver(message)
        except Exception as e:
            raise EmailDeliveryError(f"Failed to send email: {str(e)}") from e

    async def send_verification_code(self, email: str, code: str, ttl_minutes: int) -> None:
        """
        Deliver a one-time login code.

        Without a Courier API key nothing is sent: the code is written to the
        log at DEBUG level only, for local development.

        Raises:
            EmailDeliveryError: If Courier rejects the message after retries
        """
        if self.client is None:
            logger.info(f"[dev mode] Courier not configured, code for {email} not emailed")
            logger.debug(
                f"[dev mode] Verification code for {email}: {code} (valid {ttl_minutes} minutes)"
            )
            return

        await self.send_email(
            email,
            f"{settings.email_from_name} - login code",
            (
                f"Your login code is {code}.\n\n"
                f"It is valid for {ttl_minutes} minutes and can be used once. "
                "If you did not request it, you can ignore this email."
            ),
        )
        logger.info(f"Verification code email sent to {email}")
