"""PostHog analytics for login and session events."""

import logging

import posthog

from src.trustgate.config import settings

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"


class PostHogService:
    """
    Thin wrapper over the PostHog client.

    Every method is a no-op when ``POSTHOG_API_KEY`` is unset, so tests and
    local runs never reach the network.
    """

    def __init__(self) -> None:
        self.enabled = bool(settings.posthog_api_key)
        if self.enabled:
            posthog.api_key = settings.posthog_api_key
            posthog.host = settings.posthog_host

    def capture(self, distinct_id: str, event: str, properties: dict | None = None) -> None:
        """
        Track an event.

        Args:
            distinct_id: Principal id, or "anonymous" before authentication
            event: Event name (e.g., "sso_login_succeeded", "authentication_failed")
            properties: Optional event properties
        """
        if not self.enabled:
            return

        posthog.capture(distinct_id=distinct_id, event=event, properties=properties or {})

    def capture_login(
        self, principal_id: str, email: str, method: str, properties: dict | None = None
    ) -> None:
        """
        Record a successful login and attach the email to the person profile.

        Example:
            >>> PostHogService().capture_login(str(user.id), user.email, "sso", {"created": True})
        """
        self.capture(
            principal_id,
            f"{method}_login_succeeded",
            {"method": method, "$set": {"email": email}, **(properties or {})},
        )

    def capture_rejection(self, event: str, reason: str, properties: dict | None = None) -> None:
        """Record a refused credential against the anonymous distinct id."""
        logger.debug(f"Analytics: {event} ({reason})")
        self.capture(ANONYMOUS, event, {"reason": reason, **(properties or {})})
