"""Product analytics integrations."""

from src.trustgate.services.analytics.posthog import PostHogService

__all__ = ["PostHogService"]
