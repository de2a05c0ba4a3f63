"""Shared services module for external integrations."""

from src.trustgate.services.analytics import PostHogService
from src.trustgate.services.courier import CourierService, EmailDeliveryError

__all__ = [
    "PostHogService",
    "CourierService",
    "EmailDeliveryError",
]
