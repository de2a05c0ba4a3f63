"""Rate limiting service for API endpoints."""

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.trustgate.config import settings
from src.trustgate.services.auth.models import Principal

logger = logging.getLogger(__name__)


def get_principal_id_or_ip(request: Request) -> str:
    """
    Extract principal ID from the verified session or fall back to IP address.

    This function is used as the key_func for rate limiting:
    - Authenticated requests: Rate limited per principal ID
    - Unauthenticated requests (all login endpoints): Rate limited per IP address

    Args:
        request: FastAPI request object

    Returns:
        Principal ID string or IP address
    """
    # Set by the auth dependencies once the token has been verified
    principal: Principal | None = getattr(request.state, "user", None)

    if principal and principal.id:
        return f"user:{principal.id}"

    return f"ip:{get_remote_address(request)}"


# Initialize rate limiter with in-memory storage
limiter = Limiter(
    key_func=get_principal_id_or_ip,
    default_limits=[],  # No global limits, we'll apply per-endpoint
    storage_uri="memory://",  # In-memory storage for single-instance deployment
    enabled=settings.rate_limit_enabled,
)


class RateLimitTiers:
    """
    Rate limit tiers for different endpoint categories.

    Authenticated endpoints are limited per principal; login endpoints are
    limited per IP address.
    """

    # Standard authenticated endpoints (most GET operations)
    DEFAULT = ["100 per minute", "1000 per hour"]

    # Login, handoff and registration endpoints
    AUTH = ["10 per minute", "50 per hour"]

    # Outbound email (verification codes)
    EMAIL = ["3 per minute", "20 per hour"]


# Convenience decorators for common tiers
# Note: These decorators require the endpoint to have a 'request: Request' parameter
# as per slowapi documentation requirements
default_rate_limit = limiter.limit(";".join(RateLimitTiers.DEFAULT))
auth_rate_limit = limiter.limit(";".join(RateLimitTiers.AUTH))
email_rate_limit = limiter.limit(";".join(RateLimitTiers.EMAIL))
