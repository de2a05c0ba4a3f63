"""Request guard that turns a bearer credential into a principal."""

import logging

from src.trustgate.services.auth.exceptions import (
    ForbiddenError,
    TokenExpiredError,
    TokenMalformedError,
    UnauthorizedError,
)
from src.trustgate.services.auth.models import Principal
from src.trustgate.services.auth.tokens import TokenService
from src.trustgate.services.database.models import Role

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the credential of an ``Authorization: Bearer <token>`` header, if any."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class AuthGate:
    """
    Verifies the session token of an inbound request.

    Example:
        >>> gate = AuthGate(TokenService("server-secret"))
        >>> principal = gate.require(request.headers.get("Authorization"))
        >>> gate.require_role(request.headers.get("Authorization"), Role.ADMIN)
    """

    def __init__(self, tokens: TokenService):
        self.tokens = tokens

    def require(self, authorization: str | None) -> Principal:
        """
        Raises:
            UnauthorizedError: If the header is missing or the token does not verify
        """
        token = extract_bearer_token(authorization)
        if token is None:
            raise UnauthorizedError("Missing bearer token")

        try:
            return self.tokens.verify(token)
        except TokenExpiredError as e:
            raise UnauthorizedError("Session has expired, please log in again") from e
        except TokenMalformedError as e:
            raise UnauthorizedError("Invalid authentication credentials") from e

    def require_role(self, authorization: str | None, role: Role) -> Principal:
        """
        Raises:
            UnauthorizedError: As for ``require``
            ForbiddenError: If the principal does not hold ``role``
        """
        principal = self.require(authorization)
        if principal.role != Role(role):
            logger.warning(
                f"Principal {principal.id} lacks role {Role(role).value}",
                extra={"error_type": "forbidden", "role": principal.role.value},
            )
            raise ForbiddenError(f"Requires {Role(role).value} role")
        return principal

    def optional(self, authorization: str | None) -> Principal | None:
        """Like ``require`` but anonymous or invalid credentials yield ``None``."""
        try:
            return self.require(authorization)
        except UnauthorizedError:
            return None
