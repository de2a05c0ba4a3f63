"""Stateless session tokens signed with a server-held secret."""

import logging
import time
from typing import Any
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt

from src.trustgate.services.auth.exceptions import TokenExpiredError, TokenMalformedError
from src.trustgate.services.auth.models import Principal

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 7 * 24 * 3600


class TokenService:
    """
    Issues and verifies session tokens (HS256 JWTs).

    Tokens are never persisted and there is no revocation list: a token is
    valid until ``exp`` for as long as the secret is unchanged. Rotating the
    secret invalidates every outstanding token.

    Attributes:
        secret: HMAC signing secret
        ttl_seconds: Token lifetime (default: 7 days)
        algorithm: JWS algorithm (default: HS256)

    Example:
        >>> tokens = TokenService("server-secret")
        >>> token = tokens.issue(principal)
        >>> tokens.verify(token) == principal
        True
    """

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        algorithm: str = "HS256",
    ):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self.secret = secret
        self.ttl_seconds = ttl_seconds
        self.algorithm = algorithm

    def issue(self, principal: Principal, issued_at: int | None = None) -> str:
        """
        Issue a token for a principal.

        Args:
            principal: Identity to embed (id, email, role)
            issued_at: Epoch seconds to stamp as ``iat`` (default: now)

        Returns:
            Compact JWS string
        """
        iat = int(time.time()) if issued_at is None else issued_at
        claims = {
            "sub": str(principal.id),
            "email": principal.email,
            "role": principal.role.value,
            "iat": iat,
            "exp": iat + self.ttl_seconds,
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> dict[str, Any]:
        """
        Verify signature and expiry and return the raw claims.

        Raises:
            TokenExpiredError: If ``exp`` has passed
            TokenMalformedError: If the token cannot be parsed or the signature fails
        """
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_iat": True,
                    "verify_aud": False,
                    "require_exp": True,
                    "require_iat": True,
                    "require_sub": True,
                    "leeway": 0,
                },
            )
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Session token has expired") from e
        except JWTError as e:
            logger.warning(
                f"Session token rejected: {e}",
                extra={"error_type": "token_malformed", "error": str(e)},
            )
            raise TokenMalformedError("Session token is invalid") from e

    def verify(self, token: str) -> Principal:
        """
        Verify a token and return the principal it carries.

        Raises:
            TokenExpiredError: If ``exp`` has passed
            TokenMalformedError: If the token is unparsable, tampered with,
                or lacks a valid id, email or role
        """
        claims = self.decode(token)

        try:
            return Principal(
                id=UUID(claims["sub"]),
                email=claims["email"],
                role=claims["role"],
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Session token has invalid claims",
                extra={"error_type": "token_claims_invalid", "claims": sorted(claims)},
            )
            raise TokenMalformedError("Session token is missing required claims") from e
