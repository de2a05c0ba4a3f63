"""Custom exceptions for authentication and authorization.

Every error here is a validation failure: it is surfaced to the caller as-is,
never retried, and raised before any state is mutated. Store failures are
reported separately as ``StoreUnavailableError``.
"""

from src.trustgate.services.database.exceptions import StoreUnavailableError


class AuthenticationError(Exception):
    """Raised when authentication fails (invalid credentials, expired tokens, etc.)."""

    status_code = 401
    retryable = False


class AuthorizationError(Exception):
    """Raised when an authenticated user lacks permission to access a resource."""

    status_code = 403
    retryable = False


class IncompleteParametersError(AuthenticationError):
    """Raised when a signed handoff is missing email, timestamp or signature."""

    status_code = 400


class RequestExpiredError(AuthenticationError):
    """Raised when a signed handoff timestamp is outside the freshness window."""

    status_code = 400


class InvalidSignatureError(AuthenticationError):
    """Raised when a signed handoff digest does not match."""


class InvalidOrExpiredCodeError(AuthenticationError):
    """Raised when no unused, unexpired code matches the email and code."""

    status_code = 400


class TooManyAttemptsError(AuthenticationError):
    """Raised when an email has exhausted its code verification attempts."""

    status_code = 429


class InvalidCredentialsError(AuthenticationError):
    """Raised when an email/password pair does not match."""


class EmailAlreadyRegisteredError(AuthenticationError):
    status_code = 400


class TokenMalformedError(AuthenticationError):
    """Raised when a session token cannot be decoded or fails its integrity check."""


class TokenExpiredError(AuthenticationError):
    """Raised when a session token is past its expiry."""


class UnauthorizedError(AuthenticationError):
    """Raised when a request carries no usable session credential."""


class ForbiddenError(AuthorizationError):
    """Raised when the principal's role does not satisfy the requirement."""


__all__ = [
    "AuthenticationError",
    "AuthorizationError",
    "EmailAlreadyRegisteredError",
    "ForbiddenError",
    "IncompleteParametersError",
    "InvalidCredentialsError",
    "InvalidOrExpiredCodeError",
    "InvalidSignatureError",
    "RequestExpiredError",
    "StoreUnavailableError",
    "TokenExpiredError",
    "TokenMalformedError",
    "TooManyAttemptsError",
    "UnauthorizedError",
]
