"""FastAPI dependencies for session-token authentication."""

import logging
from typing import Awaitable, Callable

from fastapi import Depends, HTTPException, Request, status

from src.trustgate.services.analytics import PostHogService
from src.trustgate.services.auth.exceptions import ForbiddenError, UnauthorizedError
from src.trustgate.services.auth.gate import AuthGate
from src.trustgate.services.auth.models import Principal
from src.trustgate.services.database.models import Role

logger = logging.getLogger(__name__)

# Global auth gate instance (initialized in main.py startup)
_auth_gate: AuthGate | None = None


def set_auth_gate(gate: AuthGate | None) -> None:
    """
    Set the global auth gate instance.

    Called during application startup once the token service is configured.

    Args:
        gate: AuthGate instance
    """
    global _auth_gate
    _auth_gate = gate


def get_auth_gate() -> AuthGate:
    """
    Get the global auth gate instance.

    Raises:
        RuntimeError: If the auth gate was not initialized
    """
    if _auth_gate is None:
        raise RuntimeError(
            "Auth gate not initialized. Ensure application startup calls set_auth_gate()."
        )
    return _auth_gate


async def get_current_principal(request: Request) -> Principal:
    """
    Require a valid ``Authorization: Bearer <token>`` header.

    The verified principal is also stored on ``request.state.user`` so the
    rate limiter can key on it.

    Returns:
        Principal with id, email and role

    Raises:
        HTTPException: 401 if the token is missing, malformed or expired

    Example:
        @router.get("/me")
        async def me(principal: Principal = Depends(get_current_principal)):
            return {"id": principal.id, "role": principal.role}
    """
    try:
        principal = get_auth_gate().require(request.headers.get("Authorization"))
    except UnauthorizedError as e:
        logger.warning(f"Auth failed: {e}", extra={"error_type": "unauthorized"})
        PostHogService().capture_rejection(
            "authentication_failed", str(e), {"path": request.url.path}
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    request.state.user = principal
    logger.debug(f"Principal authenticated: {principal.id} ({principal.role.value})")
    return principal


def require_role(role: Role) -> Callable[..., Awaitable[Principal]]:
    """
    Build a dependency that additionally requires ``role``.

    Example:
        @router.get("/admin/login-logs")
        async def logs(principal: Principal = Depends(require_role(Role.ADMIN))):
            ...
    """

    async def dependency(
        request: Request, principal: Principal = Depends(get_current_principal)
    ) -> Principal:
        try:
            return get_auth_gate().require_role(request.headers.get("Authorization"), role)
        except ForbiddenError as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e

    return dependency


async def get_optional_principal(request: Request) -> Principal | None:
    """Return the principal for authenticated callers and ``None`` for anonymous ones."""
    principal = get_auth_gate().optional(request.headers.get("Authorization"))
    if principal is not None:
        request.state.user = principal
    return principal


require_admin = require_role(Role.ADMIN)
