"""Trust-boundary primitives: handoff signatures, one-time codes, session tokens."""

from src.trustgate.services.auth.codes import CodeLifecycle
from src.trustgate.services.auth.dependencies import (
    get_auth_gate,
    get_current_principal,
    get_optional_principal,
    require_admin,
    require_role,
    set_auth_gate,
)
from src.trustgate.services.auth.exceptions import AuthenticationError, AuthorizationError
from src.trustgate.services.auth.gate import AuthGate
from src.trustgate.services.auth.models import Principal
from src.trustgate.services.auth.principals import LoginAuditLog, PrincipalDirectory
from src.trustgate.services.auth.signature import SignatureVerifier
from src.trustgate.services.auth.tokens import TokenService

__all__ = [
    "AuthGate",
    "AuthenticationError",
    "AuthorizationError",
    "CodeLifecycle",
    "LoginAuditLog",
    "Principal",
    "PrincipalDirectory",
    "SignatureVerifier",
    "TokenService",
    "get_auth_gate",
    "get_current_principal",
    "get_optional_principal",
    "require_admin",
    "require_role",
    "set_auth_gate",
]
