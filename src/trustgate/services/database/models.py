"""Pydantic models for database entities."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

USERS_TABLE = "users"
VERIFICATION_CODES_TABLE = "verification_codes"
VERIFICATION_ATTEMPTS_TABLE = "verification_attempts"
LOGIN_LOGS_TABLE = "login_logs"


class Role(str, Enum):
    """Principal roles."""

    USER = "user"
    ADMIN = "admin"


class LoginMethod(str, Enum):
    """How a principal proved who they are."""

    SSO = "sso"
    EMAIL_CODE = "email_code"
    PASSWORD = "password"


class LoginStatus(str, Enum):
    """Outcome of a login attempt."""

    SUCCESS = "success"
    FAILED = "failed"


class CodePurpose(str, Enum):
    """What a one-time code may be used for."""

    LOGIN = "login"
    REGISTER = "register"
    RESET = "reset"


class PrincipalRecord(BaseModel):
    """Row of the users table."""

    id: UUID
    email: str
    username: str | None = None
    role: Role = Role.USER
    password_hash: str | None = Field(default=None, exclude=True, repr=False)
    created_at: datetime | None = None


class VerificationCode(BaseModel):
    """Row of the verification_codes table. Never deleted."""

    id: UUID
    email: str
    code: str = Field(repr=False)
    purpose: CodePurpose = CodePurpose.LOGIN
    created_at: datetime
    expires_at: datetime
    used: bool = False


class LoginAuditEntry(BaseModel):
    """Row of the append-only login_logs table."""

    id: UUID | None = None
    principal_id: UUID | None = None
    email: str
    method: LoginMethod
    ip_address: str | None = None
    user_agent: str | None = None
    status: LoginStatus
    created_at: datetime | None = None
