"""Request and response schemas for local login endpoints."""

import re
from typing import Annotated
from uuid import UUID

from pydantic import AfterValidator, BaseModel, Field

from src.trustgate.services.auth.passwords import MAX_PASSWORD_BYTES
from src.trustgate.services.database.models import PrincipalRecord, Role

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _validate_email(value: str) -> str:
    value = value.strip()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email address")
    return value


EmailAddress = Annotated[str, AfterValidator(_validate_email)]


def _validate_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    return value


NewPassword = Annotated[str, AfterValidator(_validate_password_bytes)]


class SendCodeRequest(BaseModel):
    """Request model for sending a one-time login code."""

    email: EmailAddress = Field(max_length=255)


class CodeLoginRequest(BaseModel):
    """Request model for logging in with an email code."""

    email: EmailAddress = Field(max_length=255)
    code: str = Field(min_length=4, max_length=10, pattern=r"^\d+$")


class PasswordLoginRequest(BaseModel):
    """Request model for the legacy email/password login."""

    email: str = Field(max_length=255)
    password: str = Field(min_length=1, max_length=128)


class RegisterRequest(BaseModel):
    """Request model for email/password registration."""

    email: EmailAddress = Field(max_length=255)
    password: NewPassword = Field(
        min_length=6,
        max_length=MAX_PASSWORD_BYTES,
        description=f"At least 6 characters, at most {MAX_PASSWORD_BYTES} bytes as UTF-8",
    )
    username: str | None = Field(None, max_length=64)

    class Config:
        """Pydantic config."""

        json_schema_extra = {
            "example": {
                "email": "user@example.com",
                "password": "password123",
                "username": "user",
            }
        }


class UserResponse(BaseModel):
    """Public view of a principal."""

    id: UUID
    email: str
    username: str | None = None
    role: Role

    @classmethod
    def from_record(cls, record: PrincipalRecord) -> "UserResponse":
        return cls(id=record.id, email=record.email, username=record.username, role=record.role)


class AuthTokenResponse(BaseModel):
    """Response model for every successful login."""

    token: str
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class SessionStatusResponse(BaseModel):
    """Response model for the optional-auth session probe."""

    authenticated: bool
    user_id: UUID | None = None
    email: str | None = None
    role: Role | None = None
