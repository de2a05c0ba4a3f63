"""Data models for authentication."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from src.trustgate.services.database.models import Role


class Principal(BaseModel):
    """
    Authenticated identity carried by a session token.

    Attributes:
        id: Principal UUID from the users table
        email: Principal email (natural key)
        role: Either "user" or "admin"

    Example:
        >>> principal = Principal(
        ...     id=UUID("123e4567-e89b-12d3-a456-426614174000"),
        ...     email="user@example.com",
        ...     role=Role.USER,
        ... )
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    email: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
