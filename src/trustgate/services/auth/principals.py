"""Principal lookup/creation and the login audit trail."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from src.trustgate.services.auth.exceptions import StoreUnavailableError
from src.trustgate.services.database import DuplicateRecordError, SupabaseQueryBuilder
from src.trustgate.services.database.models import (
    LOGIN_LOGS_TABLE,
    USERS_TABLE,
    LoginAuditEntry,
    LoginMethod,
    LoginStatus,
    PrincipalRecord,
    Role,
)

logger = logging.getLogger(__name__)


def default_username(email: str) -> str:
    """Local part of an email address."""
    return email.split("@")[0]


class PrincipalDirectory:
    """
    Reads and inserts rows of the users table.

    This service never updates identity fields: email is the natural key and
    id/email/role are fixed once created.
    """

    def __init__(self, db: SupabaseQueryBuilder):
        self.db = db

    def find_by_email(self, email: str) -> PrincipalRecord | None:
        record = self.db.get_by_field(USERS_TABLE, "email", email)
        return PrincipalRecord(**record) if record else None

    def get_by_id(self, principal_id: UUID | str) -> PrincipalRecord | None:
        record = self.db.get_by_id(USERS_TABLE, principal_id)
        return PrincipalRecord(**record) if record else None

    def create(
        self,
        email: str,
        username: str | None = None,
        password_hash: str | None = None,
        role: Role = Role.USER,
    ) -> PrincipalRecord:
        """
        Insert a new principal.

        Raises:
            DuplicateRecordError: If the email is already registered
            StoreUnavailableError: If the insert did not return a row
        """
        record = self.db.insert_record(
            USERS_TABLE,
            {
                "email": email,
                "username": username or default_username(email),
                "password_hash": password_hash,
                "role": Role(role).value,
            },
        )
        if not record:
            raise StoreUnavailableError("Principal was not created")

        logger.info(f"Created principal for {email}", extra={"principal_id": record.get("id")})
        return PrincipalRecord(**record)

    def resolve(self, email: str) -> tuple[PrincipalRecord, bool]:
        """
        Look up a principal by email, creating a default ``user`` if absent.

        A concurrent first login for the same email loses the insert race on
        the unique email constraint; the existing row is returned instead.

        Returns:
            (principal, created)
        """
        principal = self.find_by_email(email)
        if principal:
            return principal, False

        try:
            return self.create(email), True
        except DuplicateRecordError:
            principal = self.find_by_email(email)
            if principal is None:
                raise StoreUnavailableError(f"Principal for {email} vanished after conflict")
            return principal, False


class LoginAuditLog:
    """Append-only writer/reader for the login_logs table."""

    def __init__(self, db: SupabaseQueryBuilder):
        self.db = db

    def record(
        self,
        email: str,
        method: LoginMethod,
        status: LoginStatus,
        principal_id: UUID | str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginAuditEntry:
        entry = LoginAuditEntry(
            principal_id=principal_id,
            email=email,
            method=method,
            ip_address=ip_address,
            user_agent=user_agent,
            status=status,
            created_at=datetime.now(timezone.utc),
        )
        record = self.db.insert_record(
            LOGIN_LOGS_TABLE, entry.model_dump(mode="json", exclude_none=True)
        )
        return LoginAuditEntry(**record) if record else entry

    def list_entries(self, email: str | None = None, limit: int = 50) -> list[LoginAuditEntry]:
        records = self.db.list_records(
            LOGIN_LOGS_TABLE,
            filters={"email": email} if email else None,
            order_by="created_at",
            order_desc=True,
            limit=limit,
        )
        return [LoginAuditEntry(**record) for record in records]
