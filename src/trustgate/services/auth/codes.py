"""One-time email verification codes."""

import logging
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Callable

from src.trustgate.services.auth.exceptions import (
    InvalidOrExpiredCodeError,
    StoreUnavailableError,
    TooManyAttemptsError,
)
from src.trustgate.services.database import SupabaseQueryBuilder
from src.trustgate.services.database.models import (
    VERIFICATION_ATTEMPTS_TABLE,
    VERIFICATION_CODES_TABLE,
    CodePurpose,
    VerificationCode,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CodeLifecycle:
    """
    Generates, stores and consumes short-lived numeric codes.

    Codes are scoped by (email, purpose), valid for ``ttl_minutes`` and can be
    consumed once. Rows are never deleted; a consumed code keeps ``used=True``
    for audit.

    Consumption flips ``used`` with a single conditional UPDATE
    (``WHERE id = ? AND used = false``), so when two requests race for the
    same code only the one whose UPDATE returns the row succeeds.

    Failed consumptions are appended to ``verification_attempts``; once an
    email has ``max_attempts`` failures inside the code TTL, further attempts
    are refused without looking at codes.

    Attributes:
        db: Query builder bound to the admin Supabase client
        length: Number of digits per code (default: 6)
        ttl_minutes: Code validity (default: 10)
        max_attempts: Failed attempts allowed per email and TTL window (0 disables)
    """

    def __init__(
        self,
        db: SupabaseQueryBuilder,
        length: int = 6,
        ttl_minutes: int = 10,
        max_attempts: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.length = length
        self.ttl_minutes = ttl_minutes
        self.max_attempts = max_attempts
        self._clock = clock

    @staticmethod
    def generate(length: int = 6) -> str:
        """Draw ``length`` uniformly random decimal digits from the OS CSPRNG."""
        if length < 1:
            raise ValueError("Code length must be positive")
        return "".join(secrets.choice(string.digits) for _ in range(length))

    def issue(self, email: str, purpose: CodePurpose = CodePurpose.LOGIN) -> VerificationCode:
        """
        Generate and store a new code for an email.

        Earlier codes for the same email stay valid until they expire or are
        consumed.

        Raises:
            StoreUnavailableError: If the code could not be stored
        """
        now = self._clock()
        record = self.db.insert_record(
            VERIFICATION_CODES_TABLE,
            {
                "email": email,
                "code": self.generate(self.length),
                "purpose": CodePurpose(purpose).value,
                "created_at": now.isoformat(),
                "expires_at": (now + timedelta(minutes=self.ttl_minutes)).isoformat(),
                "used": False,
            },
        )
        if not record:
            raise StoreUnavailableError("Verification code was not stored")

        logger.info(
            f"Verification code issued for {email}",
            extra={"purpose": CodePurpose(purpose).value},
        )
        return VerificationCode(**record)

    def failed_attempts(self, email: str, purpose: CodePurpose = CodePurpose.LOGIN) -> int:
        """Count failed consumptions for an email within the last TTL window."""
        since = self._clock() - timedelta(minutes=self.ttl_minutes)
        return self.db.count_records(
            VERIFICATION_ATTEMPTS_TABLE,
            filters={"email": email, "purpose": CodePurpose(purpose).value},
            comparisons=[("created_at", "gte", since.isoformat())],
        )

    def consume(
        self, email: str, code: str, purpose: CodePurpose = CodePurpose.LOGIN
    ) -> VerificationCode:
        """
        Consume the newest unused, unexpired code matching (email, code, purpose).

        Returns:
            The consumed code record (``used=True``)

        Raises:
            TooManyAttemptsError: If the email has exhausted its attempts
            InvalidOrExpiredCodeError: If no matching code could be consumed
            StoreUnavailableError: If the store cannot be reached
        """
        purpose = CodePurpose(purpose)

        if self.max_attempts and self.failed_attempts(email, purpose) >= self.max_attempts:
            logger.warning(
                f"Verification attempts exhausted for {email}",
                extra={"error_type": "too_many_attempts", "purpose": purpose.value},
            )
            raise TooManyAttemptsError("Too many verification attempts, request a new code later")

        now = self._clock()
        candidates = self.db.list_records(
            VERIFICATION_CODES_TABLE,
            filters={"email": email, "code": code, "purpose": purpose.value, "used": False},
            comparisons=[("expires_at", "gt", now.isoformat())],
            order_by="created_at",
            order_desc=True,
            limit=1,
        )

        if candidates:
            won = self.db.update_by_filter(
                VERIFICATION_CODES_TABLE,
                {"id": candidates[0]["id"], "used": False},
                {"used": True},
            )
            if won:
                logger.info(f"Verification code consumed for {email}")
                return VerificationCode(**won[0])

        self.db.insert_record(
            VERIFICATION_ATTEMPTS_TABLE,
            {"email": email, "purpose": purpose.value, "created_at": now.isoformat()},
        )
        logger.warning(
            f"Verification code rejected for {email}",
            extra={"error_type": "invalid_or_expired_code", "purpose": purpose.value},
        )
        raise InvalidOrExpiredCodeError("Verification code is invalid or has expired")
