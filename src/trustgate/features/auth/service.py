"""Business logic for local (non-handoff) logins."""

import logging
from dataclasses import dataclass

from src.trustgate.services import CourierService, PostHogService
from src.trustgate.services.auth.codes import CodeLifecycle
from src.trustgate.services.auth.exceptions import (
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidOrExpiredCodeError,
)
from src.trustgate.services.auth.models import Principal
from src.trustgate.services.auth.passwords import hash_password, verify_password
from src.trustgate.services.auth.principals import LoginAuditLog, PrincipalDirectory
from src.trustgate.services.auth.tokens import TokenService
from src.trustgate.services.database import DuplicateRecordError
from src.trustgate.services.database.models import (
    CodePurpose,
    LoginMethod,
    LoginStatus,
    PrincipalRecord,
    VerificationCode,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientInfo:
    """Where a login attempt came from, for the audit trail."""

    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class LoginResult:
    token: str
    user: PrincipalRecord
    created: bool = False


class LocalLoginService:
    """
    Email one-time-code login plus the legacy password check.

    Every attempt that reaches a principal (or a code check) writes one
    login_logs entry, success or failure.
    """

    def __init__(
        self,
        codes: CodeLifecycle,
        tokens: TokenService,
        directory: PrincipalDirectory,
        audit: LoginAuditLog,
        courier: CourierService,
    ):
        self.codes = codes
        self.tokens = tokens
        self.directory = directory
        self.audit = audit
        self.courier = courier
        self.analytics = PostHogService()

    def _issue_session(
        self, principal: PrincipalRecord, method: LoginMethod, client: ClientInfo
    ) -> str:
        token = self.tokens.issue(
            Principal(id=principal.id, email=principal.email, role=principal.role)
        )
        self.audit.record(
            email=principal.email,
            method=method,
            status=LoginStatus.SUCCESS,
            principal_id=principal.id,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )
        self.analytics.capture_login(str(principal.id), principal.email, method.value)
        return token

    async def send_code(self, email: str) -> VerificationCode:
        """
        Issue a login code and deliver it by email.

        Raises:
            StoreUnavailableError: If the code could not be stored
            EmailDeliveryError: If delivery failed
        """
        verification = self.codes.issue(email, CodePurpose.LOGIN)
        await self.courier.send_verification_code(email, verification.code, self.codes.ttl_minutes)
        self.analytics.capture(distinct_id="anonymous", event="verification_code_sent")
        return verification

    def login_by_code(self, email: str, code: str, client: ClientInfo) -> LoginResult:
        """
        Exchange a one-time code for a session, creating the principal on first login.

        Raises:
            InvalidOrExpiredCodeError: If the code is wrong, used or expired
            TooManyAttemptsError: If the email has exhausted its attempts
        """
        try:
            self.codes.consume(email, code, CodePurpose.LOGIN)
        except InvalidOrExpiredCodeError:
            self.audit.record(
                email=email,
                method=LoginMethod.EMAIL_CODE,
                status=LoginStatus.FAILED,
                ip_address=client.ip_address,
                user_agent=client.user_agent,
            )
            raise

        principal, created = self.directory.resolve(email)
        token = self._issue_session(principal, LoginMethod.EMAIL_CODE, client)
        return LoginResult(token=token, user=principal, created=created)

    def login_by_password(self, email: str, password: str, client: ClientInfo) -> LoginResult:
        """
        Check an email/password pair.

        Unknown emails are rejected without an audit entry (there is no
        principal to attribute it to); wrong passwords are audited.

        Raises:
            InvalidCredentialsError: If the email is unknown or the password is wrong
        """
        principal = self.directory.find_by_email(email)
        if principal is None:
            raise InvalidCredentialsError("Invalid email or password")

        if not verify_password(password, principal.password_hash):
            self.audit.record(
                email=principal.email,
                method=LoginMethod.PASSWORD,
                status=LoginStatus.FAILED,
                principal_id=principal.id,
                ip_address=client.ip_address,
                user_agent=client.user_agent,
            )
            logger.warning(
                f"Password login failed for {email}",
                extra={"error_type": "invalid_credentials", "principal_id": str(principal.id)},
            )
            raise InvalidCredentialsError("Invalid email or password")

        token = self._issue_session(principal, LoginMethod.PASSWORD, client)
        return LoginResult(token=token, user=principal)

    def register(
        self, email: str, password: str, username: str | None, client: ClientInfo
    ) -> LoginResult:
        """
        Create a password account and log it in.

        Raises:
            EmailAlreadyRegisteredError: If the email already has a principal
        """
        if self.directory.find_by_email(email) is not None:
            raise EmailAlreadyRegisteredError("Email is already registered")

        try:
            principal = self.directory.create(
                email, username=username, password_hash=hash_password(password)
            )
        except DuplicateRecordError as e:
            raise EmailAlreadyRegisteredError("Email is already registered") from e

        token = self._issue_session(principal, LoginMethod.PASSWORD, client)
        return LoginResult(token=token, user=principal, created=True)
