"""Signed handoff: turn a partner redirect into an authenticated session."""

import logging
from dataclasses import dataclass

from src.trustgate.features.auth.service import ClientInfo
from src.trustgate.services import PostHogService
from src.trustgate.services.auth.exceptions import (
    IncompleteParametersError,
    InvalidSignatureError,
    RequestExpiredError,
)
from src.trustgate.services.auth.models import Principal
from src.trustgate.services.auth.principals import LoginAuditLog, PrincipalDirectory
from src.trustgate.services.auth.signature import SignatureVerifier
from src.trustgate.services.auth.tokens import TokenService
from src.trustgate.services.database.models import LoginMethod, LoginStatus, PrincipalRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HandoffResult:
    token: str
    user: PrincipalRecord
    order_no: str | None
    created: bool = False


class SSOHandoffService:
    """
    Verifies a partner redirect and logs the user in, in a single pass.

    Order matters: parameters, freshness and signature are all checked before
    the store is touched, so a rejected request never creates a principal or
    an audit entry.

    Example:
        >>> service = SSOHandoffService(verifier, tokens, directory, audit)
        >>> result = service.handoff(
        ...     email="a@b.com", timestamp="1700000000", sign="...", order_no="ORD1"
        ... )
    """

    def __init__(
        self,
        verifier: SignatureVerifier,
        tokens: TokenService,
        directory: PrincipalDirectory,
        audit: LoginAuditLog,
    ):
        self.verifier = verifier
        self.tokens = tokens
        self.directory = directory
        self.audit = audit
        self.analytics = PostHogService()

    def _reject(self, reason: str, email: str | None) -> None:
        logger.warning(
            f"SSO handoff rejected ({reason}) for {email or '<missing email>'}",
            extra={"error_type": reason},
        )
        self.analytics.capture_rejection("sso_login_rejected", reason)

    def handoff(
        self,
        email: str | None,
        timestamp: str | None,
        sign: str | None,
        order_no: str | None = None,
        client: ClientInfo | None = None,
    ) -> HandoffResult:
        """
        Verify a handoff and issue a session.

        The signed set is ``{email, orderNo, timestamp}``; an empty ``orderNo``
        is left out of the canonical string.

        Raises:
            IncompleteParametersError: If email, timestamp or sign is missing
            RequestExpiredError: If the timestamp is outside the freshness window
            InvalidSignatureError: If the digest does not match
            StoreUnavailableError: If principal lookup/creation or the audit write fails
        """
        client = client or ClientInfo()
        # canonical values are signed trimmed
        email = email.strip() if email else email

        if not email or not timestamp or not sign:
            self._reject("incomplete_parameters", email)
            raise IncompleteParametersError("email, timestamp and sign are required")

        if not self.verifier.verify_freshness(timestamp):
            self._reject("request_expired", email)
            raise RequestExpiredError("Request has expired, please return to the site and retry")

        params = {"email": email, "orderNo": order_no, "timestamp": timestamp, "sign": sign}
        if not self.verifier.verify(params):
            self._reject("invalid_signature", email)
            raise InvalidSignatureError("Signature verification failed")

        principal, created = self.directory.resolve(email)
        if created:
            logger.info(f"Created principal from SSO handoff: {email}")

        token = self.tokens.issue(
            Principal(id=principal.id, email=principal.email, role=principal.role)
        )

        self.audit.record(
            email=principal.email,
            method=LoginMethod.SSO,
            status=LoginStatus.SUCCESS,
            principal_id=principal.id,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )

        logger.info(f"SSO handoff succeeded: {email} -> order {order_no or 'unspecified'}")
        self.analytics.capture_login(
            str(principal.id),
            principal.email,
            LoginMethod.SSO.value,
            {"created": created, "has_order": bool(order_no)},
        )

        return HandoffResult(
            token=token, user=principal, order_no=order_no or None, created=created
        )
