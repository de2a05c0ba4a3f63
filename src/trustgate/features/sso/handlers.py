"""API handler for the partner SSO handoff."""

import logging

from fastapi import APIRouter, Depends, Query, Request

from src.trustgate.config import settings
from src.trustgate.features.auth.handlers import client_info, to_http_exception
from src.trustgate.features.auth.schemas import UserResponse
from src.trustgate.features.sso.schemas import SSOLoginResponse
from src.trustgate.features.sso.service import SSOHandoffService
from src.trustgate.services.auth import (
    LoginAuditLog,
    PrincipalDirectory,
    SignatureVerifier,
    get_auth_gate,
)
from src.trustgate.services.auth.exceptions import AuthenticationError, StoreUnavailableError
from src.trustgate.services.database import SupabaseQueryBuilder, get_db
from src.trustgate.services.rate_limiter import auth_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sso", tags=["sso"])


def get_sso_service(db: SupabaseQueryBuilder = Depends(get_db)) -> SSOHandoffService:
    return SSOHandoffService(
        verifier=SignatureVerifier(
            settings.sso_shared_secret, max_age_seconds=settings.sso_max_age_seconds
        ),
        tokens=get_auth_gate().tokens,
        directory=PrincipalDirectory(db),
        audit=LoginAuditLog(db),
    )


@router.get("/auto-login", response_model=SSOLoginResponse)
@auth_rate_limit
async def auto_login(
    request: Request,
    email: str | None = Query(None),
    order_no: str | None = Query(None, alias="orderNo"),
    timestamp: str | None = Query(None),
    sign: str | None = Query(None),
    signature: str | None = Query(None, description="Accepted in place of sign"),
    service: SSOHandoffService = Depends(get_sso_service),
) -> SSOLoginResponse:
    """
    Log a user in from a signed partner redirect.

    The partner signs ``email``, ``orderNo`` and ``timestamp`` with the shared
    secret and sends the digest as ``sign``.

    Raises:
        HTTPException: 400 if parameters are missing or the request has expired
        HTTPException: 401 if the signature does not match
        HTTPException: 503 if the store is unavailable
    """
    try:
        result = service.handoff(
            email=email,
            timestamp=timestamp,
            sign=sign or signature,
            order_no=order_no,
            client=client_info(request),
        )
    except (AuthenticationError, StoreUnavailableError) as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"SSO handoff failed for {email}: {e}", exc_info=True)
        raise to_http_exception(e) from e

    return SSOLoginResponse(
        token=result.token,
        user=UserResponse.from_record(result.user),
        order_no=result.order_no,
    )
