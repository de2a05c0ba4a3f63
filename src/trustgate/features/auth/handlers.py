"""API handlers for local login endpoints (email code and legacy password)."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from src.trustgate.config import settings
from src.trustgate.features.auth.schemas import (
    AuthTokenResponse,
    CodeLoginRequest,
    MessageResponse,
    PasswordLoginRequest,
    RegisterRequest,
    SendCodeRequest,
    SessionStatusResponse,
    UserResponse,
)
from src.trustgate.features.auth.service import ClientInfo, LocalLoginService, LoginResult
from src.trustgate.services import CourierService, EmailDeliveryError
from src.trustgate.services.auth import (
    CodeLifecycle,
    LoginAuditLog,
    Principal,
    PrincipalDirectory,
    get_auth_gate,
    get_current_principal,
    get_optional_principal,
)
from src.trustgate.services.auth.exceptions import AuthenticationError, StoreUnavailableError
from src.trustgate.services.database import SupabaseQueryBuilder, get_db
from src.trustgate.services.rate_limiter import (
    auth_rate_limit,
    default_rate_limit,
    email_rate_limit,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_login_service(db: SupabaseQueryBuilder = Depends(get_db)) -> LocalLoginService:
    """Build the login service from the configured store, secrets and limits."""
    return LocalLoginService(
        codes=CodeLifecycle(
            db,
            length=settings.email_code_length,
            ttl_minutes=settings.email_code_ttl_minutes,
            max_attempts=settings.email_code_max_attempts,
        ),
        tokens=get_auth_gate().tokens,
        directory=PrincipalDirectory(db),
        audit=LoginAuditLog(db),
        courier=CourierService(),
    )


def client_info(request: Request) -> ClientInfo:
    return ClientInfo(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def to_http_exception(error: Exception) -> HTTPException:
    """Map a trust-boundary error to the HTTP error surfaced to the caller."""
    if isinstance(error, AuthenticationError):
        return HTTPException(status_code=error.status_code, detail=str(error))
    if isinstance(error, StoreUnavailableError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service temporarily unavailable. Please try again.",
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Login failed. Please try again later.",
    )


def _token_response(result: LoginResult) -> AuthTokenResponse:
    return AuthTokenResponse(token=result.token, user=UserResponse.from_record(result.user))


@router.post("/send-code", response_model=MessageResponse)
@email_rate_limit
async def send_code(
    request: Request,
    payload: SendCodeRequest,
    service: LocalLoginService = Depends(get_login_service),
) -> MessageResponse:
    """
    Send a one-time login code to an email address.

    Raises:
        HTTPException: 500 if the email could not be delivered
        HTTPException: 503 if the code could not be stored
    """
    try:
        await service.send_code(payload.email)
    except EmailDeliveryError as e:
        logger.error(f"Failed to deliver code to {payload.email}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send verification code. Please try again later.",
        ) from e
    except StoreUnavailableError as e:
        raise to_http_exception(e) from e

    return MessageResponse(
        message=(
            "Verification code sent. Please check your email "
            f"(valid for {settings.email_code_ttl_minutes} minutes)."
        )
    )


@router.post("/login-by-code", response_model=AuthTokenResponse)
@auth_rate_limit
async def login_by_code(
    request: Request,
    payload: CodeLoginRequest,
    service: LocalLoginService = Depends(get_login_service),
) -> AuthTokenResponse:
    """
    Log in with an email one-time code; first login creates the principal.

    Raises:
        HTTPException: 400 if the code is invalid, used or expired
        HTTPException: 429 if the email has exhausted its attempts
    """
    try:
        result = service.login_by_code(payload.email, payload.code, client_info(request))
    except (AuthenticationError, StoreUnavailableError) as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Code login failed for {payload.email}: {e}", exc_info=True)
        raise to_http_exception(e) from e

    return _token_response(result)


@router.post("/login", response_model=AuthTokenResponse)
@auth_rate_limit
async def login(
    request: Request,
    payload: PasswordLoginRequest,
    service: LocalLoginService = Depends(get_login_service),
) -> AuthTokenResponse:
    """
    Legacy email/password login.

    Raises:
        HTTPException: 401 if the email is unknown or the password is wrong
    """
    try:
        result = service.login_by_password(payload.email, payload.password, client_info(request))
    except (AuthenticationError, StoreUnavailableError) as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Password login failed for {payload.email}: {e}", exc_info=True)
        raise to_http_exception(e) from e

    return _token_response(result)


@router.post("/register", response_model=AuthTokenResponse, status_code=status.HTTP_201_CREATED)
@auth_rate_limit
async def register(
    request: Request,
    payload: RegisterRequest,
    service: LocalLoginService = Depends(get_login_service),
) -> AuthTokenResponse:
    """
    Register an email/password account and log it in.

    Raises:
        HTTPException: 400 if the email is already registered
    """
    try:
        result = service.register(
            payload.email, payload.password, payload.username, client_info(request)
        )
    except (AuthenticationError, StoreUnavailableError) as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Registration failed for {payload.email}: {e}", exc_info=True)
        raise to_http_exception(e) from e

    return _token_response(result)


@router.get("/me", response_model=UserResponse)
@default_rate_limit
async def get_me(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: SupabaseQueryBuilder = Depends(get_db),
) -> UserResponse:
    """
    Get the stored profile of the authenticated principal.

    Raises:
        HTTPException: 401 if not authenticated
        HTTPException: 404 if the principal no longer exists
    """
    try:
        record = PrincipalDirectory(db).get_by_id(principal.id)
    except StoreUnavailableError as e:
        raise to_http_exception(e) from e

    if record is None:
        logger.warning(f"Principal {principal.id} from a valid token not found")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return UserResponse.from_record(record)


@router.get("/session", response_model=SessionStatusResponse)
@default_rate_limit
async def get_session(
    request: Request,
    principal: Principal | None = Depends(get_optional_principal),
) -> SessionStatusResponse:
    """Report whether the caller is authenticated; anonymous callers get 200 too."""
    if principal is None:
        return SessionStatusResponse(authenticated=False)

    return SessionStatusResponse(
        authenticated=True,
        user_id=principal.id,
        email=principal.email,
        role=principal.role,
    )
