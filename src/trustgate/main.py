"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.trustgate.config import settings
from src.trustgate.features.admin import router as admin_router
from src.trustgate.features.auth import router as auth_router
from src.trustgate.features.sso import router as sso_router
from src.trustgate.services.auth import AuthGate, TokenService, set_auth_gate
from src.trustgate.services.rate_limiter import limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    # Startup
    try:
        tokens = TokenService(
            settings.jwt_secret,
            ttl_seconds=settings.jwt_ttl_seconds,
            algorithm=settings.jwt_algorithm,
        )
    except ValueError as e:
        logger.error(
            f"Failed to initialize token service: {e}",
            extra={"error_type": "token_service_init_failed"},
        )
        raise

    set_auth_gate(AuthGate(tokens))
    logger.info(
        "Auth gate initialized",
        extra={"algorithm": settings.jwt_algorithm, "ttl_seconds": settings.jwt_ttl_seconds},
    )

    yield

    # Shutdown
    set_auth_gate(None)
    logger.info("Auth gate cleared")


app = FastAPI(
    title="Rating Service Trust Gateway",
    description="SSO handoff, email code login and session tokens for the rating service",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

origins = settings.cors_origins.split(",")
logger.info(f"Origins : {origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(sso_router, prefix=settings.api_v1_prefix)
app.include_router(auth_router, prefix=settings.api_v1_prefix)
app.include_router(admin_router, prefix=settings.api_v1_prefix)


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str


@app.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint."""
    return HealthCheckResponse(status="healthy")
