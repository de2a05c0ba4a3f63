"""Admin-only read access to the login audit trail."""

import logging

from fastapi import APIRouter, Depends, Query, Request

from src.trustgate.features.auth.handlers import to_http_exception
from src.trustgate.services.auth import LoginAuditLog, Principal, require_admin
from src.trustgate.services.auth.exceptions import StoreUnavailableError
from src.trustgate.services.database import SupabaseQueryBuilder, get_db
from src.trustgate.services.database.models import LoginAuditEntry
from src.trustgate.services.rate_limiter import default_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/login-logs", response_model=list[LoginAuditEntry])
@default_rate_limit
async def list_login_logs(
    request: Request,
    email: str | None = Query(None, description="Only entries for this email"),
    limit: int = Query(50, ge=1, le=500),
    principal: Principal = Depends(require_admin),
    db: SupabaseQueryBuilder = Depends(get_db),
) -> list[LoginAuditEntry]:
    """
    List recent login attempts, newest first.

    Raises:
        HTTPException: 401 if not authenticated
        HTTPException: 403 if the caller is not an admin
    """
    try:
        entries = LoginAuditLog(db).list_entries(email=email, limit=limit)
    except StoreUnavailableError as e:
        raise to_http_exception(e) from e

    logger.info(f"Admin {principal.id} listed {len(entries)} login log entries")
    return entries
