"""Supabase database connection management."""

import logging
from functools import lru_cache

from supabase import Client, ClientOptions, create_client

from src.trustgate.config import settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_supabase_admin_client() -> Client:
    """
    Get the service-role Supabase client (created once per process).

    users, verification_codes, verification_attempts and login_logs are
    written only by this service, so there is no anon/RLS client: every
    trust-boundary read and write goes through the service role.

    ⚠️ WARNING: This client has full database access. Never hand it to code
    that acts on behalf of an unauthenticated caller's input without the
    checks in ``services/auth``.

    Example:
        >>> client = get_supabase_admin_client()
        >>> response = client.table("users").select("*").eq("email", email).execute()
    """
    logger.info(f"Connecting to Supabase at {settings.supabase_url}")
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key,
        options=ClientOptions(postgrest_client_timeout=settings.supabase_timeout_seconds),
    )
