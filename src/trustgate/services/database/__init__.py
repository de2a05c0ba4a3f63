"""Database connection and models."""

from src.trustgate.services.database.connection import get_supabase_admin_client
from src.trustgate.services.database.exceptions import DuplicateRecordError, StoreUnavailableError
from src.trustgate.services.database.utils import SupabaseQueryBuilder, get_db

__all__ = [
    "get_supabase_admin_client",
    "SupabaseQueryBuilder",
    "get_db",
    "DuplicateRecordError",
    "StoreUnavailableError",
]
