"""Admin-only views of the trust boundary."""

from src.trustgate.features.admin.handlers import router

__all__ = ["router"]
