"""Local login endpoints: email one-time code and legacy password."""

from src.trustgate.features.auth.handlers import router

__all__ = ["router"]
