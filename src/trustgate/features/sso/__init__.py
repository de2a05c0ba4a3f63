"""Signed handoff from the partner site."""

from src.trustgate.features.sso.handlers import router

__all__ = ["router"]
