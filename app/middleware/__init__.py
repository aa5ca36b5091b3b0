"""Middleware exports."""

from app.middleware.identity import IdentityMiddleware

__all__ = ["IdentityMiddleware"]
