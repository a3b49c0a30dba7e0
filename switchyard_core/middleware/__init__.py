"""Middleware module - Middleware interface, chain and built-ins."""

from switchyard_core.middleware.base import (
    CallableMiddleware,
    Middleware,
    MiddlewareChain,
    normalize_middleware,
)
from switchyard_core.middleware.logging import LoggingMiddleware, LoggingConfig
from switchyard_core.middleware.auth import AuthMiddleware, AuthStatus, UnauthorizedError

__all__ = [
    "Middleware",
    "MiddlewareChain",
    "CallableMiddleware",
    "normalize_middleware",
    "LoggingMiddleware",
    "LoggingConfig",
    "AuthMiddleware",
    "AuthStatus",
    "UnauthorizedError",
]
