"""Auth Middleware - Token check in front of route handlers.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import hmac
import logging
from enum import Enum, auto
from typing import Any, Callable, Optional

from switchyard_core.middleware.base import Middleware, Next, Params

logger = logging.getLogger(__name__)


class AuthStatus(Enum):
    """Authentication status."""

    SUCCESS = auto()
    MISSING = auto()
    INVALID = auto()


class UnauthorizedError(Exception):
    """Authentication failed; aborts the middleware chain."""

    def __init__(self, message: str, status: AuthStatus = AuthStatus.INVALID):
        self.status = status
        super().__init__(message)


class AuthMiddleware(Middleware):
    """Rejects calls unless a valid token is present.

    The token is fixed at construction, or read from the route
    parameters under token_param when no token is given. Validation is
    a constant-time comparison against expected, or a custom validator.

    Usage:
        router.get("/admin", admin_panel, middleware=[AuthMiddleware(token, expected=secret)])
    """

    def __init__(
        self,
        token: Optional[str] = None,
        expected: Optional[str] = None,
        validator: Optional[Callable[[str], bool]] = None,
        token_param: str = "token",
        identity_param: Optional[str] = None,
    ):
        self.token = token
        self.expected = expected
        self.validator = validator
        self.token_param = token_param
        self.identity_param = identity_param

    def handle(self, next_handler: Next, params: Params) -> Any:
        token = self.token if self.token is not None else params.get(self.token_param)

        if token is None:
            logger.debug("Rejected call without authentication token")
            raise UnauthorizedError("No authentication token provided", AuthStatus.MISSING)
        if not token or not self._is_valid(token):
            logger.debug("Rejected call with invalid authentication token")
            raise UnauthorizedError("Invalid authentication token", AuthStatus.INVALID)

        if self.identity_param:
            params = dict(params)
            params[self.identity_param] = token
        return next_handler(params)

    def _is_valid(self, token: str) -> bool:
        if self.validator is not None:
            return bool(self.validator(token))
        if self.expected is not None:
            return hmac.compare_digest(token.encode(), self.expected.encode())
        return True


__all__ = [
    "AuthMiddleware",
    "AuthStatus",
    "UnauthorizedError",
]
