"""Routing errors.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from typing import Iterable, List, Optional


class RoutingError(Exception):
    """Base class for all routing errors."""
    pass


class RouteRegistrationError(RoutingError):
    """A route, group or middleware could not be registered."""
    pass


class InvalidPatternError(RouteRegistrationError, ValueError):
    """Malformed route template or constraint regex."""

    def __init__(self, template: str, reason: str):
        self.template = template
        self.reason = reason
        super().__init__(f"Invalid route pattern {template!r}: {reason}")


class DuplicateRouteNameError(RouteRegistrationError):
    """Route name already bound to a different path."""

    def __init__(self, name: str, existing_path: str, path: str):
        self.name = name
        self.existing_path = existing_path
        self.path = path
        super().__init__(
            f"Duplicate route name: {name} "
            f"(bound to {existing_path!r}, got {path!r})"
        )


class InvalidMiddlewareError(RouteRegistrationError, TypeError):
    """Value does not satisfy the middleware interface."""
    pass


class InvalidHandlerError(RouteRegistrationError, TypeError):
    """Value cannot be resolved to an invocable handler."""
    pass


class RouteNotFoundError(RoutingError, LookupError):
    """No route matches the request.

    Carries the request method and path plus the templates registered
    for that method so callers can render a useful message.
    """

    def __init__(
        self,
        method: str,
        path: str,
        available: Optional[Iterable[str]] = None,
        message: Optional[str] = None,
    ):
        self.method = method
        self.path = path
        self.available: List[str] = list(available or [])
        super().__init__(message or f"No route found for {method} {path}")


class RouteNotRegisteredError(RouteNotFoundError, RouteRegistrationError):
    """Registration-time reference to a route that does not exist."""

    def __init__(self, method: str, path: str):
        super().__init__(
            method,
            path,
            message=f"Cannot add middleware - route not found: {method} {path}",
        )


class RouteNameNotFoundError(RoutingError, LookupError):
    """No route registered under the given name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Route [{name}] not found.")


class MissingParameterError(RoutingError, ValueError):
    """URL generation was missing required placeholders."""

    def __init__(self, name: str, missing: Iterable[str]):
        self.name = name
        self.missing = list(missing)
        super().__init__(
            f"Not all parameters were provided for route [{name}]: "
            f"missing {', '.join(self.missing)}"
        )


class RouteCacheError(RoutingError):
    """Routes could not be written to or restored from the cache."""
    pass


__all__ = [
    "RoutingError",
    "RouteRegistrationError",
    "InvalidPatternError",
    "DuplicateRouteNameError",
    "InvalidMiddlewareError",
    "InvalidHandlerError",
    "RouteNotFoundError",
    "RouteNotRegisteredError",
    "RouteNameNotFoundError",
    "MissingParameterError",
    "RouteCacheError",
]
