"""Route Table - Registered routes keyed by method and path.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple

from switchyard_core.errors import RouteNotRegisteredError, RouteRegistrationError
from switchyard_core.handlers import Handler
from switchyard_core.middleware.base import Middleware
from switchyard_core.routing.pattern import CompiledPattern, compile_pattern

logger = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD")


def normalize_method(method: str) -> str:
    """Uppercase and validate an HTTP method."""
    value = str(method or "").strip().upper()
    if value not in HTTP_METHODS:
        raise RouteRegistrationError(f"Unsupported HTTP method: {method!r}")
    return value


@dataclass
class RouteEntry:
    """One registered (method, path) pair."""

    method: str
    path: str
    pattern: CompiledPattern
    handler: Optional[Handler] = None
    middleware: List[Middleware] = field(default_factory=list)
    group: Optional[str] = None
    local_path: str = ""
    local_pattern: Optional[CompiledPattern] = field(default=None, repr=False)
    name: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str]:
        return self.method, self.path

    @property
    def optional_params(self) -> FrozenSet[str]:
        return self.pattern.optional_params

    @property
    def static_count(self) -> int:
        return self.pattern.static_count

    def specificity(self) -> Tuple[int, int]:
        """Sort key: more literal segments first, then longer templates."""
        return -self.pattern.static_count, -len(self.path)


class RouteTable:
    """Routes per HTTP method, in registration order.

    Registering the same (method, path) twice replaces the earlier
    entry in place.
    """

    def __init__(self):
        self._routes: Dict[str, Dict[str, RouteEntry]] = {}

    def add(
        self,
        method: str,
        path: str,
        handler: Optional[Handler] = None,
        middleware: Optional[List[Middleware]] = None,
        group: Optional[str] = None,
        local_path: Optional[str] = None,
        name: Optional[str] = None,
        pattern: Optional[CompiledPattern] = None,
    ) -> RouteEntry:
        """Add a route.

        Args:
            method: HTTP method
            path: Full path template (group prefix already applied)
            handler: Route handler
            middleware: Group-inherited plus route-specific middleware
            group: Named group affiliation, resolved at match time
            local_path: Template without the group prefix
            name: Route name, informational
            pattern: Precompiled pattern for path
        """
        method = normalize_method(method)
        local = path if local_path is None else local_path

        entry = RouteEntry(
            method=method,
            path=path,
            pattern=pattern or compile_pattern(path),
            handler=handler,
            middleware=list(middleware or []),
            group=group or None,
            local_path=local,
            local_pattern=compile_pattern(local) if group else None,
            name=name or None,
        )

        routes = self._routes.setdefault(method, {})
        if path in routes:
            logger.debug(f"Replacing route {method} {path}")
        routes[path] = entry
        return entry

    def add_middleware(self, method: str, path: str, middleware: Middleware) -> RouteEntry:
        """Append middleware to an existing route."""
        method = str(method or "").strip().upper()
        entry = self._routes.get(method, {}).get(path)
        if entry is None:
            raise RouteNotRegisteredError(method, path)
        entry.middleware.append(middleware)
        return entry

    def get(self, method: str, path: str) -> Optional[RouteEntry]:
        """Get the entry registered for exactly (method, path)."""
        return self._routes.get(str(method or "").upper(), {}).get(path)

    def all_for_method(self, method: str) -> List[RouteEntry]:
        """All entries for a method; HEAD uses GET when it has none."""
        method = str(method or "").strip().upper()
        if method == "HEAD" and not self._routes.get("HEAD"):
            method = "GET"
        return list(self._routes.get(method, {}).values())

    def has_method(self, method: str) -> bool:
        return bool(self._routes.get(str(method or "").upper()))

    def paths_for(self, method: str) -> List[str]:
        return [entry.path for entry in self.all_for_method(method)]

    def methods(self) -> List[str]:
        return [m for m, routes in self._routes.items() if routes]

    def clear(self) -> None:
        self._routes.clear()

    def __iter__(self) -> Iterator[RouteEntry]:
        for routes in self._routes.values():
            yield from routes.values()

    def __len__(self) -> int:
        return sum(len(routes) for routes in self._routes.values())

    def __bool__(self) -> bool:
        return len(self) > 0


__all__ = [
    "HTTP_METHODS",
    "RouteEntry",
    "RouteTable",
    "normalize_method",
]
