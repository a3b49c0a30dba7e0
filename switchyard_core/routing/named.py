"""Named Routes - Route names and reverse URL generation.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import dataclasses
import logging
import re
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from switchyard_core.errors import (
    DuplicateRouteNameError,
    MissingParameterError,
    RouteNameNotFoundError,
)
from switchyard_core.routing.pattern import placeholder_name
from switchyard_core.routing.table import RouteEntry

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"(/?)\{((?:[^{}]|\{[^{}]*\})*)\}")


@dataclass(frozen=True)
class NamedRoute:
    """A route name bound to its path template."""

    name: str
    path: str
    entry: RouteEntry


class NamedRouteRegistry:
    """Route names for reverse URL generation.

    Usage:
        registry = NamedRouteRegistry()
        registry.add_named("user.post", "/users/{id}/posts/{postId}", entry)
        registry.url("user.post", {"id": 1, "postId": 2})  # "/users/1/posts/2"

    Registration normally happens once at startup. add_named() holds a
    lock so routes named lazily at runtime do not race.
    """

    def __init__(self):
        self._routes: Dict[str, NamedRoute] = {}
        self._lock = threading.RLock()

    def add_named(self, name: str, path: str, entry: RouteEntry) -> NamedRoute:
        """Bind name to path.

        Re-binding a name to the same path is a no-op; binding it to a
        different path raises DuplicateRouteNameError.
        """
        with self._lock:
            existing = self._routes.get(name)
            if existing is not None:
                if existing.path != path:
                    raise DuplicateRouteNameError(name, existing.path, path)
                return existing

            snapshot = dataclasses.replace(entry, middleware=list(entry.middleware))
            named = NamedRoute(name=name, path=path, entry=snapshot)
            self._routes[name] = named
            logger.debug(f"Named route {name!r} -> {path}")
            return named

    def get_by_name(self, name: str) -> Optional[NamedRoute]:
        return self._routes.get(name)

    def url(
        self,
        name: str,
        params: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> str:
        """Build the path for a named route.

        Args:
            name: Route name
            params: Placeholder values; keyword arguments are merged in

        Raises:
            RouteNameNotFoundError: name is not registered
            MissingParameterError: a required placeholder has no value
        """
        named = self._routes.get(name)
        if named is None:
            raise RouteNameNotFoundError(name)

        values = dict(params or {})
        values.update(kwargs)
        missing: List[str] = []

        def substitute(match: "re.Match[str]") -> str:
            slash, body = match.group(1), match.group(2)
            key, optional = placeholder_name(body)
            value = values.get(key)
            if value is None:
                if not optional:
                    missing.append(key)
                return ""
            return f"{slash}{value}"

        path = _PLACEHOLDER.sub(substitute, named.path)
        if missing:
            raise MissingParameterError(name, missing)
        return path or "/"

    def remove(self, name: str) -> bool:
        """Unbind a name. Returns False if it was not bound."""
        with self._lock:
            return self._routes.pop(name, None) is not None

    def names(self) -> List[str]:
        return list(self._routes)

    def all(self) -> Dict[str, NamedRoute]:
        return dict(self._routes)

    def clear(self) -> None:
        with self._lock:
            self._routes.clear()

    def __contains__(self, name: str) -> bool:
        return name in self._routes

    def __len__(self) -> int:
        return len(self._routes)


__all__ = [
    "NamedRoute",
    "NamedRouteRegistry",
]
