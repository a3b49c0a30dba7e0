"""Route Matcher - Selects the best route for a request.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
from urllib.parse import unquote

from switchyard_core.errors import RouteNotFoundError
from switchyard_core.handlers import Handler
from switchyard_core.middleware.base import Middleware
from switchyard_core.routing.groups import NamedGroupRegistry
from switchyard_core.routing.table import RouteEntry, RouteTable


@dataclass
class RouteMatch:
    """A matched route with its bound parameters and full middleware list."""

    route: RouteEntry
    parameters: Dict[str, Optional[str]] = field(default_factory=dict)
    middleware: List[Middleware] = field(default_factory=list)
    via_group: Optional[str] = None

    @property
    def handler(self) -> Optional[Handler]:
        return self.route.handler

    @property
    def method(self) -> str:
        return self.route.method

    @property
    def path(self) -> str:
        return self.route.path

    @property
    def group(self) -> Optional[str]:
        return self.route.group


def order_by_specificity(entries: List[RouteEntry]) -> List[RouteEntry]:
    """Most literal segments first, then longest template.

    sorted() is stable, so remaining ties keep registration order.
    """
    return sorted(entries, key=RouteEntry.specificity)


class Matcher:
    """Matches (method, path) against a RouteTable.

    Matching:
    1. HEAD falls back to GET when no HEAD routes exist
    2. Candidates are tried in specificity order; first match wins
    3. Otherwise named groups whose prefix starts the path are tried
       against the local templates of routes affiliated with them

    A route affiliated with a registered named group is only served
    under that group's prefix, with the group's middleware, unless it
    was registered with the prefix already applied.

    Parameter values are percent-decoded after matching, so an encoded
    "/" (%2F) stays inside its segment.
    """

    def __init__(
        self,
        table: RouteTable,
        named_groups: NamedGroupRegistry,
        global_middleware: Optional[Callable[[], List[Middleware]]] = None,
    ):
        self.table = table
        self.named_groups = named_groups
        self._global_middleware = global_middleware or list

    def match(self, method: str, path: str) -> RouteMatch:
        """Match a request.

        Args:
            method: HTTP method (any case)
            path: Concrete request path

        Returns:
            RouteMatch for the best route

        Raises:
            RouteNotFoundError: nothing matched
        """
        method = str(method or "").strip().upper()
        if method == "HEAD" and not self.table.has_method("HEAD"):
            method = "GET"
        path = path or "/"

        entries = self.table.all_for_method(method)
        if not entries:
            raise RouteNotFoundError(method, path)

        ordered = order_by_specificity(entries)

        for entry in ordered:
            if not self._matches_directly(entry):
                continue
            params = entry.pattern.match(path)
            if params is not None:
                return self._build(entry, params)

        found = self._match_named_groups(ordered, path)
        if found is not None:
            return found

        raise RouteNotFoundError(method, path, [e.path for e in entries])

    def _matches_directly(self, entry: RouteEntry) -> bool:
        if not entry.group:
            return True
        group = self.named_groups.get(entry.group)
        if group is None:
            return True
        return bool(group.prefix) and entry.path == group.prefix + entry.local_path

    def _match_named_groups(
        self,
        ordered: List[RouteEntry],
        path: str,
    ) -> Optional[RouteMatch]:
        affiliated = [e for e in ordered if e.group]
        if not affiliated:
            return None

        for group in self.named_groups.matching_prefix(path):
            local = path[len(group.prefix):] or "/"
            for entry in affiliated:
                if entry.group != group.name or entry.local_pattern is None:
                    continue
                params = entry.local_pattern.match(local)
                if params is not None:
                    return self._build(entry, params, group.middleware, group.name)
        return None

    def _build(
        self,
        entry: RouteEntry,
        params: Dict[str, Optional[str]],
        group_middleware: Optional[List[Middleware]] = None,
        via_group: Optional[str] = None,
    ) -> RouteMatch:
        middleware = list(self._global_middleware())
        middleware.extend(group_middleware or [])
        middleware.extend(entry.middleware)
        return RouteMatch(
            route=entry,
            parameters={
                key: unquote(value) if value is not None else None
                for key, value in params.items()
            },
            middleware=middleware,
            via_group=via_group,
        )


__all__ = [
    "Matcher",
    "RouteMatch",
    "order_by_specificity",
]
