"""Route Groups - Prefix and middleware scopes used during registration.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from switchyard_core.errors import RouteRegistrationError
from switchyard_core.middleware.base import Middleware

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupContext:
    """Snapshot of the accumulated prefix and middleware."""

    prefix: str = ""
    middleware: tuple = ()


@dataclass
class NamedGroup:
    """A group registered under a name, looked up at match time."""

    name: str
    prefix: str = ""
    middleware: List[Middleware] = field(default_factory=list)


class NamedGroupRegistry:
    """Name -> NamedGroup. Last registration for a name wins."""

    def __init__(self):
        self._groups: Dict[str, NamedGroup] = {}

    def register(
        self,
        name: str,
        prefix: str = "",
        middleware: Optional[List[Middleware]] = None,
    ) -> NamedGroup:
        group = NamedGroup(name=name, prefix=prefix, middleware=list(middleware or []))
        self._groups[name] = group
        logger.debug(f"Named group {name!r} -> prefix {prefix!r}")
        return group

    def get(self, name: str) -> Optional[NamedGroup]:
        return self._groups.get(name)

    def matching_prefix(self, path: str) -> List[NamedGroup]:
        """Groups whose prefix is a literal prefix of path, longest first."""
        groups = [g for g in self._groups.values() if path.startswith(g.prefix)]
        return sorted(groups, key=lambda g: len(g.prefix), reverse=True)

    def clear(self) -> None:
        self._groups.clear()

    def __contains__(self, name: str) -> bool:
        return name in self._groups

    def __iter__(self) -> Iterator[NamedGroup]:
        return iter(list(self._groups.values()))

    def __len__(self) -> int:
        return len(self._groups)


class GroupStack:
    """Stack of nested group scopes.

    Every enter() must be paired with one leave(), which restores the
    exact prefix and middleware that were active before the enter().
    """

    def __init__(self, named_groups: Optional[NamedGroupRegistry] = None):
        self.named_groups = named_groups if named_groups is not None else NamedGroupRegistry()
        self._current = GroupContext()
        self._saved: List[GroupContext] = []

    @property
    def prefix(self) -> str:
        return self._current.prefix

    @property
    def middleware(self) -> List[Middleware]:
        return list(self._current.middleware)

    @property
    def depth(self) -> int:
        return len(self._saved)

    def enter(
        self,
        prefix: str = "",
        middleware: Optional[List[Middleware]] = None,
        name: Optional[str] = None,
    ) -> GroupContext:
        """Push a scope. Prefixes concatenate textually."""
        self._saved.append(self._current)
        self._current = GroupContext(
            prefix=self._current.prefix + (prefix or ""),
            middleware=self._current.middleware + tuple(middleware or ()),
        )
        if name:
            self.named_groups.register(
                name, self._current.prefix, list(self._current.middleware)
            )
        return self._current

    def leave(self) -> GroupContext:
        """Pop a scope, restoring the parent's prefix and middleware."""
        if not self._saved:
            raise RouteRegistrationError("leave() called without a matching enter()")
        left = self._current
        self._current = self._saved.pop()
        return left

    def extend_middleware(self, middleware: List[Middleware]) -> None:
        """Append middleware to the current scope only."""
        self._current = GroupContext(
            prefix=self._current.prefix,
            middleware=self._current.middleware + tuple(middleware),
        )


__all__ = [
    "GroupContext",
    "GroupStack",
    "NamedGroup",
    "NamedGroupRegistry",
]
