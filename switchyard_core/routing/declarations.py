"""Route Declarations - Declarative route and group definitions.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

Routes can be declared on controller classes with decorators and
registered in bulk:

    @route_group(prefix="/users", middleware=[AuthMiddleware])
    class UserController:

        @route("", name="users.list")
        def index(self):
            ...

        @route("/{id:\\d+}", methods=["GET", "POST"], name="users.show")
        def show(self, id: int):
            ...

    router.register_class(UserController)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple, TypeVar, Union

ROUTES_ATTR = "__switchyard_routes__"
GROUP_ATTR = "__switchyard_group__"

F = TypeVar("F", bound=Callable[..., Any])
C = TypeVar("C", bound=type)


@dataclass
class RouteDeclaration:
    """One route as declared, before group prefixes are applied."""

    path: str = ""
    methods: List[str] = field(default_factory=lambda: ["GET"])
    handler: Any = None
    name: Optional[str] = None
    group: Optional[str] = None
    middleware: List[Any] = field(default_factory=list)
    prefix: str = ""

    def __post_init__(self):
        if isinstance(self.methods, str):
            self.methods = [self.methods]
        self.methods = [m.upper() for m in self.methods]
        if not isinstance(self.middleware, (list, tuple)):
            self.middleware = [self.middleware]
        self.middleware = list(self.middleware)

    @property
    def full_path(self) -> str:
        """Path with the declaration's own prefix applied."""
        return self.prefix + self.path


@dataclass
class GroupDeclaration:
    """Prefix, middleware and optional name shared by a set of routes."""

    prefix: str = ""
    name: Optional[str] = None
    middleware: List[Any] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.middleware, (list, tuple)):
            self.middleware = [self.middleware]
        self.middleware = list(self.middleware)


def route(
    path: str = "",
    methods: Union[str, Sequence[str]] = ("GET",),
    name: Optional[str] = None,
    prefix: str = "",
    middleware: Any = None,
    group: Optional[str] = None,
) -> Callable[[F], F]:
    """Declare a route on a function or method. Stackable."""

    def decorator(func: F) -> F:
        declaration = RouteDeclaration(
            path=path,
            methods=list(methods) if not isinstance(methods, str) else [methods],
            name=name or None,
            group=group or None,
            middleware=middleware or [],
            prefix=prefix,
        )
        target = getattr(func, "__func__", func)
        declared = list(getattr(target, ROUTES_ATTR, []))
        # Decorators apply bottom-up; keep top-to-bottom source order
        declared.insert(0, declaration)
        setattr(target, ROUTES_ATTR, declared)
        return func

    return decorator


def route_group(
    prefix: str = "",
    name: Optional[str] = None,
    middleware: Any = None,
) -> Callable[[C], C]:
    """Declare a group for every route on a class."""

    def decorator(cls: C) -> C:
        setattr(cls, GROUP_ATTR, GroupDeclaration(
            prefix=prefix,
            name=name or None,
            middleware=middleware or [],
        ))
        return cls

    return decorator


def group_of(cls: type) -> Optional[GroupDeclaration]:
    """Group declared directly on cls (not inherited)."""
    return vars(cls).get(GROUP_ATTR)


def routes_of(cls: type) -> List[Tuple[str, RouteDeclaration]]:
    """(attribute name, declaration) pairs for cls, in definition order."""
    members = {}
    for klass in reversed(cls.__mro__):
        for attr_name, attr in vars(klass).items():
            func = getattr(attr, "__func__", attr)
            if callable(func) and getattr(func, ROUTES_ATTR, None):
                members[attr_name] = getattr(func, ROUTES_ATTR)
            elif attr_name in members:
                del members[attr_name]

    return [
        (attr_name, declaration)
        for attr_name, declarations in members.items()
        for declaration in declarations
    ]


def is_controller(obj: Any) -> bool:
    """True if obj is a class carrying route declarations."""
    return isinstance(obj, type) and (group_of(obj) is not None or bool(routes_of(obj)))


__all__ = [
    "RouteDeclaration",
    "GroupDeclaration",
    "route",
    "route_group",
    "group_of",
    "routes_of",
    "is_controller",
]
