"""Router - Route registration, matching and execution.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import importlib
import logging
from contextlib import contextmanager
from types import ModuleType
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence, Union

from switchyard_core.errors import (
    DuplicateRouteNameError,
    InvalidHandlerError,
    RouteCacheError,
    RouteRegistrationError,
    RoutingError,
)
from switchyard_core.handlers import FunctionHandler, Handler, HandlerLike, MethodHandler, resolve_handler
from switchyard_core.middleware.base import Middleware, MiddlewareChain, MiddlewareLike, normalize_middleware
from switchyard_core.routing.cache import RouteCache, load_entry, load_group
from switchyard_core.routing.declarations import (
    ROUTES_ATTR,
    GroupDeclaration,
    RouteDeclaration,
    group_of,
    is_controller,
    routes_of,
)
from switchyard_core.routing.groups import GroupStack, NamedGroup, NamedGroupRegistry
from switchyard_core.routing.matcher import Matcher, RouteMatch
from switchyard_core.routing.named import NamedRoute, NamedRouteRegistry
from switchyard_core.routing.pattern import compile_pattern
from switchyard_core.routing.table import HTTP_METHODS, RouteEntry, RouteTable, normalize_method
from switchyard_core.utils.config import RouterConfig
from switchyard_core.utils.helpers import request_path

logger = logging.getLogger(__name__)

Methods = Union[str, Sequence[str]]


class Router:
    """Request Router.

    Features:
    - Path parameters (/users/{id}), constraints (/users/{id:\\d+})
      and optional parameters (/users/{id}/{tab?})
    - Most-specific-route-wins matching
    - Nested groups sharing a prefix and middleware
    - Named groups resolved at match time
    - Global, group and route middleware
    - Named routes and URL generation
    - Declarative controllers and a route cache

    Usage:
        router = Router()
        router.use(LoggingMiddleware())
        router.get("/users/{id:\\d+}", show_user, name="users.show")

        with router.group(prefix="/admin", middleware=[AuthMiddleware]):
            router.get("/dashboard", dashboard)

        match = router.match("GET", "/users/42")
        result = router.execute(match)

        router.url("users.show", id=42)  # "/users/42"

    Routes are meant to be registered once, from one thread, before
    requests are served. match() and execute() only read and may be
    called concurrently afterwards.
    """

    def __init__(
        self,
        named_routes: Optional[NamedRouteRegistry] = None,
        config: Optional[RouterConfig] = None,
    ):
        self.config = config or RouterConfig()
        self.named_routes = named_routes if named_routes is not None else NamedRouteRegistry()
        self.named_groups = NamedGroupRegistry()
        self._table = RouteTable()
        self._groups = GroupStack(self.named_groups)
        self._global_middleware: List[Middleware] = []
        self._matcher = Matcher(self._table, self.named_groups, self.global_middleware)

        self._cache: Optional[RouteCache] = None
        self._cache_dir: Optional[str] = None
        self._route_files: List[str] = list(self.config.route_files)
        if self.config.cache_enabled and self.config.cache_dir:
            self.enable_cache(self.config.cache_dir)

    @classmethod
    def from_config(
        cls,
        config: RouterConfig,
        named_routes: Optional[NamedRouteRegistry] = None,
    ) -> "Router":
        """Build a router from configuration."""
        logging.getLogger("switchyard_core").setLevel(config.level)
        return cls(named_routes=named_routes, config=config)

    # Registration

    def add(
        self,
        methods: Methods,
        path: str,
        handler: Optional[HandlerLike] = None,
        name: Optional[str] = None,
        group: Optional[str] = None,
        middleware: Optional[Union[MiddlewareLike, List[MiddlewareLike]]] = None,
    ) -> "Router":
        """Add a route.

        Args:
            methods: HTTP method or list of methods
            path: Path template, relative to the current group prefix
            handler: Function, bound method, (owner, "method") pair or
                "module:qualname" reference
            name: Route name for URL generation
            group: Named group affiliation, resolved at match time
            middleware: Route-specific middleware, run after group middleware

        Raises:
            InvalidPatternError: path is not a valid template
            DuplicateRouteNameError: name is bound to a different path
        """
        resolved = resolve_handler(handler) if handler is not None else None
        route_middleware = normalize_middleware(middleware)

        for method in _method_list(methods):
            self._register(method, path, resolved, name, group, route_middleware)
        return self

    def _register(
        self,
        method: str,
        path: str,
        handler: Optional[Handler],
        name: Optional[str],
        group: Optional[str],
        route_middleware: List[Middleware],
    ) -> RouteEntry:
        method = normalize_method(method)
        full_path = self._groups.prefix + path
        pattern = compile_pattern(full_path)

        if name:
            existing = self.named_routes.get_by_name(name)
            if existing is not None and existing.path != full_path:
                raise DuplicateRouteNameError(name, existing.path, full_path)

        entry = self._table.add(
            method,
            full_path,
            handler=handler,
            middleware=self._groups.middleware + route_middleware,
            group=group,
            local_path=path,
            name=name,
            pattern=pattern,
        )
        if name:
            self.named_routes.add_named(name, full_path, entry)

        logger.debug(f"Registered {method} {full_path}" + (f" as {name!r}" if name else ""))
        return entry

    def get(self, path: str, handler: Optional[HandlerLike] = None, name: Optional[str] = None, **kwargs) -> "Router":
        """Add GET route."""
        return self.add("GET", path, handler, name, **kwargs)

    def post(self, path: str, handler: Optional[HandlerLike] = None, name: Optional[str] = None, **kwargs) -> "Router":
        """Add POST route."""
        return self.add("POST", path, handler, name, **kwargs)

    def put(self, path: str, handler: Optional[HandlerLike] = None, name: Optional[str] = None, **kwargs) -> "Router":
        """Add PUT route."""
        return self.add("PUT", path, handler, name, **kwargs)

    def patch(self, path: str, handler: Optional[HandlerLike] = None, name: Optional[str] = None, **kwargs) -> "Router":
        """Add PATCH route."""
        return self.add("PATCH", path, handler, name, **kwargs)

    def delete(self, path: str, handler: Optional[HandlerLike] = None, name: Optional[str] = None, **kwargs) -> "Router":
        """Add DELETE route."""
        return self.add("DELETE", path, handler, name, **kwargs)

    def options(self, path: str, handler: Optional[HandlerLike] = None, name: Optional[str] = None, **kwargs) -> "Router":
        """Add OPTIONS route."""
        return self.add("OPTIONS", path, handler, name, **kwargs)

    def head(self, path: str, handler: Optional[HandlerLike] = None, name: Optional[str] = None, **kwargs) -> "Router":
        """Add HEAD route."""
        return self.add("HEAD", path, handler, name, **kwargs)

    def any(self, path: str, handler: Optional[HandlerLike] = None, name: Optional[str] = None, **kwargs) -> "Router":
        """Add a route for every supported method."""
        return self.add(list(HTTP_METHODS), path, handler, name, **kwargs)

    def route(
        self,
        path: str,
        methods: Methods = ("GET",),
        name: Optional[str] = None,
        group: Optional[str] = None,
        middleware: Optional[Union[MiddlewareLike, List[MiddlewareLike]]] = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of add()."""
        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.add(methods, path, func, name=name, group=group, middleware=middleware)
            return func
        return decorator

    # Groups

    @contextmanager
    def group(
        self,
        prefix: str = "",
        middleware: Optional[Union[MiddlewareLike, List[MiddlewareLike]]] = None,
        name: Optional[str] = None,
    ) -> Iterator["Router"]:
        """Scope for routes sharing a prefix and middleware.

        Usage:
            with router.group(prefix="/api", middleware=[A]):
                with router.group(prefix="/v1", middleware=[B]):
                    router.get("/users", list_users)  # /api/v1/users, [A, B]

        When name is given, the accumulated prefix and middleware are
        also registered as a named group.
        """
        self._groups.enter(prefix, normalize_middleware(middleware), name)
        logger.debug(f"Entered group {self._groups.prefix!r} (depth {self._groups.depth})")
        try:
            yield self
        finally:
            self._groups.leave()

    def named_group(
        self,
        name: str,
        prefix: str = "",
        middleware: Optional[Union[MiddlewareLike, List[MiddlewareLike]]] = None,
    ) -> NamedGroup:
        """Register a named group outside any lexical group scope.

        Routes declared with group=name match under prefix, whether
        they were registered before or after this call.
        """
        return self.named_groups.register(name, prefix, normalize_middleware(middleware))

    def with_middleware(self, middleware: Union[MiddlewareLike, List[MiddlewareLike]]) -> "Router":
        """Add middleware to routes registered later in the current group."""
        self._groups.extend_middleware(normalize_middleware(middleware))
        return self

    # Middleware

    def use(self, middleware: MiddlewareLike) -> "Router":
        """Add global middleware, run before any group or route middleware."""
        self._global_middleware.extend(normalize_middleware(middleware))
        return self

    add_global_middleware = use

    def add_middleware(self, method: str, path: str, middleware: MiddlewareLike) -> "Router":
        """Append middleware to an existing route.

        path is relative to the current group prefix.

        Raises:
            RouteNotRegisteredError: no such route
        """
        full_path = self._groups.prefix + path
        for mw in normalize_middleware(middleware):
            self._table.add_middleware(method, full_path, mw)
        return self

    def global_middleware(self) -> List[Middleware]:
        return list(self._global_middleware)

    # Bulk registration

    def register(
        self,
        declarations: Iterable[RouteDeclaration],
        group: Optional[GroupDeclaration] = None,
    ) -> "Router":
        """Register a flat list of route declarations.

        Args:
            declarations: Routes with their handlers set
            group: Optional group applied around all of them
        """
        if group is not None:
            with self.group(group.prefix, group.middleware, group.name):
                return self.register(declarations)

        for declaration in declarations:
            self.add(
                declaration.methods,
                declaration.full_path,
                declaration.handler,
                name=declaration.name,
                group=declaration.group,
                middleware=declaration.middleware,
            )
        return self

    def register_class(self, controller: Any) -> "Router":
        """Register the @route methods of a controller class or instance.

        A class is instantiated once without arguments. Its @route_group
        declaration, if any, wraps every route.
        """
        instance = controller() if isinstance(controller, type) else controller
        cls = type(instance)
        group = group_of(cls) or GroupDeclaration()

        declarations = [
            RouteDeclaration(
                path=declaration.path,
                methods=declaration.methods,
                handler=MethodHandler(instance, attr_name),
                name=declaration.name,
                group=declaration.group,
                middleware=declaration.middleware,
                prefix=declaration.prefix,
            )
            for attr_name, declaration in routes_of(cls)
        ]
        logger.debug(f"Registering {len(declarations)} routes from {cls.__qualname__}")
        return self.register(declarations, group)

    def register_module(self, module: Union[str, ModuleType]) -> "Router":
        """Register every controller and @route function defined in a module."""
        if isinstance(module, str):
            try:
                module = importlib.import_module(module)
            except ImportError as e:
                raise RouteRegistrationError(f"Cannot import {module!r}: {e}") from e

        for attr in list(vars(module).values()):
            if getattr(attr, "__module__", None) != module.__name__:
                continue
            if is_controller(attr):
                self.register_class(attr)
            elif callable(attr) and not isinstance(attr, type) and getattr(attr, ROUTES_ATTR, None):
                self.register([
                    RouteDeclaration(
                        path=d.path,
                        methods=d.methods,
                        handler=FunctionHandler(attr),
                        name=d.name,
                        group=d.group,
                        middleware=d.middleware,
                        prefix=d.prefix,
                    )
                    for d in getattr(attr, ROUTES_ATTR)
                ])
        return self

    # Request time

    def match(self, method: str, path: str) -> RouteMatch:
        """Find the best route for a request.

        Raises:
            RouteNotFoundError: no route matches
        """
        return self._matcher.match(method, path)

    def execute(self, match: RouteMatch) -> Any:
        """Run a matched route's middleware chain and handler."""
        handler = match.handler
        if handler is None:
            raise InvalidHandlerError(f"Route {match.method} {match.path} has no handler")
        return MiddlewareChain(match.middleware).execute(handler.invoke, match.parameters)

    def dispatch(self, method: str, uri: str, base_path: Optional[str] = None) -> Any:
        """Match and execute a request URI.

        base_path defaults to the configured base path and is stripped
        from the front of the URI path.
        """
        if base_path is None:
            base_path = self.config.base_path
        path = request_path(uri, base_path)
        return self.execute(self.match(method, path))

    def url(self, name: str, params: Optional[dict] = None, **kwargs: Any) -> str:
        """Generate the path for a named route."""
        return self.named_routes.url(name, params, **kwargs)

    def get_named(self, name: str) -> Optional[NamedRoute]:
        return self.named_routes.get_by_name(name)

    def routes(self) -> List[RouteEntry]:
        """Get all registered routes."""
        return list(self._table)

    # Cache

    def enable_cache(self, cache_dir: str) -> "Router":
        """Enable the route cache in cache_dir."""
        self._cache = RouteCache()
        self._cache_dir = cache_dir
        return self

    def add_route_file(self, path: str) -> "Router":
        """Add a file whose changes invalidate the cache."""
        self._route_files.append(path)
        return self

    def save_cache(self) -> bool:
        """Write the current routes to the cache."""
        if self._cache is None or self._cache_dir is None:
            return False
        return self._cache.store(self._table, self._cache_dir, self.named_groups)

    def load_cached_routes(self) -> bool:
        """Load routes from the cache.

        Only loads into an empty router, and only when the cache is
        newer than every registered route file.

        Returns:
            True if routes were loaded from the cache
        """
        if self._cache is None or self._cache_dir is None:
            return False
        if self._table:
            return False
        if not self._cache.is_fresh(self._cache_dir, self._route_files):
            logger.info("Route cache missing or stale")
            return False

        data = self._cache.load(self._cache_dir)
        if not data or not data.get("routes"):
            return False

        # Resolve every record before touching the table
        groups = [load_group(record) for record in data.get("groups", [])]
        entries = [load_entry(record) for record in data["routes"]]

        added_names: List[str] = []
        try:
            for group in groups:
                self.named_groups.register(group["name"], group["prefix"], group["middleware"])
            for kwargs, pattern in entries:
                entry = self._table.add(pattern=pattern, **kwargs)
                if entry.name:
                    if entry.name not in self.named_routes:
                        added_names.append(entry.name)
                    self.named_routes.add_named(entry.name, entry.path, entry)
        except RoutingError as e:
            self._table.clear()
            self.named_groups.clear()
            for name in added_names:
                self.named_routes.remove(name)
            raise RouteCacheError(f"Cannot restore cached routes: {e}") from e

        logger.info(f"Loaded {len(self._table)} routes from cache")
        return True

    def clear_cache(self) -> bool:
        """Delete the cache file."""
        if self._cache is None or self._cache_dir is None:
            return False
        return self._cache.clear(self._cache_dir)

    def __len__(self) -> int:
        return len(self._table)


def _method_list(methods: Methods) -> List[str]:
    if isinstance(methods, str):
        return [methods]
    return list(methods)


__all__ = [
    "Router",
]
