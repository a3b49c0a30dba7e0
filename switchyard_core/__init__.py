"""Switchyard - HTTP Request Router.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

Switchyard maps (method, path) pairs to handlers with:
- Path templates with parameters, regex constraints and optional segments
- Most-specific-route-wins matching
- Nested route groups sharing a prefix and middleware
- Named groups resolved at match time
- Onion-style global, group and route middleware
- Named routes and reverse URL generation
- Declarative controllers and a JSON route cache

Architecture Overview:
┌─────────────────────────────────────────────────────────────────────────────┐
│                              Switchyard                                      │
├─────────────────────────────────────────────────────────────────────────────┤
│                                                                              │
│  ┌───────────────────────────────────────────────────────────────────────┐  │
│  │                         Request Pipeline                               │  │
│  │  (method, uri) ──▶ Matcher ──▶ Middleware ──▶ Handler ──▶ result      │  │
│  └───────────────────────────────────────────────────────────────────────┘  │
│                                                                              │
│  ┌─────────────────┐  ┌─────────────────┐  ┌─────────────────────────────┐ │
│  │   Registration  │  │    Matching     │  │        Middleware           │ │
│  │                 │  │                 │  │                             │ │
│  │ - Route table   │  │ - Specificity   │  │ - Global                    │ │
│  │ - Groups        │  │ - HEAD -> GET   │  │ - Group                     │ │
│  │ - Declarations  │  │ - Named groups  │  │ - Route                     │ │
│  └─────────────────┘  └─────────────────┘  └─────────────────────────────┘ │
│                                                                              │
│  ┌─────────────────┐  ┌─────────────────┐  ┌─────────────────────────────┐ │
│  │    Patterns     │  │  Named Routes   │  │        Route Cache          │ │
│  │                 │  │                 │  │                             │ │
│  │ - {param}       │  │ - Names         │  │ - JSON descriptors          │ │
│  │ - {param:regex} │  │ - url()         │  │ - Freshness check           │ │
│  │ - {param?}      │  │                 │  │                             │ │
│  └─────────────────┘  └─────────────────┘  └─────────────────────────────┘ │
│                                                                              │
└─────────────────────────────────────────────────────────────────────────────┘

Request Flow:
1. dispatch() strips the query string and base path from the URI
2. Matcher picks the most specific route for the method
3. Named groups are tried when no full template matches
4. Middleware runs global -> group -> route around the handler
5. The handler result flows back out through the middleware

Usage:
    from switchyard_core import Router, LoggingMiddleware

    router = Router()
    router.use(LoggingMiddleware())

    with router.group(prefix="/api", middleware=[AuthMiddleware]):
        router.get("/users/{id:\\d+}", show_user, name="users.show")

    router.dispatch("GET", "/api/users/42?tab=posts")
    router.url("users.show", id=42)  # "/api/users/42"
"""

__version__ = "0.1.0"
__author__ = "BlackRoad OS, Inc."

# Errors
from switchyard_core.errors import (
    RoutingError,
    RouteRegistrationError,
    InvalidPatternError,
    DuplicateRouteNameError,
    InvalidMiddlewareError,
    InvalidHandlerError,
    RouteNotFoundError,
    RouteNotRegisteredError,
    RouteNameNotFoundError,
    MissingParameterError,
    RouteCacheError,
)

# Handlers
from switchyard_core.handlers import Handler, FunctionHandler, MethodHandler

# Routing
from switchyard_core.routing.router import Router
from switchyard_core.routing.matcher import RouteMatch
from switchyard_core.routing.table import RouteEntry
from switchyard_core.routing.pattern import CompiledPattern, compile_pattern
from switchyard_core.routing.named import NamedRouteRegistry
from switchyard_core.routing.declarations import route, route_group
from switchyard_core.routing.cache import RouteCache

# Middleware
from switchyard_core.middleware.base import Middleware, MiddlewareChain
from switchyard_core.middleware.logging import LoggingMiddleware
from switchyard_core.middleware.auth import AuthMiddleware, UnauthorizedError

# Utils
from switchyard_core.utils.config import RouterConfig, load_config

__all__ = [
    # Version
    "__version__",
    # Errors
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
    # Handlers
    "Handler",
    "FunctionHandler",
    "MethodHandler",
    # Routing
    "Router",
    "RouteMatch",
    "RouteEntry",
    "CompiledPattern",
    "compile_pattern",
    "NamedRouteRegistry",
    "route",
    "route_group",
    "RouteCache",
    # Middleware
    "Middleware",
    "MiddlewareChain",
    "LoggingMiddleware",
    "AuthMiddleware",
    "UnauthorizedError",
    # Utils
    "RouterConfig",
    "load_config",
]
