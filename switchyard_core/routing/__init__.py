"""Routing module - Route registration, matching and URL generation."""

from switchyard_core.routing.router import Router
from switchyard_core.routing.matcher import Matcher, RouteMatch
from switchyard_core.routing.table import RouteEntry, RouteTable
from switchyard_core.routing.pattern import CompiledPattern, PathCompiler, compile_pattern
from switchyard_core.routing.groups import GroupStack, NamedGroup, NamedGroupRegistry
from switchyard_core.routing.named import NamedRoute, NamedRouteRegistry
from switchyard_core.routing.declarations import route, route_group
from switchyard_core.routing.cache import RouteCache

__all__ = [
    "Router",
    "Matcher",
    "RouteMatch",
    "RouteEntry",
    "RouteTable",
    "CompiledPattern",
    "PathCompiler",
    "compile_pattern",
    "GroupStack",
    "NamedGroup",
    "NamedGroupRegistry",
    "NamedRoute",
    "NamedRouteRegistry",
    "route",
    "route_group",
    "RouteCache",
]
