"""Middleware Base - Middleware interface and chain execution.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from switchyard_core.errors import InvalidHandlerError, InvalidMiddlewareError
from switchyard_core.handlers import import_reference


Params = Dict[str, Any]
Next = Callable[[Params], Any]


class Middleware(ABC):
    """Abstract middleware base class.

    Middleware wraps the route handler. Each unit receives the next
    callable in the chain and the route parameters, and may forward
    them unchanged, forward modified parameters, return early without
    calling next, or raise.

    Pipeline:
    ┌────────────────────────────────────────────────────────────┐
    │                  Middleware Pipeline                        │
    │                                                             │
    │  params ──▶ global ──▶ group ──▶ route ──▶ Handler          │
    │                                               │             │
    │  result ◀── global ◀── group ◀── route ◀──────┘             │
    └────────────────────────────────────────────────────────────┘
    """

    @abstractmethod
    def handle(self, next_handler: Next, params: Params) -> Any:
        """Process a routed call.

        Args:
            next_handler: Invokes the rest of the chain
            params: Route parameters

        Returns:
            Result of next_handler, or a replacement result
        """
        pass


class CallableMiddleware(Middleware):
    """Adapts a plain fn(next, params) callable to the Middleware interface."""

    def __init__(self, func: Callable[[Next, Params], Any]):
        self.func = func

    def handle(self, next_handler: Next, params: Params) -> Any:
        return self.func(next_handler, params)

    def __repr__(self) -> str:
        return f"CallableMiddleware({getattr(self.func, '__qualname__', self.func)!r})"


MiddlewareLike = Union[Middleware, type, str, Callable[[Next, Params], Any]]


def normalize_middleware(
    middleware: Optional[Union[MiddlewareLike, Iterable[MiddlewareLike]]],
) -> List[Middleware]:
    """Normalise middleware values to Middleware instances.

    Accepts a single value or a list of: Middleware instances,
    Middleware subclasses (instantiated without arguments),
    "module:Class" references, or fn(next, params) callables.
    """
    if not middleware:
        return []
    if isinstance(middleware, (list, tuple)):
        items = list(middleware)
    else:
        items = [middleware]
    return [_normalize_one(item) for item in items]


def _normalize_one(item: Any) -> Middleware:
    if isinstance(item, Middleware):
        return item

    if isinstance(item, str):
        try:
            item = import_reference(item)
        except InvalidHandlerError as e:
            raise InvalidMiddlewareError(f"Middleware class not found: {e}") from e

    if isinstance(item, type):
        if not issubclass(item, Middleware):
            raise InvalidMiddlewareError(
                f"Middleware class must implement Middleware: {item.__qualname__}"
            )
        return item()

    if callable(item):
        return CallableMiddleware(item)

    raise InvalidMiddlewareError(f"Invalid middleware type: {type(item).__name__}")


class MiddlewareChain:
    """Onion-shaped chain of middleware around a handler."""

    def __init__(self, middleware: Optional[List[Middleware]] = None):
        self._middleware = list(middleware or [])

    def add(self, middleware: Middleware) -> "MiddlewareChain":
        """Add middleware to chain."""
        self._middleware.append(middleware)
        return self

    def remove(self, middleware: Middleware) -> bool:
        """Remove middleware from chain."""
        try:
            self._middleware.remove(middleware)
            return True
        except ValueError:
            return False

    def build(self, handler: Callable[[Params], Any]) -> Next:
        """Compose the chain right to left into a single callable."""
        call = handler
        for mw in reversed(self._middleware):
            call = _link(mw, call)
        return call

    def execute(self, handler: Callable[[Params], Any], params: Optional[Params] = None) -> Any:
        """Run params through every middleware, then the handler."""
        return self.build(handler)(dict(params or {}))

    @property
    def middleware(self) -> List[Middleware]:
        return list(self._middleware)

    def __iter__(self):
        return iter(self._middleware)

    def __len__(self) -> int:
        return len(self._middleware)


def _link(mw: Middleware, next_handler: Next) -> Next:
    def call(params: Params) -> Any:
        return mw.handle(next_handler, params)
    return call


class PassthroughMiddleware(Middleware):
    """Middleware that does nothing (for testing)."""

    def handle(self, next_handler: Next, params: Params) -> Any:
        return next_handler(params)


__all__ = [
    "Middleware",
    "CallableMiddleware",
    "MiddlewareChain",
    "MiddlewareLike",
    "PassthroughMiddleware",
    "normalize_middleware",
]
