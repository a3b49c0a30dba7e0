"""Handlers - Normalisation and invocation of route handlers.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

Handlers may be registered as:
- a plain function or any callable object
- a bound method, or an (owner, "method_name") pair where owner is an
  instance or a class (classes are instantiated once, when the handler
  is created)
- a "module:qualname" string, resolved with importlib
"""

from __future__ import annotations

import importlib
import inspect
import logging
import sys
import types
import typing
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from switchyard_core.errors import InvalidHandlerError

logger = logging.getLogger(__name__)

_COERCIBLE = (int, float, str)
_UNION_TYPES = tuple(t for t in (Union, getattr(types, "UnionType", None)) if t is not None)
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def import_reference(reference: str) -> Any:
    """Resolve a "module:qualname" reference to a live object."""
    if ":" not in reference:
        raise InvalidHandlerError(f"Reference must look like 'module:qualname': {reference!r}")

    module_name, qualname = reference.split(":", 1)
    module = sys.modules.get(module_name)
    if module is None:
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise InvalidHandlerError(f"Cannot import module for {reference!r}: {e}") from e

    target: Any = module
    for attr in qualname.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError as e:
            raise InvalidHandlerError(f"Cannot resolve {reference!r}: {e}") from e
    return target


def reference_for(obj: Any) -> Optional[str]:
    """Return a "module:qualname" reference for obj, or None if it has none."""
    module = getattr(obj, "__module__", None)
    qualname = getattr(obj, "__qualname__", None)
    if not module or not qualname or "<" in qualname:
        return None
    return f"{module}:{qualname}"


class Handler(ABC):
    """Uniform invocable wrapper around a route handler."""

    @abstractmethod
    def resolve(self) -> Callable[..., Any]:
        """Return the live callable."""
        pass

    @property
    @abstractmethod
    def reference(self) -> Optional[str]:
        """Stable importable identifier, None for anonymous callables."""
        pass

    def invoke(self, params: Mapping[str, Any]) -> Any:
        """Call the handler with route parameters.

        Handlers taking one positional argument that is not a route
        parameter receive the whole parameter dict. Handlers declaring
        route parameter names receive them as keyword arguments, coerced
        to the annotated type where possible.
        """
        func = self.resolve()
        args, kwargs = bind_arguments(func, params)
        return func(*args, **kwargs)

    def __call__(self, params: Mapping[str, Any]) -> Any:
        return self.invoke(params)


class FunctionHandler(Handler):
    """Handler backed by a plain callable."""

    def __init__(self, func: Callable[..., Any]):
        self.func = func

    def resolve(self) -> Callable[..., Any]:
        return self.func

    @property
    def reference(self) -> Optional[str]:
        return reference_for(self.func)

    def __repr__(self) -> str:
        return f"FunctionHandler({getattr(self.func, '__qualname__', self.func)!r})"


class MethodHandler(Handler):
    """Handler backed by a method on an owner instance or class."""

    def __init__(self, owner: Any, method_name: str):
        self.owner = owner
        self.method_name = method_name
        # Classes are instantiated once, at registration
        if isinstance(owner, type):
            try:
                self.instance = owner()
            except TypeError as e:
                raise InvalidHandlerError(
                    f"Cannot instantiate {owner.__qualname__} without arguments: {e}"
                ) from e
        else:
            self.instance = owner

    @property
    def owner_class(self) -> type:
        return self.owner if isinstance(self.owner, type) else type(self.owner)

    def resolve(self) -> Callable[..., Any]:
        return getattr(self.instance, self.method_name)

    @property
    def reference(self) -> Optional[str]:
        owner_ref = reference_for(self.owner_class)
        if owner_ref is None:
            return None
        return f"{owner_ref}.{self.method_name}"

    def __repr__(self) -> str:
        return f"MethodHandler({self.owner_class.__name__}.{self.method_name})"


HandlerLike = Union[Handler, Callable[..., Any], Tuple[Any, str], str]


def resolve_handler(value: HandlerLike) -> Handler:
    """Normalise a handler value into a Handler."""
    if isinstance(value, Handler):
        return value

    if isinstance(value, str):
        return _handler_from_reference(value)

    if isinstance(value, tuple):
        if len(value) != 2 or not isinstance(value[1], str):
            raise InvalidHandlerError(f"Handler tuple must be (owner, 'method'): {value!r}")
        owner, method_name = value
        if not callable(getattr(owner, method_name, None)):
            raise InvalidHandlerError(f"{owner!r} has no callable {method_name!r}")
        return MethodHandler(owner, method_name)

    if inspect.ismethod(value) and not isinstance(value.__self__, type):
        return MethodHandler(value.__self__, value.__name__)

    if callable(value):
        return FunctionHandler(value)

    raise InvalidHandlerError(f"Invalid handler type: {type(value).__name__}")


def _handler_from_reference(reference: str) -> Handler:
    module_name, _, qualname = reference.partition(":")
    owner_path, _, method_name = qualname.rpartition(".")

    if owner_path:
        owner = import_reference(f"{module_name}:{owner_path}")
        if isinstance(owner, type):
            if not callable(getattr(owner, method_name, None)):
                raise InvalidHandlerError(f"{owner.__name__} has no callable {method_name!r}")
            return MethodHandler(owner, method_name)

    target = import_reference(reference)
    if not callable(target):
        raise InvalidHandlerError(f"Reference is not callable: {reference!r}")
    return FunctionHandler(target)


def bind_arguments(
    func: Callable[..., Any],
    params: Mapping[str, Any],
) -> Tuple[Tuple[Any, ...], Dict[str, Any]]:
    """Work out how to pass route parameters to func."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return (dict(params),), {}

    parameters = list(signature.parameters.values())
    if not parameters:
        return (), {}

    accepts_kwargs = any(p.kind is p.VAR_KEYWORD for p in parameters)
    named = [
        p for p in parameters
        if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY) and p.name in params
    ]

    if not named and not accepts_kwargs:
        return (dict(params),), {}

    hints = _type_hints(func)
    kwargs: Dict[str, Any] = {}
    for p in named:
        kwargs[p.name] = coerce(params[p.name], hints.get(p.name, p.annotation))
    if accepts_kwargs:
        for key, value in params.items():
            kwargs.setdefault(key, value)
    return (), kwargs


def _type_hints(func: Callable[..., Any]) -> Dict[str, Any]:
    target = func.__call__ if not inspect.isroutine(func) and hasattr(func, "__call__") else func
    try:
        return typing.get_type_hints(target)
    except Exception:
        # Unresolvable forward references; fall back to raw annotations
        return {}


def coerce(value: Any, annotation: Any) -> Any:
    """Best-effort conversion of a path value to an annotated type."""
    if value is None or annotation is inspect.Parameter.empty:
        return value

    if typing.get_origin(annotation) in _UNION_TYPES:
        candidates = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(candidates) != 1:
            return value
        annotation = candidates[0]

    if not isinstance(value, str):
        return value

    if annotation is bool:
        lowered = value.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        return value

    if annotation in _COERCIBLE:
        try:
            return annotation(value)
        except ValueError:
            return value

    return value


__all__ = [
    "Handler",
    "FunctionHandler",
    "MethodHandler",
    "HandlerLike",
    "resolve_handler",
    "import_reference",
    "reference_for",
    "bind_arguments",
    "coerce",
]
