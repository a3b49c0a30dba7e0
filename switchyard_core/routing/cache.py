"""Route Cache - Persist compiled routes between process starts.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

Only data is cached: templates, compiled pattern descriptions, group
affiliations, route names, and "module:qualname" references for
handlers and middleware. References are re-resolved to live objects
when the cache is loaded.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from switchyard_core.errors import RouteCacheError, RoutingError
from switchyard_core.handlers import import_reference, reference_for, resolve_handler
from switchyard_core.middleware.base import CallableMiddleware, Middleware, normalize_middleware
from switchyard_core.routing.groups import NamedGroup
from switchyard_core.routing.pattern import CompiledPattern
from switchyard_core.routing.table import RouteEntry, normalize_method

logger = logging.getLogger(__name__)

CACHE_FILE_PREFIX = "switchyard_routes_"
CACHE_VERSION = 1


class RouteCache:
    """JSON file cache for route descriptors.

    Usage:
        cache = RouteCache()
        cache.store(router.routes(), "/var/cache/app", router.named_groups)

        records = cache.load("/var/cache/app")
    """

    def cache_file(self, cache_dir: str) -> Path:
        """Cache file path for this installation."""
        digest = hashlib.md5(str(Path(__file__).resolve().parent).encode()).hexdigest()
        return Path(cache_dir) / f"{CACHE_FILE_PREFIX}{digest}.json"

    def store(
        self,
        routes: Iterable[RouteEntry],
        cache_dir: str,
        named_groups: Iterable[NamedGroup] = (),
    ) -> bool:
        """Write routes to the cache.

        Raises:
            RouteCacheError: a handler or middleware has no importable
                reference (lambdas, closures, local classes)
        """
        data = {
            "version": CACHE_VERSION,
            "routes": [dump_entry(entry) for entry in routes],
            "groups": [dump_group(group) for group in named_groups],
        }

        path = self.cache_file(cache_dir)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, indent=2))
        except OSError as e:
            raise RouteCacheError(f"Cache directory {cache_dir} could not be written: {e}") from e

        logger.info(f"Stored {len(data['routes'])} routes in {path}")
        return True

    def load(self, cache_dir: str) -> Optional[Dict[str, Any]]:
        """Read cached data, or None if there is no usable cache."""
        path = self.cache_file(cache_dir)
        if not path.exists():
            return None

        try:
            data = json.loads(path.read_text())
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable route cache {path}: {e}")
            return None

        if not isinstance(data, dict) or data.get("version") != CACHE_VERSION:
            logger.warning(f"Ignoring route cache {path} with unexpected format")
            return None
        return data

    def is_fresh(self, cache_dir: str, route_files: Iterable[str]) -> bool:
        """True if the cache exists and is newer than every route file."""
        path = self.cache_file(cache_dir)
        if not path.exists():
            return False

        cache_time = path.stat().st_mtime
        for file in route_files:
            file_path = Path(file)
            if not file_path.exists():
                continue
            if file_path.stat().st_mtime > cache_time:
                return False
        return True

    def clear(self, cache_dir: str) -> bool:
        """Delete the cache file."""
        path = self.cache_file(cache_dir)
        if path.exists():
            path.unlink()
        return True


def _middleware_reference(mw: Middleware) -> Dict[str, Any]:
    """Reference plus constructor state for a middleware instance.

    State is stored only when it differs from a no-argument instance of
    the same class, and must survive a JSON round trip unchanged.
    """
    if isinstance(mw, CallableMiddleware):
        ref = reference_for(mw.func)
        if ref is None:
            raise RouteCacheError(f"Middleware {mw!r} has no importable reference")
        return {"kind": "callable", "ref": ref}

    cls = type(mw)
    ref = reference_for(cls)
    if ref is None:
        raise RouteCacheError(f"Middleware {mw!r} has no importable reference")

    state = dict(getattr(mw, "__dict__", {}))
    try:
        default = getattr(cls(), "__dict__", {})
    except TypeError:
        default = None
    if default == state:
        return {"kind": "class", "ref": ref}

    try:
        restorable = json.loads(json.dumps(state)) == state
    except (TypeError, ValueError):
        restorable = False
    if not restorable:
        raise RouteCacheError(
            f"Middleware {mw!r} has constructor state that cannot be cached"
        )
    return {"kind": "class", "ref": ref, "state": state}


def _load_middleware(records: List[Dict[str, Any]]) -> List[Middleware]:
    middleware: List[Middleware] = []
    for record in records:
        if record.get("kind") == "callable":
            middleware.append(CallableMiddleware(import_reference(record["ref"])))
        elif "state" in record:
            middleware.append(_restore_middleware(record["ref"], record["state"]))
        else:
            middleware.extend(normalize_middleware(record["ref"]))
    return middleware


def _restore_middleware(ref: str, state: Dict[str, Any]) -> Middleware:
    cls = import_reference(ref)
    if not (isinstance(cls, type) and issubclass(cls, Middleware)):
        raise RouteCacheError(f"Cached middleware {ref!r} is not a Middleware class")
    mw = cls.__new__(cls)
    mw.__dict__.update(state)
    return mw


def dump_entry(entry: RouteEntry) -> Dict[str, Any]:
    """Data-only form of a route entry."""
    handler_ref = None
    if entry.handler is not None:
        handler_ref = entry.handler.reference
        if handler_ref is None:
            raise RouteCacheError(
                f"Cannot cache route {entry.method} {entry.path}: "
                f"handler has no importable reference"
            )

    return {
        "method": entry.method,
        "path": entry.path,
        "local_path": entry.local_path,
        "group": entry.group,
        "name": entry.name,
        "handler": handler_ref,
        "middleware": [_middleware_reference(mw) for mw in entry.middleware],
        "pattern": entry.pattern.to_dict(),
    }


def dump_group(group: NamedGroup) -> Dict[str, Any]:
    return {
        "name": group.name,
        "prefix": group.prefix,
        "middleware": [_middleware_reference(mw) for mw in group.middleware],
    }


def load_entry(record: Dict[str, Any]) -> Tuple[Dict[str, Any], CompiledPattern]:
    """Resolve a cached record into RouteTable.add() arguments."""
    try:
        handler = resolve_handler(record["handler"]) if record.get("handler") else None
        kwargs = {
            "method": normalize_method(record["method"]),
            "path": record["path"],
            "handler": handler,
            "middleware": _load_middleware(record.get("middleware", [])),
            "group": record.get("group"),
            "local_path": record.get("local_path"),
            "name": record.get("name"),
        }
        pattern = CompiledPattern.from_dict(record["pattern"])
    except (KeyError, TypeError, RoutingError) as e:
        raise RouteCacheError(f"Cannot restore cached route {record!r}: {e}") from e
    return kwargs, pattern


def load_group(record: Dict[str, Any]) -> Dict[str, Any]:
    try:
        return {
            "name": record["name"],
            "prefix": record.get("prefix", ""),
            "middleware": _load_middleware(record.get("middleware", [])),
        }
    except (KeyError, TypeError, RoutingError) as e:
        raise RouteCacheError(f"Cannot restore cached group {record!r}: {e}") from e


__all__ = [
    "CACHE_FILE_PREFIX",
    "RouteCache",
    "dump_entry",
    "dump_group",
    "load_entry",
    "load_group",
]
