"""Configuration utilities.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="RouterConfig")


@dataclass
class RouterConfig:
    """Router configuration."""

    # Route cache
    cache_enabled: bool = False
    cache_dir: str = ""
    route_files: List[str] = field(default_factory=list)

    # Request paths
    base_path: str = ""

    # Logging
    log_level: str = "INFO"
    debug: bool = False

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        """Create config from dictionary."""
        # Filter to only valid fields
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        if isinstance(filtered.get("route_files"), str):
            filtered["route_files"] = [
                p.strip() for p in filtered["route_files"].split(",") if p.strip()
            ]
        return cls(**filtered)

    @classmethod
    def from_json(cls: Type[T], path: str) -> T:
        """Load config from JSON file."""
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_yaml(cls: Type[T], path: str) -> T:
        """Load config from YAML file."""
        try:
            import yaml
        except ImportError:
            raise ImportError("PyYAML required for YAML config")
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_env(cls: Type[T], prefix: str = "SWITCHYARD_") -> T:
        """Load config from environment variables.

        SWITCHYARD_CACHE_ENABLED=1 -> cache_enabled=True,
        SWITCHYARD_ROUTE_FILES=a.py,b.py -> route_files=["a.py", "b.py"].
        """
        bool_fields = {
            f.name for f in cls.__dataclass_fields__.values() if f.type in (bool, "bool")
        }
        data: Dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(prefix):
                continue
            config_key = key[len(prefix):].lower()
            if config_key in bool_fields:
                data[config_key] = value.strip().lower() in ("1", "true", "yes", "on")
            else:
                data[config_key] = value

        return cls.from_dict(data)

    @property
    def level(self) -> int:
        """Numeric logging level."""
        if self.debug:
            return logging.DEBUG
        return getattr(logging, str(self.log_level).upper(), logging.INFO)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result = {}
        for field_name in self.__dataclass_fields__:
            result[field_name] = getattr(self, field_name)
        return result

    def merge(self, other: Dict[str, Any]) -> "RouterConfig":
        """Merge explicit values over this config (other takes precedence)."""
        data = self.to_dict()
        data.update(other)
        return type(self).from_dict(data)


def _explicit_env(prefix: str) -> Dict[str, Any]:
    """Only the fields actually set in the environment."""
    keys = {
        key[len(prefix):].lower()
        for key in os.environ
        if key.startswith(prefix)
    }
    env_config = RouterConfig.from_env(prefix).to_dict()
    return {k: v for k, v in env_config.items() if k in keys}


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "SWITCHYARD_",
) -> RouterConfig:
    """Load configuration from multiple sources.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (if provided)
    3. Defaults
    """
    config = RouterConfig()

    # Load from file if provided
    if path:
        path_obj = Path(path)
        if path_obj.exists():
            if path.endswith(".json"):
                config = RouterConfig.from_json(path)
            elif path.endswith((".yaml", ".yml")):
                config = RouterConfig.from_yaml(path)
            else:
                logger.warning(f"Unknown config format: {path}")
        else:
            logger.warning(f"Config file not found: {path}")

    # Override with environment variables
    return config.merge(_explicit_env(env_prefix))


__all__ = [
    "RouterConfig",
    "load_config",
]
