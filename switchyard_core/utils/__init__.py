"""Utils module - Configuration and path helpers."""

from switchyard_core.utils.config import (
    RouterConfig,
    load_config,
)
from switchyard_core.utils.helpers import (
    normalize_path,
    request_path,
    strip_base_path,
)

__all__ = [
    "RouterConfig",
    "load_config",
    "normalize_path",
    "request_path",
    "strip_base_path",
]
