"""Logging Middleware - Routed call logging.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, List, Optional

from switchyard_core.middleware.base import Middleware, Next, Params

logger = logging.getLogger(__name__)


@dataclass
class LoggingConfig:
    """Logging middleware configuration."""

    log_params: bool = True
    log_result: bool = False
    redact_params: List[str] = field(default_factory=lambda: ["password", "token"])
    level: int = logging.INFO


class LoggingMiddleware(Middleware):
    """Logs each routed call with a short id and its duration.

    Failures raised further down the chain are logged and re-raised.
    """

    def __init__(self, config: Optional[LoggingConfig] = None):
        self.config = config or LoggingConfig()

    def handle(self, next_handler: Next, params: Params) -> Any:
        call_id = str(uuid.uuid4())[:8]
        start = time.time()

        log_parts = [f"[{call_id}] -->"]
        if self.config.log_params and params:
            log_parts.append(f"params={self._redact(params)}")
        logger.log(self.config.level, " ".join(log_parts))

        try:
            result = next_handler(params)
        except Exception as e:
            duration_ms = (time.time() - start) * 1000
            logger.log(
                self.config.level,
                f"[{call_id}] <-- {type(e).__name__}: {e} ({duration_ms:.2f}ms)",
            )
            raise

        duration_ms = (time.time() - start) * 1000
        if self.config.log_result:
            logger.log(self.config.level, f"[{call_id}] <-- {result!r} ({duration_ms:.2f}ms)")
        else:
            logger.log(self.config.level, f"[{call_id}] <-- ({duration_ms:.2f}ms)")
        return result

    def _redact(self, params: Params) -> Params:
        return {
            key: "***" if key in self.config.redact_params else value
            for key, value in params.items()
        }


__all__ = [
    "LoggingMiddleware",
    "LoggingConfig",
]
