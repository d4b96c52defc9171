"""Per-request timing log lines."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger("evcars.performance")

SLOW_REQUEST_MS = 1000


def elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def log_performance(operation: str, start: float, slow_ms: int = SLOW_REQUEST_MS, **extra: Any) -> float:
    """Log duration of `operation` since `start` (a time.perf_counter() value).

    Emits a WARNING when the duration exceeds `slow_ms`, INFO otherwise.
    Returns the duration in milliseconds.
    """
    duration = elapsed_ms(start)
    payload: dict[str, Any] = {
        "operation": operation,
        "duration_ms": duration,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **extra,
    }
    if duration > slow_ms:
        logger.warning("Slow query detected", extra=payload)
    else:
        logger.info("Request completed", extra=payload)
    return duration
