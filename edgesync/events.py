from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from threading import Lock
from typing import Any

import structlog

logger = structlog.get_logger("edgesync")

MAX_EVENTS = 500

_LEVELS = {
    "DEBUG": "debug",
    "INFO": "info",
    "WARN": "warning",
    "WARNING": "warning",
    "ERROR": "error",
    "CRITICAL": "critical",
}

_events: deque[dict[str, Any]] = deque(maxlen=MAX_EVENTS)
_lock = Lock()


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def log_event(level: str, message: str, service_name: str | None = None, **fields: Any) -> None:
    """Report something through the log channel and keep it for the status API.

    DEBUG events are only logged, not retained.
    """
    level = level.upper()
    method = _LEVELS.get(level, "info")
    context = {k: v for k, v in fields.items() if v is not None}
    if service_name:
        context["service"] = service_name
    getattr(logger, method)(message, **context)

    if method == "debug":
        return
    with _lock:
        _events.append(
            {
                "ts": utc_now(),
                "level": "WARN" if method == "warning" else level,
                "service_name": service_name,
                "message": message,
                "context": {k: str(v) for k, v in context.items() if k != "service"},
            }
        )


def latest_events(limit: int = 100) -> list[dict[str, Any]]:
    with _lock:
        items = list(_events)
    items.reverse()
    return items[: max(0, limit)]


def clear_events() -> None:
    with _lock:
        _events.clear()
