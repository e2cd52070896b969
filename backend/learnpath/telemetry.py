"""In-process telemetry for cache and generation events.

Events are fanned out synchronously to registered listeners and written to the
``learnpath.telemetry`` logger as one JSON object per line. Failures are logged
louder than routine cache traffic.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Callable, Dict, List

from pydantic import BaseModel

logger = logging.getLogger("learnpath.telemetry")

_LOG_LEVELS: Dict[str, int] = {
    "cache_evicted": logging.DEBUG,
    "generation_cache_hit": logging.DEBUG,
    "cache_write_failed": logging.WARNING,
    "generation_failed": logging.WARNING,
    "generation_fallback_used": logging.WARNING,
}


@dataclass(frozen=True)
class TelemetryEvent:
    name: str
    payload: Dict[str, Any]
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)


Listener = Callable[[TelemetryEvent], None]

_listeners: List[Listener] = []
_lock = RLock()


def register_listener(listener: Listener) -> Callable[[], None]:
    """Subscribe ``listener``; the returned callable unsubscribes it."""
    with _lock:
        _listeners.append(listener)

    def unsubscribe() -> None:
        with _lock:
            if listener in _listeners:
                _listeners.remove(listener)

    return unsubscribe


def clear_listeners() -> None:
    with _lock:
        _listeners.clear()


def emit_event(name: str, **fields: Any) -> TelemetryEvent:
    event = TelemetryEvent(name=name, payload={key: _plain(value) for key, value in fields.items()})

    with _lock:
        listeners = tuple(_listeners)
    for listener in listeners:
        try:
            listener(event)
        except Exception:  # noqa: BLE001
            logger.exception("Telemetry listener failed for %s", name)

    level = _LOG_LEVELS.get(name, logging.INFO)
    if logger.isEnabledFor(level):
        logger.log(level, "TELEMETRY %s", json.dumps({"event": name, **event.payload}, default=str))
    return event


def _plain(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    return value


__all__ = [
    "TelemetryEvent",
    "clear_listeners",
    "emit_event",
    "register_listener",
]
