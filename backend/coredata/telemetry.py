"""In-process telemetry fan-out for core data activity.

Every committed core data event is re-published here as a ``TelemetryEvent``.
Listeners run synchronously after the write; a listener that raises is logged
and skipped.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Callable, Dict, List

from pydantic import BaseModel

logger = logging.getLogger("coredata.telemetry")

Listener = Callable[["TelemetryEvent"], None]


@dataclass(frozen=True)
class TelemetryEvent:
    name: str
    payload: Dict[str, Any]
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_log_record(self) -> str:
        return json.dumps({"event": self.name, **self.payload}, default=str)


def _to_json_safe(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class _Hub:
    def __init__(self) -> None:
        self.listeners: List[Listener] = []
        self.counts: Counter[str] = Counter()
        self.lock = RLock()

    def publish(self, event: TelemetryEvent) -> None:
        with self.lock:
            self.counts[event.name] += 1
            targets = tuple(self.listeners)
        for listener in targets:
            try:
                listener(event)
            except Exception:  # noqa: BLE001
                logger.exception("Telemetry listener %r failed on %s", listener, event.name)


_hub = _Hub()


def register_listener(listener: Listener) -> None:
    with _hub.lock:
        _hub.listeners.append(listener)


def unregister_listener(listener: Listener) -> None:
    with _hub.lock:
        if listener in _hub.listeners:
            _hub.listeners.remove(listener)


def clear_listeners() -> None:
    """Forget every listener and reset the counters; tests call this between cases."""
    with _hub.lock:
        _hub.listeners.clear()
        _hub.counts.clear()


def event_counts() -> Dict[str, int]:
    """How many times each event name was emitted since the last reset."""
    with _hub.lock:
        return dict(_hub.counts)


def emit_event(name: str, **fields: Any) -> TelemetryEvent:
    event = TelemetryEvent(name=name, payload={key: _to_json_safe(value) for key, value in fields.items()})
    _hub.publish(event)
    logger.info("TELEMETRY %s", event.as_log_record())
    return event


__all__ = [
    "Listener",
    "TelemetryEvent",
    "clear_listeners",
    "emit_event",
    "event_counts",
    "register_listener",
    "unregister_listener",
]
