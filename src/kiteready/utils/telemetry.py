"""Telemetry sinks for readiness metrics.

Recording is fire-and-forget: a sink must never raise into the readiness
workflow, so both implementations swallow and log their own failures.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Mapping, Protocol

__all__ = [
    "TelemetryClient",
    "TelemetryEvent",
    "TelemetrySink",
    "InMemoryTelemetrySink",
    "telemetry_enabled",
]

LOGGER = logging.getLogger(__name__)
_DEFAULT_TELEMETRY_DIR = Path.home() / ".kiteready" / "telemetry"
_TRUE_VALUES = {"1", "true", "yes", "on"}


class TelemetrySink(Protocol):
    """Anything that accepts named metric events."""

    def record(self, name: str, attributes: Mapping[str, Any] | None = None) -> None:  # pragma: no cover - protocol stub
        ...


@dataclass(slots=True)
class TelemetryEvent:
    """A single recorded event prior to serialization."""

    name: str
    attributes: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def serialize(self, session_id: str) -> str:
        payload = {
            "session_id": session_id,
            "name": self.name,
            "timestamp": self.timestamp.isoformat(),
            "attributes": self.attributes,
        }
        return json.dumps(payload, default=_json_default, ensure_ascii=False)


@dataclass(slots=True)
class TelemetryClient:
    """Buffers events and appends them as JSONL to disk when enabled."""

    enabled: bool = False
    storage_dir: Path | str | None = None
    max_buffer: int = 16
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    _buffer: list[TelemetryEvent] = field(default_factory=list, init=False, repr=False)

    def record(self, name: str, attributes: Mapping[str, Any] | None = None) -> None:
        if not self.enabled:
            return
        try:
            self._buffer.append(TelemetryEvent(name=name, attributes=_sanitize(attributes)))
            if len(self._buffer) >= self.max_buffer:
                self.flush()
        except Exception:
            LOGGER.debug("Dropping telemetry event %r", name, exc_info=True)

    def flush(self) -> Path | None:
        """Write buffered events and clear the buffer; returns the file written."""

        if not self.enabled or not self._buffer:
            return None

        target_dir = _resolve_storage_dir(self.storage_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
        log_path = target_dir / "telemetry.jsonl"
        with log_path.open("a", encoding="utf-8") as handle:
            for event in self._buffer:
                handle.write(event.serialize(self.session_id))
                handle.write("\n")
        self._buffer.clear()
        return log_path

    def pending_events(self) -> int:
        return len(self._buffer)


class InMemoryTelemetrySink:
    """Ring buffer sink used by tests and for local inspection."""

    def __init__(self, capacity: int = 500) -> None:
        self._events: deque[TelemetryEvent] = deque(maxlen=max(10, capacity))
        self._lock = Lock()

    def record(self, name: str, attributes: Mapping[str, Any] | None = None) -> None:
        with self._lock:
            self._events.append(TelemetryEvent(name=name, attributes=_sanitize(attributes)))

    @property
    def events(self) -> list[TelemetryEvent]:
        with self._lock:
            return list(self._events)

    @property
    def names(self) -> list[str]:
        return [event.name for event in self.events]

    def count(self, name: str) -> int:
        return sum(1 for event in self.events if event.name == name)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


def telemetry_enabled(settings: Any | None = None) -> bool:
    """Return ``True`` if telemetry should be written for this session."""

    env_value = os.environ.get("KITEREADY_TELEMETRY")
    if env_value is not None:
        return env_value.strip().lower() in _TRUE_VALUES
    if settings is None:
        return False
    return bool(getattr(settings, "telemetry_opt_in", False))


def _sanitize(attributes: Mapping[str, Any] | None) -> dict[str, Any]:
    sanitized: dict[str, Any] = {}
    for key, value in (attributes or {}).items():
        if isinstance(value, Path):
            sanitized[key] = str(value)
        elif isinstance(value, datetime):
            sanitized[key] = value.isoformat()
        else:
            sanitized[key] = value
    return sanitized


def _json_default(value: Any) -> Any:
    if isinstance(value, (Path, datetime)):
        return str(value)
    return repr(value)


def _resolve_storage_dir(storage_dir: Path | str | None) -> Path:
    env_override = os.environ.get("KITEREADY_TELEMETRY_DIR")
    return Path(storage_dir or env_override or _DEFAULT_TELEMETRY_DIR).expanduser()
