"""
Progress telemetry for test runs.

Events are broadcast fire-and-forget to any number of subscribers. A run's
events share its id as ``trace_id`` so consumers can rebuild per-run
timelines even when several runs interleave on one broadcaster.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
import json
import logging
import threading

from ..models.test_case import generate_id

logger = logging.getLogger(__name__)


@dataclass
class TelemetryEvent:
    """A single progress record."""

    type: str
    trace_id: str
    agent_id: str = "system"
    level: str = "info"
    category: str = "test"
    data: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=generate_id)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "timestamp": self.timestamp,
            "category": self.category,
            "type": self.type,
            "level": self.level,
            "trace_id": self.trace_id,
            "data": self.data,
        }


class TelemetrySink(ABC):
    """Anything that accepts batches of events."""

    @abstractmethod
    def broadcast(self, events: List[TelemetryEvent]) -> None:
        """Publish events. Must not raise."""


class TelemetryBroadcaster(TelemetrySink):
    """Fans events out to subscribers.

    Safe to publish from several runs at once. A subscriber that raises is
    logged and skipped; the others still receive the events.

    Usage:
        broadcaster = TelemetryBroadcaster()
        broadcaster.subscribe(lambda events: print(events))
    """

    def __init__(self):
        self._subscribers: List[Callable[[List[TelemetryEvent]], Any]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[List[TelemetryEvent]], Any]) -> Callable[[], None]:
        """Register a subscriber. Returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def broadcast(self, events: List[TelemetryEvent]) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(events)
            except Exception as e:
                logger.warning(f"Telemetry subscriber failed: {e}")


class JsonlTelemetrySink(TelemetrySink):
    """Appends events to a daily JSONL file under ``log_dir``."""

    def __init__(self, log_dir: Path):
        self.log_dir = Path(log_dir)
        self._lock = threading.Lock()

    def log_file(self, day: Optional[datetime] = None) -> Path:
        day = day or datetime.now()
        return self.log_dir / f"{day.strftime('%Y-%m-%d')}.jsonl"

    def broadcast(self, events: List[TelemetryEvent]) -> None:
        with self._lock:
            try:
                self.log_dir.mkdir(parents=True, exist_ok=True)
                with open(self.log_file(), "a") as f:
                    for event in events:
                        f.write(json.dumps(event.to_dict()) + "\n")
            except OSError as e:
                logger.warning(f"Failed to write telemetry: {e}")


class CollectingSink(TelemetrySink):
    """Keeps every event in memory."""

    def __init__(self):
        self.events: List[TelemetryEvent] = []
        self._lock = threading.Lock()

    def broadcast(self, events: List[TelemetryEvent]) -> None:
        with self._lock:
            self.events.extend(events)

    def for_trace(self, trace_id: str) -> List[TelemetryEvent]:
        with self._lock:
            return [e for e in self.events if e.trace_id == trace_id]
