"""
Orchestration layer for Agent Trials.

Handles:
- Running test cases (main runner)
- Run lifecycle recording
- Progress telemetry
"""

from .runner import TestRunner
from .recorder import RunRecorder
from .telemetry import (
    TelemetryEvent,
    TelemetrySink,
    TelemetryBroadcaster,
    JsonlTelemetrySink,
    CollectingSink,
)

__all__ = [
    "TestRunner",
    "RunRecorder",
    "TelemetryEvent",
    "TelemetrySink",
    "TelemetryBroadcaster",
    "JsonlTelemetrySink",
    "CollectingSink",
]
