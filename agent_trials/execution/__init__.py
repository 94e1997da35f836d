"""
Execution layer for Agent Trials.

Handles:
- Agent records and start-up (registry, supervisor)
- HTTP transport to agents
- Dispatching messages and consuming streamed replies
- Timeout management
- Transcript assembly
"""

from .agents import (
    AgentFeatures,
    AgentRecord,
    AgentRegistry,
    InMemoryAgentRegistry,
    ProcessSupervisor,
    MockSupervisor,
    StartResult,
)
from .supervisor import HealthCheckSupervisor
from .transport import AgentTransport, HttpAgentTransport
from .timeout_manager import TimeoutManager
from .stream_parser import ParsedStream, StreamParser, consume_stream
from .transcript import TranscriptResult, assemble_transcript
from .dispatcher import Dispatcher, DispatchResult, STREAM_SAFETY_TIMEOUT_SECONDS

__all__ = [
    # Agents
    "AgentFeatures",
    "AgentRecord",
    "AgentRegistry",
    "InMemoryAgentRegistry",
    "ProcessSupervisor",
    "MockSupervisor",
    "StartResult",
    "HealthCheckSupervisor",
    # Transport
    "AgentTransport",
    "HttpAgentTransport",
    # Timeout
    "TimeoutManager",
    # Streams
    "ParsedStream",
    "StreamParser",
    "consume_stream",
    # Transcript
    "TranscriptResult",
    "assemble_transcript",
    # Dispatch
    "Dispatcher",
    "DispatchResult",
    "STREAM_SAFETY_TIMEOUT_SECONDS",
]
