"""
Transcript assembly.

The agent's own thread history is authoritative. When it is unavailable
the conversation is rebuilt from the streamed content fragments.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import json

from .stream_parser import ParsedStream

SOURCE_THREAD = "thread"
SOURCE_STREAM = "stream"
SOURCE_EMPTY = "empty"


@dataclass
class TranscriptResult:
    """Assembled transcript plus where it came from.

    ``fallback_reason`` explains why the thread history was not used.
    """

    messages: List[Dict[str, Any]] = field(default_factory=list)
    source: str = SOURCE_EMPTY
    fallback_reason: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.messages

    def serialize(self) -> str:
        """JSON form stored as TestRun.agent_response."""
        return json.dumps(self.messages, indent=2)


def assemble_transcript(
    parsed: ParsedStream,
    input_message: str,
    thread_messages: Optional[List[Dict[str, Any]]] = None,
) -> TranscriptResult:
    """Build the transcript the judge will grade.

    Args:
        parsed: Result of consuming the chat stream
        input_message: The message that was sent to the agent
        thread_messages: History fetched from the agent, or None if the
            fetch was skipped or failed
    """
    if thread_messages:
        return TranscriptResult(messages=list(thread_messages), source=SOURCE_THREAD)

    if parsed.thread_id is None:
        reason = "no thread id in stream"
    else:
        reason = "thread fetch failed"

    assembled = parsed.text
    if assembled:
        return TranscriptResult(
            messages=[
                {"role": "user", "content": input_message},
                {"role": "assistant", "content": assembled},
            ],
            source=SOURCE_STREAM,
            fallback_reason=reason,
        )

    return TranscriptResult(messages=[], source=SOURCE_EMPTY, fallback_reason=reason)
