"""
Stream parsing for agent chat responses.

Agents answer /chat with Server-Sent-Event frames (``data: {...}``) or
newline-delimited JSON. Two event shapes matter:

    {"type": "thread_id", "thread_id": "..."}   authoritative conversation id
    {"type": "content", "content": "..."}       a fragment of the reply

Anything else, including lines that are not JSON, is ignored.
"""

from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional
import codecs
import json
import logging

import httpx

from ..exceptions import StreamTimeout
from .timeout_manager import TimeoutManager

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = "data:"


@dataclass
class ParsedStream:
    """What was recovered from a chat stream."""

    thread_id: Optional[str] = None
    content_fragments: List[str] = field(default_factory=list)
    events_parsed: int = 0
    chars: int = 0

    @property
    def text(self) -> str:
        """The assembled reply."""
        return "".join(self.content_fragments)


class StreamParser:
    """Incremental line parser.

    Feed decoded text or raw bytes as it arrives; complete lines are handled
    immediately, a trailing partial line waits for more input or ``finish()``.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.result = ParsedStream()

    def feed_bytes(self, chunk: bytes) -> None:
        self.feed(self._decoder.decode(chunk))

    def feed(self, text: str) -> None:
        if not text:
            return
        self.result.chars += len(text)
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            self._handle_line(line)

    def finish(self) -> ParsedStream:
        """Flush the decoder and the last partial line."""
        tail = self._decoder.decode(b"", final=True)
        if tail:
            self.feed(tail)
        if self._buffer:
            self._handle_line(self._buffer)
            self._buffer = ""
        return self.result

    def _handle_line(self, line: str) -> None:
        line = line.strip()
        if not line:
            return
        if line.startswith(SSE_DATA_PREFIX):
            line = line[len(SSE_DATA_PREFIX):].strip()

        try:
            event = json.loads(line)
        except ValueError:
            return  # noise or a partial frame
        self.result.events_parsed += 1

        if not isinstance(event, dict):
            return

        event_type = event.get("type")
        if event_type == "thread_id" and event.get("thread_id"):
            if self.result.thread_id is None:
                self.result.thread_id = str(event["thread_id"])
                logger.debug(f"Found thread_id in stream: {self.result.thread_id}")
        elif event_type == "content" and event.get("content"):
            content = event["content"]
            if not isinstance(content, str):
                content = json.dumps(content)
            self.result.content_fragments.append(content)


def timeout_message(seconds: float) -> str:
    if seconds >= 60:
        return f"Stream safety timeout ({seconds / 60:g} min)"
    return f"Stream safety timeout ({seconds:g}s)"


async def consume_stream(chunks: AsyncIterator[bytes], timeout: float) -> ParsedStream:
    """Read a byte stream to exhaustion under a hard ceiling.

    A transport error part way through ends the read early; whatever was
    received up to that point is still parsed and returned.

    Raises:
        StreamTimeout: If the stream is still open after ``timeout`` seconds.
            The read has been cancelled; the caller still closes the response.
    """
    parser = StreamParser()

    async def _read() -> ParsedStream:
        count = 0
        try:
            async for chunk in chunks:
                count += 1
                parser.feed_bytes(chunk)
                if count <= 3 or count % 10 == 0:
                    logger.debug(f"consume_stream: chunk #{count} (total {parser.result.chars} chars)")
        except httpx.HTTPError as e:
            logger.warning(f"Stream read failed after {count} chunk(s), keeping partial reply: {e}")
        result = parser.finish()
        logger.debug(
            f"consume_stream: ended after {count} chunks, {result.events_parsed} events, "
            f"{len(result.content_fragments)} content fragments, "
            f"thread_id={result.thread_id or 'none'}"
        )
        return result

    return await TimeoutManager.with_timeout(
        _read(), timeout, timeout_message(timeout), error=StreamTimeout
    )
