"""
Dispatcher: get a message to an agent and read its reply.

Steps:
1. Resolve the agent record
2. Ask the supervisor to start it when it is not running
3. Re-resolve to pick up the live port
4. POST the message to /chat
5. Consume the streamed reply under a fixed safety ceiling
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
import logging

import httpx

from ..exceptions import AgentNotFound, AgentStartFailed, ChatFailed, DispatchError
from .agents import AgentRecord, AgentRegistry, ProcessSupervisor
from .stream_parser import ParsedStream, consume_stream
from .transport import AgentTransport

logger = logging.getLogger(__name__)

# Bounds worst-case stream consumption regardless of the test's timeout_ms
STREAM_SAFETY_TIMEOUT_SECONDS = 5 * 60.0


@dataclass
class DispatchResult:
    """A running agent and what it streamed back."""

    agent: AgentRecord
    stream: ParsedStream


class Dispatcher:
    """Sends test messages to agents.

    Usage:
        dispatcher = Dispatcher(registry, supervisor, transport)
        result = await dispatcher.dispatch("agent-1", "hello")
        print(result.stream.text)
    """

    def __init__(
        self,
        registry: AgentRegistry,
        supervisor: ProcessSupervisor,
        transport: AgentTransport,
        stream_timeout: float = STREAM_SAFETY_TIMEOUT_SECONDS,
    ):
        """Initialize dispatcher.

        Args:
            registry: Agent records
            supervisor: Starts agents that are not running
            transport: HTTP access to agents
            stream_timeout: Stream ceiling in seconds, never above
                STREAM_SAFETY_TIMEOUT_SECONDS
        """
        self.registry = registry
        self.supervisor = supervisor
        self.transport = transport
        self.stream_timeout = min(stream_timeout, STREAM_SAFETY_TIMEOUT_SECONDS)

    async def dispatch(
        self,
        agent_id: str,
        message: str,
        on_ready: Optional[Callable[[AgentRecord], Any]] = None,
    ) -> DispatchResult:
        """Ensure the agent runs, send the message, consume the reply.

        Args:
            agent_id: Target agent
            message: User message to send
            on_ready: Called with the running agent just before the chat request

        Raises:
            AgentNotFound, AgentStartFailed, ChatFailed, StreamTimeout
        """
        agent = await self.ensure_agent(agent_id)
        if on_ready is not None:
            on_ready(agent)
        stream = await self.send_message(agent, message)
        return DispatchResult(agent=agent, stream=stream)

    async def ensure_agent(self, agent_id: str) -> AgentRecord:
        """Return a running, reachable agent record."""
        agent = self.registry.find_by_id(agent_id)
        if agent is None:
            raise AgentNotFound(agent_id)

        logger.debug(f"Agent {agent.name!r}: status={agent.status}, port={agent.port}")

        if not agent.is_running:
            logger.info(f"Agent {agent.name} ({agent.id}) not running, starting...")
            try:
                start = await self.supervisor.ensure_running(agent)
            except DispatchError:
                raise
            except Exception as e:
                raise AgentStartFailed(f"Failed to start agent: {e}")
            logger.debug(
                f"Start result: success={start.success}, port={start.port}, "
                f"error={start.error or 'none'}"
            )
            if not start.success:
                raise AgentStartFailed(f"Failed to start agent: {start.error}")

        running = self.registry.find_by_id(agent_id)
        if running is None or not running.is_running:
            raise AgentStartFailed("Agent failed to start")

        return running

    async def send_message(self, agent: AgentRecord, message: str) -> ParsedStream:
        """POST /chat and parse the streamed reply.

        The response is always closed, including after a timeout.
        """
        logger.debug(f"Sending message to /chat on port {agent.port}: {message[:100]!r}")
        response = await self.transport.send(
            agent,
            "/chat",
            method="POST",
            json={"message": message},
            headers={"Content-Type": "application/json"},
            stream=True,
        )
        try:
            if not response.is_success:
                body = (await response.aread()).decode("utf-8", errors="replace")
                logger.warning(f"Chat failed ({response.status_code}): {body[:300]}")
                raise ChatFailed(body, response.status_code)

            logger.debug(
                f"Chat response started (status {response.status_code}, "
                f"content-type: {response.headers.get('content-type')})"
            )
            return await consume_stream(response.aiter_bytes(), self.stream_timeout)
        finally:
            await response.aclose()

    async def fetch_thread(
        self, agent: AgentRecord, thread_id: str
    ) -> Optional[List[Dict[str, Any]]]:
        """Fetch the authoritative message history, or None if unavailable."""
        try:
            response = await self.transport.send(
                agent,
                f"/threads/{thread_id}/messages",
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch thread {thread_id}: {e}")
            return None

        if not response.is_success:
            logger.warning(
                f"Failed to fetch messages ({response.status_code}): {response.text[:300]}"
            )
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning(f"Thread {thread_id} messages were not JSON")
            return None

        if isinstance(data, list):
            messages = data
        elif isinstance(data, dict):
            messages = data.get("messages") or []
        else:
            messages = []

        logger.debug(f"Got {len(messages)} message(s) from thread {thread_id}")
        return messages
