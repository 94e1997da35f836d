"""
HTTP transport to agents.

Every agent exposes an HTTP API on localhost:<port>. Requests carry the
agent's API key as ``X-API-Key`` when one is configured.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import logging

import httpx

from ..config import AgentConnectionConfig
from .agents import AgentRecord

logger = logging.getLogger(__name__)


class AgentTransport(ABC):
    """Sends requests to a running agent."""

    @abstractmethod
    async def send(
        self,
        agent: AgentRecord,
        path: str,
        method: str = "GET",
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        stream: bool = False,
    ) -> httpx.Response:
        """Send a request to the agent.

        With ``stream=True`` the body is not read; the caller iterates it and
        must close the response.
        """

    async def aclose(self) -> None:
        """Release connections."""


class HttpAgentTransport(AgentTransport):
    """httpx-based transport.

    Usage:
        async with HttpAgentTransport(config.agents) as transport:
            response = await transport.send(agent, "/health")
    """

    def __init__(
        self,
        config: Optional[AgentConnectionConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize transport.

        Args:
            config: Host and timeout settings
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.config = config or AgentConnectionConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazily created shared client."""
        if self._client is None:
            self._client = httpx.AsyncClient(transport=self._transport)
        return self._client

    def url_for(self, agent: AgentRecord, path: str) -> str:
        return f"http://{self.config.host}:{agent.port}{path}"

    async def send(
        self,
        agent: AgentRecord,
        path: str,
        method: str = "GET",
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        stream: bool = False,
    ) -> httpx.Response:
        request_headers = dict(headers or {})
        if agent.api_key:
            request_headers["X-API-Key"] = agent.api_key

        connect = self.config.connect_timeout_seconds
        # Streamed bodies are bounded by the stream safety ceiling, not a read timeout
        timeout = httpx.Timeout(connect, read=None) if stream else httpx.Timeout(connect)

        request = self.client.build_request(
            method,
            self.url_for(agent, path),
            json=json,
            headers=request_headers,
            timeout=timeout,
        )
        logger.debug(f"{method} {request.url} (agent={agent.id}, stream={stream})")
        return await self.client.send(request, stream=stream)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpAgentTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
