"""
Health-check supervisor for externally managed agents.

Agents started by something else (systemd, docker, a developer's shell)
are "started" by waiting for their /health endpoint to answer.
"""

import asyncio
import logging
from typing import Optional

import httpx

from ..config import AgentConnectionConfig
from .agents import AgentRecord, AgentRegistry, ProcessSupervisor, StartResult

logger = logging.getLogger(__name__)


class HealthCheckSupervisor(ProcessSupervisor):
    """Waits for an agent's /health endpoint and marks it running.

    The /health endpoint needs no API key.
    """

    def __init__(
        self,
        registry: AgentRegistry,
        config: Optional[AgentConnectionConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.registry = registry
        self.config = config or AgentConnectionConfig()
        self._transport = transport

    async def ensure_running(self, agent: AgentRecord) -> StartResult:
        if not agent.port:
            return StartResult(success=False, error=f"no port configured for agent {agent.id}")

        if await self.wait_for_health(agent.port):
            self.registry.set_status(agent.id, "running", agent.port)
            logger.info(f"Agent {agent.name} ({agent.id}) healthy on port {agent.port}")
            return StartResult(success=True, port=agent.port)

        return StartResult(
            success=False,
            error=f"agent did not become healthy on port {agent.port}",
        )

    async def wait_for_health(self, port: int) -> bool:
        """Poll /health until it answers 2xx or attempts run out."""
        url = f"http://{self.config.host}:{port}/health"
        async with httpx.AsyncClient(timeout=1.0, transport=self._transport) as client:
            for attempt in range(self.config.health_attempts):
                try:
                    response = await client.get(url)
                    if response.is_success:
                        return True
                except httpx.HTTPError:
                    pass  # not ready yet
                logger.debug(f"Health check {attempt + 1}/{self.config.health_attempts} failed for {url}")
                await asyncio.sleep(self.config.health_delay_seconds)
        return False
