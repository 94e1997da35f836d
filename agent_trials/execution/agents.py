"""
Agent collaborators for Agent Trials.

Defines the interfaces the pipeline consumes to find and start agents,
plus in-process implementations:

- AgentRegistry / InMemoryAgentRegistry: agent records (id, status, port, ...)
- ProcessSupervisor / MockSupervisor: "ensure this agent is running"
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any, List
import threading

import yaml

from ..exceptions import ConfigurationError


@dataclass
class AgentFeatures:
    """Capabilities enabled on an agent."""

    memory: bool = False
    tasks: bool = False
    mcp: bool = False
    operator: bool = False
    vision: bool = False
    realtime: bool = False

    def labels(self) -> List[str]:
        """Human-readable tags for the enabled features."""
        names = [
            (self.memory, "memory"),
            (self.tasks, "tasks"),
            (self.mcp, "MCP tools"),
            (self.operator, "browser"),
            (self.vision, "vision"),
            (self.realtime, "realtime voice"),
        ]
        return [label for enabled, label in names if enabled]


@dataclass
class AgentRecord:
    """What the orchestrator knows about an agent.

    Attributes:
        id: Agent identifier
        name: Display name
        status: "running" or anything else (stopped, error, ...)
        port: Port the agent's HTTP API listens on, once known
        features: Enabled capabilities
        system_prompt: The agent's system prompt
        project_id: Project the agent belongs to
        api_key: Sent as X-API-Key on every request when set
    """

    id: str
    name: str
    status: str = "stopped"
    port: Optional[int] = None
    features: AgentFeatures = field(default_factory=AgentFeatures)
    system_prompt: str = ""
    project_id: Optional[str] = None
    api_key: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.features, dict):
            self.features = AgentFeatures(**self.features)

    @property
    def is_running(self) -> bool:
        """Running and reachable."""
        return self.status == "running" and bool(self.port)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentRecord":
        for required in ("id", "name"):
            if required not in data:
                raise ConfigurationError(f"Agent definition missing '{required}'")
        return cls(
            id=str(data["id"]),
            name=data["name"],
            status=data.get("status", "stopped"),
            port=data.get("port"),
            features=AgentFeatures(**(data.get("features") or {})),
            system_prompt=data.get("system_prompt", ""),
            project_id=data.get("project_id"),
            api_key=data.get("api_key"),
        )


@dataclass
class StartResult:
    """Outcome of asking the supervisor to start an agent."""

    success: bool
    port: Optional[int] = None
    error: Optional[str] = None


class AgentRegistry(ABC):
    """Read access to agent records."""

    @abstractmethod
    def find_by_id(self, agent_id: str) -> Optional[AgentRecord]:
        """Return the agent or None."""

    @abstractmethod
    def find_all(self, project_id: Optional[str] = None) -> List[AgentRecord]:
        """All agents, optionally scoped to a project, in stable order."""

    def set_status(self, agent_id: str, status: str, port: Optional[int] = None) -> None:
        """Record a status change. Registries fed by another process may ignore this."""


class InMemoryAgentRegistry(AgentRegistry):
    """Registry held in memory, optionally loaded from a YAML fleet file.

    Example fleet file:
        agents:
          - id: support
            name: Support Bot
            port: 4101
            status: running
            features: {memory: true, mcp: true}
            system_prompt: "You answer billing questions."
    """

    def __init__(self, agents: Optional[List[AgentRecord]] = None):
        self._agents: Dict[str, AgentRecord] = {}
        self._lock = threading.Lock()
        for agent in agents or []:
            self.add(agent)

    def add(self, agent: AgentRecord) -> None:
        with self._lock:
            self._agents[agent.id] = agent

    def find_by_id(self, agent_id: str) -> Optional[AgentRecord]:
        with self._lock:
            return self._agents.get(agent_id)

    def find_all(self, project_id: Optional[str] = None) -> List[AgentRecord]:
        with self._lock:
            agents = list(self._agents.values())
        if project_id:
            agents = [a for a in agents if a.project_id == project_id]
        return agents

    def set_status(self, agent_id: str, status: str, port: Optional[int] = None) -> None:
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                return
            agent.status = status
            if port is not None:
                agent.port = port

    @classmethod
    def from_yaml(cls, path: Path) -> "InMemoryAgentRegistry":
        """Load a fleet file.

        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        if not path.exists():
            raise ConfigurationError(f"Agent fleet file not found: {path}")
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}")

        entries = data.get("agents", []) if isinstance(data, dict) else data
        try:
            return cls([AgentRecord.from_dict(entry) for entry in entries or []])
        except TypeError as e:
            raise ConfigurationError(f"Invalid agent definition in {path}: {e}")


class ProcessSupervisor(ABC):
    """Owns agent process lifetime; the orchestrator only asks it to start agents."""

    @abstractmethod
    async def ensure_running(self, agent: AgentRecord) -> StartResult:
        """Start the agent if needed and report where it listens."""


class MockSupervisor(ProcessSupervisor):
    """Supervisor for testing.

    On success it marks the agent running in the given registry.
    """

    def __init__(
        self,
        registry: Optional[AgentRegistry] = None,
        success: bool = True,
        port: int = 4100,
        error: str = "Mock start failure",
        mark_running: bool = True,
    ):
        self.registry = registry
        self.success = success
        self.port = port
        self.error = error
        self.mark_running = mark_running

        # Track calls for assertions
        self.calls: List[str] = []

    async def ensure_running(self, agent: AgentRecord) -> StartResult:
        self.calls.append(agent.id)
        if not self.success:
            return StartResult(success=False, error=self.error)
        if self.registry is not None and self.mark_running:
            self.registry.set_status(agent.id, "running", self.port)
        return StartResult(success=True, port=self.port)

    @property
    def call_count(self) -> int:
        """Number of times ensure_running was called."""
        return len(self.calls)
