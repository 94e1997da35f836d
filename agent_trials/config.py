"""
Configuration management for Agent Trials.

Supports:
- Programmatic configuration via dataclasses
- YAML file loading
- Environment variable overrides (.env files are honoured)
- Sensible defaults for all settings
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Any, Dict, List
import os

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError


@dataclass
class LLMConfig:
    """Configuration for the LLM used by the planner and the judge."""

    provider_order: List[str] = field(default_factory=list)  # empty = catalog order
    max_tokens: int = 512
    timeout_seconds: float = 120.0

    def __post_init__(self):
        if isinstance(self.provider_order, str):
            self.provider_order = [p.strip() for p in self.provider_order.split(",") if p.strip()]
        if self.max_tokens <= 0:
            raise ConfigurationError("max_tokens must be positive")
        if self.timeout_seconds <= 0:
            raise ConfigurationError("llm timeout_seconds must be positive")


@dataclass
class AgentConnectionConfig:
    """How agents are reached over HTTP."""

    host: str = "localhost"
    connect_timeout_seconds: float = 30.0
    health_attempts: int = 30
    health_delay_seconds: float = 0.2

    def __post_init__(self):
        if not self.host:
            raise ConfigurationError("agent host cannot be empty")
        if self.connect_timeout_seconds <= 0:
            raise ConfigurationError("connect_timeout_seconds must be positive")
        if self.health_attempts <= 0:
            raise ConfigurationError("health_attempts must be positive")
        if self.health_delay_seconds < 0:
            raise ConfigurationError("health_delay_seconds cannot be negative")


@dataclass
class PersistenceConfig:
    """Configuration for test case and run persistence."""

    enabled: bool = True
    database_path: Path = field(
        default_factory=lambda: Path.home() / ".agent_trials" / "trials.db"
    )
    history_limit: int = 20

    def __post_init__(self):
        # Convert string to Path if needed
        if isinstance(self.database_path, str):
            self.database_path = Path(self.database_path).expanduser()

        if self.history_limit <= 0:
            raise ConfigurationError("history_limit must be positive")


@dataclass
class TelemetryConfig:
    """Configuration for the telemetry JSONL log."""

    enabled: bool = True
    log_dir: Path = field(
        default_factory=lambda: Path.home() / ".agent_trials" / "telemetry"
    )

    def __post_init__(self):
        if isinstance(self.log_dir, str):
            self.log_dir = Path(self.log_dir).expanduser()


@dataclass
class Config:
    """Master configuration for Agent Trials.

    Example usage:
        # Defaults
        config = Config.default()

        # From file
        config = Config.from_yaml(Path("trials.yaml"))

        # Programmatic
        config = Config(
            llm=LLMConfig(provider_order=["groq", "openai"]),
            telemetry=TelemetryConfig(enabled=False),
        )
    """

    llm: LLMConfig = field(default_factory=LLMConfig)
    agents: AgentConnectionConfig = field(default_factory=AgentConnectionConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            ConfigurationError: If file not found or invalid
        """
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        try:
            return cls(
                llm=LLMConfig(**data.get("llm", {})),
                agents=AgentConnectionConfig(**data.get("agents", {})),
                persistence=PersistenceConfig(**data.get("persistence", {})),
                telemetry=TelemetryConfig(**data.get("telemetry", {})),
            )
        except TypeError as e:
            raise ConfigurationError(f"Unknown configuration key: {e}")

    @classmethod
    def default(cls) -> "Config":
        """Create configuration with all defaults."""
        return cls()

    @classmethod
    def from_env(cls, base: Optional["Config"] = None) -> "Config":
        """Apply environment variable overrides.

        Supported environment variables:
        - AGENT_TRIALS_PROVIDERS: Comma-separated provider preference order
        - AGENT_TRIALS_MAX_TOKENS: Max tokens for planner/judge calls
        - AGENT_TRIALS_LLM_TIMEOUT: LLM request timeout in seconds
        - AGENT_TRIALS_DB_PATH: Path to SQLite database
        - AGENT_TRIALS_AGENT_HOST: Host agents listen on
        - AGENT_TRIALS_TELEMETRY_ENABLED: Enable/disable JSONL telemetry (true/false)
        """
        load_dotenv()
        config = base or cls.default()

        try:
            if providers := os.environ.get("AGENT_TRIALS_PROVIDERS"):
                config.llm.provider_order = [p.strip() for p in providers.split(",") if p.strip()]
            if max_tokens := os.environ.get("AGENT_TRIALS_MAX_TOKENS"):
                config.llm.max_tokens = int(max_tokens)
            if timeout := os.environ.get("AGENT_TRIALS_LLM_TIMEOUT"):
                config.llm.timeout_seconds = float(timeout)
        except ValueError as e:
            raise ConfigurationError(f"Invalid LLM environment override: {e}")

        if db_path := os.environ.get("AGENT_TRIALS_DB_PATH"):
            config.persistence.database_path = Path(db_path).expanduser()

        if host := os.environ.get("AGENT_TRIALS_AGENT_HOST"):
            config.agents.host = host

        if telemetry_enabled := os.environ.get("AGENT_TRIALS_TELEMETRY_ENABLED"):
            config.telemetry.enabled = telemetry_enabled.lower() == "true"

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary (for serialization)."""
        return {
            "llm": {
                "provider_order": list(self.llm.provider_order),
                "max_tokens": self.llm.max_tokens,
                "timeout_seconds": self.llm.timeout_seconds,
            },
            "agents": {
                "host": self.agents.host,
                "connect_timeout_seconds": self.agents.connect_timeout_seconds,
                "health_attempts": self.agents.health_attempts,
                "health_delay_seconds": self.agents.health_delay_seconds,
            },
            "persistence": {
                "enabled": self.persistence.enabled,
                "database_path": str(self.persistence.database_path),
                "history_limit": self.persistence.history_limit,
            },
            "telemetry": {
                "enabled": self.telemetry.enabled,
                "log_dir": str(self.telemetry.log_dir),
            },
        }

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False)
