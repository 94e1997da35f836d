"""
Agent Trials - behavior-driven testing for AI agents.

This package provides:
- Test cases defined in YAML (explicit agent + message, or a behavior)
- AI planning: an LLM picks the agent and writes the test message
- Dispatch to running agents with bounded stream consumption
- LLM judging of the resulting conversation (pass/fail, 1-10 score)
- Append-only run history and live progress telemetry
- Report generation (JSON, Markdown)

Quick start:
    from agent_trials import (
        EnvProviderResolver, LLMClient, InMemoryAgentRegistry, HealthCheckSupervisor,
        HttpAgentTransport, Dispatcher, Planner, Judge, InMemoryStore, TestRunner,
    )

    llm = LLMClient(EnvProviderResolver())
    registry = InMemoryAgentRegistry.from_yaml(Path("fleet.yaml"))
    store = InMemoryStore()
    store.create(test_case)
    async with HttpAgentTransport() as transport:
        dispatcher = Dispatcher(registry, HealthCheckSupervisor(registry), transport)
        runner = TestRunner(store, Planner(llm, registry), dispatcher, Judge(llm))
        run = await runner.run_test(test_case)
        print(run.summary())

CLI usage:
    agent-trials run tests/ --agents fleet.yaml --format markdown
"""

__version__ = "0.1.0"

# Core exports
from .config import (
    Config,
    LLMConfig,
    AgentConnectionConfig,
    PersistenceConfig,
    TelemetryConfig,
)
from .exceptions import (
    AgentTrialsError,
    ConfigurationError,
    TestCaseError,
    LLMError,
    ProviderError,
    PlannerError,
    NoAgentsAvailable,
    PlannerParseError,
    DispatchError,
    AgentNotFound,
    AgentStartFailed,
    ChatFailed,
    OperationTimeout,
    StreamTimeout,
    PersistenceError,
    RunStateError,
)
from .providers import (
    PROVIDERS,
    ProviderResolver,
    EnvProviderResolver,
    StaticProviderResolver,
)
from .client import LLMClient

# Model exports
from .models import (
    TestCase,
    load_test_cases,
    RunStatus,
    PlanResult,
    JudgeVerdict,
    TestRun,
    BatchResult,
)

# Execution exports
from .execution import (
    AgentRecord,
    AgentRegistry,
    InMemoryAgentRegistry,
    ProcessSupervisor,
    HealthCheckSupervisor,
    MockSupervisor,
    AgentTransport,
    HttpAgentTransport,
    Dispatcher,
    TranscriptResult,
)

# Evaluation exports
from .evaluation import Planner, Judge, MockJudge

# Orchestration exports
from .orchestration import (
    TestRunner,
    RunRecorder,
    TelemetryEvent,
    TelemetrySink,
    TelemetryBroadcaster,
    JsonlTelemetrySink,
)

# Storage exports
from .storage import TestCaseStore, TestRunStore, InMemoryStore, SQLiteStore

# Reporting exports
from .reporting import Report, Reporter

__all__ = [
    # Version
    "__version__",
    # Config
    "Config",
    "LLMConfig",
    "AgentConnectionConfig",
    "PersistenceConfig",
    "TelemetryConfig",
    # Exceptions
    "AgentTrialsError",
    "ConfigurationError",
    "TestCaseError",
    "LLMError",
    "ProviderError",
    "PlannerError",
    "NoAgentsAvailable",
    "PlannerParseError",
    "DispatchError",
    "AgentNotFound",
    "AgentStartFailed",
    "ChatFailed",
    "OperationTimeout",
    "StreamTimeout",
    "PersistenceError",
    "RunStateError",
    # LLM
    "PROVIDERS",
    "ProviderResolver",
    "EnvProviderResolver",
    "StaticProviderResolver",
    "LLMClient",
    # Models
    "TestCase",
    "load_test_cases",
    "RunStatus",
    "PlanResult",
    "JudgeVerdict",
    "TestRun",
    "BatchResult",
    # Execution
    "AgentRecord",
    "AgentRegistry",
    "InMemoryAgentRegistry",
    "ProcessSupervisor",
    "HealthCheckSupervisor",
    "MockSupervisor",
    "AgentTransport",
    "HttpAgentTransport",
    "Dispatcher",
    "TranscriptResult",
    # Evaluation
    "Planner",
    "Judge",
    "MockJudge",
    # Orchestration
    "TestRunner",
    "RunRecorder",
    "TelemetryEvent",
    "TelemetrySink",
    "TelemetryBroadcaster",
    "JsonlTelemetrySink",
    # Storage
    "TestCaseStore",
    "TestRunStore",
    "InMemoryStore",
    "SQLiteStore",
    # Reporting
    "Report",
    "Reporter",
]
