"""
Exception hierarchy for the Agent Trials system.

All exceptions inherit from AgentTrialsError for easy catching.
"""


class AgentTrialsError(Exception):
    """Base exception for the agent trials system.

    All other exceptions in this module inherit from this,
    allowing callers to catch any trials error with a single except.
    """
    pass


class ConfigurationError(AgentTrialsError):
    """Error in configuration.

    Raised when:
    - Config file not found
    - Config validation fails
    - Required config missing
    """
    pass


class TestCaseError(AgentTrialsError):
    """Error loading or validating a test case definition.

    Raised when:
    - YAML parsing fails
    - Required fields are missing
    - File not found
    """

    __test__ = False


class LLMError(AgentTrialsError):
    """Error calling an LLM provider.

    Raised when:
    - No provider is configured
    - The provider key cannot be retrieved
    - The provider is not supported
    - Network errors
    """
    pass


class ProviderError(LLMError):
    """A provider answered with a non-2xx status.

    Attributes:
        provider: Provider id (e.g. "anthropic")
        status: HTTP status code
        body: Raw response body
    """

    def __init__(self, provider: str, status: int, body: str, message: str = ""):
        self.provider = provider
        self.status = status
        self.body = body
        super().__init__(f"{provider} API error {status}: {message or body}")


class PlannerError(AgentTrialsError):
    """Error planning a behavior-driven test."""
    pass


class NoAgentsAvailable(PlannerError):
    """The planner had no candidate agents to choose from."""

    def __init__(self, message: str = "No agents available to test"):
        super().__init__(message)


class PlannerParseError(PlannerError):
    """The planner LLM response could not be turned into a plan."""
    pass


class DispatchError(AgentTrialsError):
    """Error getting a message to an agent.

    The message of every subclass is what ends up in TestRun.error.
    """
    pass


class AgentNotFound(DispatchError):
    """The target agent does not exist in the registry."""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Agent not found: {agent_id}")


class AgentStartFailed(DispatchError):
    """The agent could not be started or did not come up."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class ChatFailed(DispatchError):
    """The agent's chat endpoint returned a non-success response."""

    def __init__(self, body: str, status: int = 0):
        self.body = body
        self.status = status
        super().__init__(f"Chat failed: {body}")


class OperationTimeout(AgentTrialsError):
    """An awaited operation exceeded its time budget."""
    pass


class StreamTimeout(OperationTimeout):
    """Stream consumption exceeded the safety ceiling.

    Fatal for the run; the stream has already been cancelled.
    """
    pass


class PersistenceError(AgentTrialsError):
    """Error persisting test cases or runs.

    Raised when:
    - Database connection fails
    - Write operations fail
    """
    pass


class RunStateError(PersistenceError):
    """Invalid transition of a test run (e.g. completing it twice)."""
    pass
