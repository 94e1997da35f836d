"""
Result data models for Agent Trials.

These capture the outcomes of test runs, including:
- The persisted TestRun record and its status
- The planner's choice (PlanResult)
- The judge's verdict (JudgeVerdict)
- Batch aggregates (BatchResult)
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict, Any


class RunStatus(Enum):
    """Lifecycle status of a test run."""

    RUNNING = "running"  # Created, pipeline in progress
    PASSED = "passed"  # Judge said pass
    FAILED = "failed"  # Judge said fail
    ERROR = "error"  # Pipeline could not produce a verdict

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.RUNNING


@dataclass
class PlanResult:
    """What the planner decided for a behavior-driven test.

    ``fallback_reason`` is set when the planner's choice was unusable and the
    first candidate agent was substituted.
    """

    agent_id: str
    agent_name: str
    message: str
    reasoning: str = ""
    fallback_reason: Optional[str] = None

    @property
    def fell_back(self) -> bool:
        return self.fallback_reason is not None


@dataclass
class JudgeVerdict:
    """Judge output. Always well-formed: score is within 1..10."""

    passed: bool
    score: int
    reasoning: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"pass": self.passed, "score": self.score, "reasoning": self.reasoning}


@dataclass
class TestRun:
    """A single execution of a test case.

    Created in ``running`` state, closed by exactly one terminal update and
    immutable afterwards.
    """

    __test__ = False

    id: str
    test_case_id: str
    status: RunStatus = RunStatus.RUNNING
    score: Optional[int] = None
    agent_response: Optional[str] = None  # JSON transcript
    judge_reasoning: Optional[str] = None
    duration_ms: Optional[int] = None
    error: Optional[str] = None
    generated_message: Optional[str] = None
    selected_agent_id: Optional[str] = None
    selected_agent_name: Optional[str] = None
    planner_reasoning: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if isinstance(self.status, str):
            self.status = RunStatus(self.status)
        if isinstance(self.created_at, str):
            self.created_at = datetime.fromisoformat(self.created_at)

    @property
    def passed(self) -> bool:
        return self.status == RunStatus.PASSED

    @property
    def is_complete(self) -> bool:
        return self.status.is_terminal

    def summary(self) -> str:
        """Human-readable summary."""
        status_emoji = {
            RunStatus.PASSED: "✅",
            RunStatus.FAILED: "❌",
            RunStatus.ERROR: "💥",
            RunStatus.RUNNING: "⏳",
        }
        emoji = status_emoji.get(self.status, "❓")
        detail = ""
        if self.score is not None:
            detail = f" (score {self.score}/10)"
        elif self.error:
            detail = f" ({self.error[:80]})"
        return f"{emoji} [{self.test_case_id}] run {self.id}: {self.status.value}{detail}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "test_case_id": self.test_case_id,
            "status": self.status.value,
            "score": self.score,
            "agent_response": self.agent_response,
            "judge_reasoning": self.judge_reasoning,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "generated_message": self.generated_message,
            "selected_agent_id": self.selected_agent_id,
            "selected_agent_name": self.selected_agent_name,
            "planner_reasoning": self.planner_reasoning,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestRun":
        return cls(**{k: data.get(k) for k in _RUN_FIELDS if k in data})


_RUN_FIELDS = (
    "id",
    "test_case_id",
    "status",
    "score",
    "agent_response",
    "judge_reasoning",
    "duration_ms",
    "error",
    "generated_message",
    "selected_agent_id",
    "selected_agent_name",
    "planner_reasoning",
    "created_at",
)


@dataclass
class BatchResult:
    """Outcome of running several test cases in sequence."""

    runs: List[TestRun] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.runs)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.runs if r.status == RunStatus.PASSED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.runs if r.status == RunStatus.FAILED)

    @property
    def errors(self) -> int:
        return sum(1 for r in self.runs if r.status == RunStatus.ERROR)

    def summary(self) -> str:
        return (
            f"{self.total} test(s) complete: {self.passed} passed, "
            f"{self.failed} failed, {self.errors} errors"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": {
                "total": self.total,
                "passed": self.passed,
                "failed": self.failed,
                "errors": self.errors,
            },
            "results": [r.to_dict() for r in self.runs],
        }
