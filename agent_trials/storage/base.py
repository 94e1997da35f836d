"""
Store interfaces for test cases and test runs.

Runs are append-only history: created ``running``, closed by exactly one
terminal update, read-only afterwards.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..exceptions import RunStateError, TestCaseError
from ..models.result import RunStatus, TestRun
from ..models.test_case import TestCase

# Fields a terminal update may set besides status
COMPLETION_FIELDS = (
    "score",
    "agent_response",
    "judge_reasoning",
    "duration_ms",
    "error",
    "generated_message",
    "selected_agent_id",
    "selected_agent_name",
    "planner_reasoning",
)


class TestCaseStore(ABC):
    """Test case definitions."""

    __test__ = False

    @abstractmethod
    def find_by_id(self, test_case_id: str) -> Optional[TestCase]:
        """Return the test case or None."""

    @abstractmethod
    def find_all(self, project_id: Optional[str] = None) -> List[TestCase]:
        """All test cases in creation order, optionally scoped to a project."""

    @abstractmethod
    def save(self, test_case: TestCase) -> None:
        """Persist a validated test case, replacing one with the same id."""

    def create(self, test_case: TestCase) -> TestCase:
        """Validate and store a test case.

        Raises:
            TestCaseError: If the definition is invalid
        """
        issues = test_case.validate()
        if issues:
            raise TestCaseError(f"Invalid test case {test_case.name!r}: {'; '.join(issues)}")
        self.save(test_case)
        return test_case


class TestRunStore(ABC):
    """Test run history."""

    __test__ = False

    @abstractmethod
    def create_run(self, test_case_id: str) -> TestRun:
        """Create a run in ``running`` state."""

    @abstractmethod
    def complete_run(self, run_id: str, status: RunStatus, **fields: Any) -> TestRun:
        """Write the single terminal update.

        Raises:
            RunStateError: If ``status`` is not terminal or the run is already closed
            PersistenceError: If the run does not exist
        """

    @abstractmethod
    def find_run(self, run_id: str) -> Optional[TestRun]:
        """Return the run or None."""

    @abstractmethod
    def find_by_test_case(self, test_case_id: str, limit: int = 20) -> List[TestRun]:
        """Runs of one test case, newest first."""

    @abstractmethod
    def find_recent(self, limit: int = 50) -> List[TestRun]:
        """Most recent runs across all test cases, newest first."""

    def latest_for(self, test_case_id: str) -> Optional[TestRun]:
        """Most recent run of a test case, if any."""
        runs = self.find_by_test_case(test_case_id, limit=1)
        return runs[0] if runs else None


def check_completion(run: TestRun, status: RunStatus, fields: Dict[str, Any]) -> RunStatus:
    """Validate a terminal update and return the normalized status."""
    if isinstance(status, str):
        status = RunStatus(status)
    if not status.is_terminal:
        raise RunStateError(f"Cannot complete run {run.id} with non-terminal status {status.value}")
    if run.is_complete:
        raise RunStateError(f"Run {run.id} is already {run.status.value}")
    unknown = set(fields) - set(COMPLETION_FIELDS)
    if unknown:
        raise RunStateError(f"Unknown run fields: {', '.join(sorted(unknown))}")
    return status
