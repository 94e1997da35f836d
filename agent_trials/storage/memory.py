"""In-memory store. Thread-safe; returns copies so stored history cannot be mutated."""

from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional
import threading

from ..exceptions import PersistenceError
from ..models.result import RunStatus, TestRun
from ..models.test_case import TestCase, generate_id
from .base import TestCaseStore, TestRunStore, check_completion


class InMemoryStore(TestCaseStore, TestRunStore):
    """Holds test cases and runs for the lifetime of the process."""

    def __init__(self):
        self._cases: Dict[str, TestCase] = {}
        self._runs: Dict[str, TestRun] = {}
        self._lock = threading.Lock()

    # Test cases

    def save(self, test_case: TestCase) -> None:
        with self._lock:
            self._cases[test_case.id] = replace(test_case)

    def find_by_id(self, test_case_id: str) -> Optional[TestCase]:
        with self._lock:
            case = self._cases.get(test_case_id)
            return replace(case) if case else None

    def find_all(self, project_id: Optional[str] = None) -> List[TestCase]:
        with self._lock:
            cases = [replace(c) for c in self._cases.values()]
        cases.sort(key=lambda c: c.created_at)
        if project_id:
            cases = [c for c in cases if c.project_id == project_id]
        return cases

    # Runs

    def create_run(self, test_case_id: str) -> TestRun:
        run = TestRun(id=generate_id(), test_case_id=test_case_id, created_at=datetime.now())
        with self._lock:
            self._runs[run.id] = run
            return replace(run)

    def complete_run(self, run_id: str, status: RunStatus, **fields: Any) -> TestRun:
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                raise PersistenceError(f"Test run not found: {run_id}")
            status = check_completion(run, status, fields)
            completed = replace(run, status=status, **fields)
            self._runs[run_id] = completed
            return replace(completed)

    def find_run(self, run_id: str) -> Optional[TestRun]:
        with self._lock:
            run = self._runs.get(run_id)
            return replace(run) if run else None

    def find_by_test_case(self, test_case_id: str, limit: int = 20) -> List[TestRun]:
        with self._lock:
            runs = [r for r in self._runs.values() if r.test_case_id == test_case_id]
        return [replace(r) for r in _newest_first(runs)[:limit]]

    def find_recent(self, limit: int = 50) -> List[TestRun]:
        with self._lock:
            runs = list(self._runs.values())
        return [replace(r) for r in _newest_first(runs)[:limit]]


def _newest_first(runs: List[TestRun]) -> List[TestRun]:
    # Insertion order breaks ties between runs created in the same microsecond
    indexed = list(enumerate(runs))
    indexed.sort(key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
    return [run for _, run in indexed]
