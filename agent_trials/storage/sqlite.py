"""SQLite persistence for test cases and runs."""

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, List, Optional
import logging

from ..exceptions import PersistenceError, RunStateError
from ..models.result import RunStatus, TestRun
from ..models.test_case import TestCase, generate_id
from .base import COMPLETION_FIELDS, TestCaseStore, TestRunStore, check_completion

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS test_cases (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT,
        behavior TEXT,
        agent_id TEXT,
        input_message TEXT,
        eval_criteria TEXT NOT NULL,
        timeout_ms INTEGER DEFAULT 300000,
        project_id TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS test_runs (
        id TEXT PRIMARY KEY,
        test_case_id TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'running',
        score INTEGER,
        agent_response TEXT,
        judge_reasoning TEXT,
        duration_ms INTEGER,
        error TEXT,
        generated_message TEXT,
        selected_agent_id TEXT,
        selected_agent_name TEXT,
        planner_reasoning TEXT,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_test_runs_case ON test_runs(test_case_id)",
)

_CASE_COLUMNS = (
    "id",
    "name",
    "description",
    "behavior",
    "agent_id",
    "input_message",
    "eval_criteria",
    "timeout_ms",
    "project_id",
    "created_at",
    "updated_at",
)


class SQLiteStore(TestCaseStore, TestRunStore):
    """Test cases and run history in a single SQLite file.

    Usage:
        store = SQLiteStore(Path("~/.agent_trials/trials.db").expanduser())
        run = store.create_run(case.id)
        store.complete_run(run.id, RunStatus.PASSED, score=9)
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create database directory {self.path.parent}: {e}")
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)
            conn.commit()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.path)
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to open database {self.path}: {e}")
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as e:
            raise PersistenceError(f"Database error: {e}")
        finally:
            conn.close()

    # Test cases

    def save(self, test_case: TestCase) -> None:
        data = test_case.to_dict()
        placeholders = ", ".join("?" for _ in _CASE_COLUMNS)
        with self._connection() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO test_cases ({', '.join(_CASE_COLUMNS)}) VALUES ({placeholders})",
                tuple(data[c] for c in _CASE_COLUMNS),
            )
            conn.commit()

    def find_by_id(self, test_case_id: str) -> Optional[TestCase]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM test_cases WHERE id = ?", (test_case_id,)).fetchone()
        return TestCase.from_dict(dict(row)) if row else None

    def find_all(self, project_id: Optional[str] = None) -> List[TestCase]:
        with self._connection() as conn:
            if project_id:
                rows = conn.execute(
                    "SELECT * FROM test_cases WHERE project_id = ? ORDER BY created_at, rowid",
                    (project_id,),
                ).fetchall()
            else:
                rows = conn.execute("SELECT * FROM test_cases ORDER BY created_at, rowid").fetchall()
        return [TestCase.from_dict(dict(row)) for row in rows]

    # Runs

    def create_run(self, test_case_id: str) -> TestRun:
        run = TestRun(id=generate_id(), test_case_id=test_case_id, created_at=datetime.now())
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO test_runs (id, test_case_id, status, created_at) VALUES (?, ?, 'running', ?)",
                (run.id, run.test_case_id, run.created_at.isoformat()),
            )
            conn.commit()
        return run

    def complete_run(self, run_id: str, status: RunStatus, **fields: Any) -> TestRun:
        run = self.find_run(run_id)
        if run is None:
            raise PersistenceError(f"Test run not found: {run_id}")
        status = check_completion(run, status, fields)

        values = [fields.get(name) for name in COMPLETION_FIELDS]
        assignments = ", ".join(f"{name} = ?" for name in COMPLETION_FIELDS)
        with self._connection() as conn:
            # Guarded on status so a concurrent writer cannot close the run twice
            cursor = conn.execute(
                f"UPDATE test_runs SET status = ?, {assignments} WHERE id = ? AND status = 'running'",
                (status.value, *values, run_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                raise RunStateError(f"Run {run_id} is already complete")

        logger.debug(f"Run {run_id} closed as {status.value}")
        return self.find_run(run_id)

    def find_run(self, run_id: str) -> Optional[TestRun]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM test_runs WHERE id = ?", (run_id,)).fetchone()
        return TestRun.from_dict(dict(row)) if row else None

    def find_by_test_case(self, test_case_id: str, limit: int = 20) -> List[TestRun]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM test_runs WHERE test_case_id = ? "
                "ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (test_case_id, limit),
            ).fetchall()
        return [TestRun.from_dict(dict(row)) for row in rows]

    def find_recent(self, limit: int = 50) -> List[TestRun]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM test_runs ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [TestRun.from_dict(dict(row)) for row in rows]
