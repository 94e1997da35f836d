"""
Run lifecycle recording.

A RunRecorder owns one TestRun from creation to its single terminal
update and emits a telemetry event at every phase:

    test_started -> test_planning (optional) -> test_executing
        -> test_judging -> test_completed
"""

from typing import Any, Dict, Optional
import logging
import time

from ..exceptions import RunStateError
from ..models.result import RunStatus, TestRun
from ..models.test_case import TestCase
from ..storage.base import TestRunStore
from .telemetry import TelemetryEvent, TelemetrySink

logger = logging.getLogger(__name__)

EXCERPT_CHARS = 200


class RunRecorder:
    """Records one run of one test case.

    Usage:
        recorder = RunRecorder(store, telemetry, test_case)
        run = recorder.start()
        recorder.executing(agent.id, agent.name, message)
        recorder.judging(agent.id)
        run = recorder.complete(RunStatus.PASSED, score=9, judge_reasoning="...")
    """

    def __init__(
        self,
        store: TestRunStore,
        telemetry: Optional[TelemetrySink],
        test_case: TestCase,
    ):
        self.store = store
        self.telemetry = telemetry
        self.test_case = test_case
        self.run: Optional[TestRun] = None
        self._started: Optional[float] = None

    @property
    def run_id(self) -> str:
        if self.run is None:
            raise RunStateError("Run has not been started")
        return self.run.id

    @property
    def elapsed_ms(self) -> int:
        if self._started is None:
            return 0
        return int((time.monotonic() - self._started) * 1000)

    def start(self) -> TestRun:
        """Create the ``running`` record and announce it."""
        if self.run is not None:
            raise RunStateError(f"Run {self.run.id} already started")
        self.run = self.store.create_run(self.test_case.id)
        self._started = time.monotonic()

        data: Dict[str, Any] = {}
        if self.test_case.behavior:
            data["behavior"] = self.test_case.behavior
        self._emit("test_started", data)
        return self.run

    def planning(self) -> None:
        self._emit("test_planning")

    def executing(self, agent_id: str, agent_name: str, message: str) -> None:
        self._emit(
            "test_executing",
            {"agent_name": agent_name, "message": message[:100]},
            agent_id=agent_id,
        )

    def judging(
        self,
        agent_id: Optional[str],
        transcript_source: Optional[str] = None,
        fallback_reason: Optional[str] = None,
    ) -> None:
        data: Dict[str, Any] = {}
        if transcript_source:
            data["transcript_source"] = transcript_source
        if fallback_reason:
            data["fallback_reason"] = fallback_reason
        self._emit("test_judging", data, agent_id=agent_id)

    def complete(
        self,
        status: RunStatus,
        agent_id: Optional[str] = None,
        **fields: Any,
    ) -> TestRun:
        """Write the terminal update and emit ``test_completed``.

        ``duration_ms`` is always measured here.

        Raises:
            RunStateError: If the run was never started or is already complete
        """
        run_id = self.run_id
        if self.run.is_complete:
            raise RunStateError(f"Run {run_id} is already {self.run.status.value}")

        duration_ms = self.elapsed_ms
        fields = {k: v for k, v in fields.items() if v is not None}
        self.run = self.store.complete_run(run_id, status, duration_ms=duration_ms, **fields)

        data: Dict[str, Any] = {"status": self.run.status.value, "duration_ms": duration_ms}
        if self.run.status == RunStatus.ERROR:
            data["error"] = (self.run.error or "")[:EXCERPT_CHARS]
        else:
            data["score"] = self.run.score
            data["reasoning"] = (self.run.judge_reasoning or "")[:EXCERPT_CHARS]

        level = "error" if self.run.status == RunStatus.ERROR else "info"
        # Error completions are announced without an agent, as "system"
        event_agent = None if self.run.status == RunStatus.ERROR else agent_id
        self._emit("test_completed", data, agent_id=event_agent, level=level)
        return self.run

    def _emit(
        self,
        event_type: str,
        data: Optional[Dict[str, Any]] = None,
        agent_id: Optional[str] = None,
        level: str = "info",
    ) -> None:
        if self.telemetry is None:
            return
        payload = {"test_case_id": self.test_case.id, "test_name": self.test_case.name}
        payload.update(data or {})
        event = TelemetryEvent(
            type=event_type,
            trace_id=self.run_id,
            agent_id=agent_id or "system",
            level=level,
            data=payload,
        )
        try:
            self.telemetry.broadcast([event])
        except Exception as e:
            logger.warning(f"[{self.run_id}] Failed to broadcast {event_type}: {e}")
