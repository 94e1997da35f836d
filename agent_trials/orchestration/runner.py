"""
Main runner for Agent Trials.

The TestRunner drives one test case through the full pipeline:
1. Record the run as started
2. Plan (behavior-driven tests only)
3. Ensure the agent runs and dispatch the message
4. Consume the streamed reply and assemble the transcript
5. Judge the transcript
6. Record the terminal result

Every failure ends as a recorded ``error`` run; nothing is raised to the caller.
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional
import logging

from ..evaluation.judge import Judge
from ..evaluation.planner import Planner
from ..exceptions import AgentTrialsError
from ..execution.dispatcher import Dispatcher
from ..execution.transcript import SOURCE_THREAD, assemble_transcript
from ..models.result import BatchResult, RunStatus, TestRun
from ..models.test_case import TestCase, generate_id
from ..storage.base import TestCaseStore, TestRunStore
from .recorder import RunRecorder
from .telemetry import TelemetrySink

logger = logging.getLogger(__name__)

MISSING_TARGET_ERROR = (
    "Test requires either behavior description or explicit agent_id + input_message"
)


class TestRunner:
    """Runs test cases against agents.

    Usage:
        runner = TestRunner(store, planner, dispatcher, judge, telemetry)
        run = await runner.run_test(test_case)
        print(run.summary())

        # Or run several, strictly one after another
        batch = await runner.run_all(["case-1", "case-2"])
        print(batch.summary())

    Attributes:
        store: Test case definitions and run history
        planner: Picks agent and message for behavior-driven tests
        dispatcher: Starts agents and exchanges the message
        judge: Grades transcripts
        telemetry: Receives progress events (optional)
    """

    __test__ = False

    def __init__(
        self,
        store: Any,
        planner: Planner,
        dispatcher: Dispatcher,
        judge: Judge,
        telemetry: Optional[TelemetrySink] = None,
    ):
        """Initialize runner.

        Args:
            store: Implements both TestCaseStore and TestRunStore
            planner: Planner for behavior-driven tests
            dispatcher: Dispatcher for agent traffic
            judge: Judge (or MockJudge)
            telemetry: Sink for progress events
        """
        if not isinstance(store, TestCaseStore) or not isinstance(store, TestRunStore):
            raise TypeError("store must implement TestCaseStore and TestRunStore")
        self.store = store
        self.planner = planner
        self.dispatcher = dispatcher
        self.judge = judge
        self.telemetry = telemetry

    async def run_test(self, test_case: TestCase) -> TestRun:
        """Run a single test case.

        Returns:
            The terminal TestRun (passed, failed or error)
        """
        logger.info(f"Running test {test_case.name!r} ({test_case.id})")
        logger.debug(
            f"Test details: behavior={_excerpt(test_case.behavior)}, "
            f"agent_id={test_case.agent_id or 'null'}, "
            f"input_message={_excerpt(test_case.input_message)}, "
            f"project_id={test_case.project_id or 'null'}"
        )

        recorder = RunRecorder(self.store, self.telemetry, test_case)
        try:
            run = recorder.start()
        except AgentTrialsError as e:
            logger.error(f"Could not record start of {test_case.id}: {e}")
            return TestRun(
                id=generate_id(),
                test_case_id=test_case.id,
                status=RunStatus.ERROR,
                error=str(e),
                duration_ms=0,
            )

        run_id = run.id
        plan_fields: Dict[str, Any] = {}

        try:
            agent_id = test_case.agent_id
            message = test_case.input_message

            if test_case.behavior and (not agent_id or not message):
                logger.info(f"[{run_id}] Behavior-driven test, running planner")
                recorder.planning()
                plan = await self.planner.plan(test_case.behavior, test_case.project_id)

                if not agent_id:
                    agent_id = plan.agent_id
                    plan_fields["selected_agent_id"] = plan.agent_id
                    plan_fields["selected_agent_name"] = plan.agent_name
                    logger.info(f"[{run_id}] Planner selected agent: {plan.agent_name} ({plan.agent_id})")
                if not message:
                    message = plan.message
                    plan_fields["generated_message"] = plan.message
                    logger.info(f"[{run_id}] Planner generated message: {plan.message[:100]!r}")
                plan_fields["planner_reasoning"] = plan.reasoning
                if plan.fell_back:
                    logger.warning(f"[{run_id}] Planner fallback: {plan.fallback_reason}")

            if not agent_id or not message:
                logger.error(f"[{run_id}] Missing agent_id ({agent_id}) or input_message")
                return recorder.complete(RunStatus.ERROR, error=MISSING_TARGET_ERROR)

            display_name = plan_fields.get("selected_agent_name")
            dispatched = await self.dispatcher.dispatch(
                agent_id,
                message,
                on_ready=lambda agent: recorder.executing(
                    agent.id, display_name or agent.name, message
                ),
            )
            stream = dispatched.stream

            thread_messages = None
            if stream.thread_id:
                thread_messages = await self.dispatcher.fetch_thread(
                    dispatched.agent, stream.thread_id
                )

            transcript = assemble_transcript(stream, message, thread_messages)
            if transcript.source != SOURCE_THREAD:
                logger.warning(
                    f"[{run_id}] Transcript from {transcript.source}: {transcript.fallback_reason}"
                )
            if transcript.is_empty:
                logger.warning(f"[{run_id}] Empty transcript, judging anyway")

            criteria = test_case.criteria
            logger.info(f"[{run_id}] Judging against: {criteria[:80]!r}")
            recorder.judging(
                agent_id,
                transcript_source=transcript.source,
                fallback_reason=transcript.fallback_reason,
            )
            verdict = await self.judge.evaluate(transcript.messages, criteria)

            status = RunStatus.PASSED if verdict.passed else RunStatus.FAILED
            run = recorder.complete(
                status,
                agent_id=agent_id,
                score=verdict.score,
                agent_response=transcript.serialize(),
                judge_reasoning=verdict.reasoning,
                **plan_fields,
            )
            logger.info(f"[{run_id}] {run.summary()}")
            return run

        except AgentTrialsError as e:
            logger.error(f"[{run_id}] Error: {e}")
            return self._error_run(recorder, str(e), plan_fields)

        except Exception as e:
            logger.exception(f"[{run_id}] Unexpected error: {e}")
            return self._error_run(recorder, str(e) or type(e).__name__, plan_fields)

    async def run_all(self, test_case_ids: Optional[List[str]] = None) -> BatchResult:
        """Run several test cases sequentially.

        Args:
            test_case_ids: Cases to run, in order. None runs every stored case.
                Unknown ids are skipped.

        Returns:
            BatchResult with one run per resolved case, in input order
        """
        if test_case_ids is None:
            cases = self.store.find_all()
        else:
            cases = []
            for case_id in test_case_ids:
                case = self.store.find_by_id(case_id)
                if case is None:
                    logger.warning(f"Skipping unknown test case: {case_id}")
                    continue
                cases.append(case)

        total = len(cases)
        logger.info(f"Running {total} test(s) sequentially")

        runs: List[TestRun] = []
        for i, case in enumerate(cases, 1):
            logger.info(f"Running test {i}/{total}: {case.name}")
            runs.append(await self.run_test(case))

            passed = sum(1 for r in runs if r.passed)
            logger.info(f"Progress: {passed}/{i} passed ({len(runs)}/{total} complete)")

        batch = BatchResult(runs=runs)
        logger.info(batch.summary())
        return batch

    def _error_run(self, recorder: RunRecorder, error: str, plan_fields: Dict[str, Any]) -> TestRun:
        try:
            return recorder.complete(RunStatus.ERROR, error=error, **plan_fields)
        except AgentTrialsError as e:
            logger.error(f"[{recorder.run_id}] Could not record error result: {e}")
            if recorder.run.is_complete:
                return recorder.run
            return replace(
                recorder.run,
                status=RunStatus.ERROR,
                error=error,
                duration_ms=recorder.elapsed_ms,
                **plan_fields,
            )


def _excerpt(text: Optional[str], limit: int = 60) -> str:
    if not text:
        return "null"
    return repr(text[:limit])
