"""
LLM judge for Agent Trials.

The Judge reads a conversation transcript and grades it against free-text
success criteria, returning pass/fail, a 1-10 score and reasoning.

Judging never fails a run on its own: unparseable output and LLM errors
degrade to a failing verdict.
"""

import json
from typing import Any, Dict, List
import logging

from ..client import LLMClient
from ..models.result import JudgeVerdict
from .json_extract import extract_json_object

logger = logging.getLogger(__name__)

MIN_SCORE = 1
MAX_SCORE = 10
DEFAULT_PASS_SCORE = 8
DEFAULT_FAIL_SCORE = 3


def format_block(block: Any) -> str:
    """Render one typed content block."""
    if not isinstance(block, dict):
        return json.dumps(block)

    block_type = block.get("type")
    if block_type == "text":
        return str(block.get("text", ""))
    if block_type == "tool_use":
        args = json.dumps(block.get("input", {}))
        return f"[Tool Call: {block.get('name', '')}({args})]"
    if block_type == "tool_result":
        content = block.get("content", "")
        if not isinstance(content, str):
            content = json.dumps(content)
        error = " (ERROR)" if block.get("is_error") else ""
        return f"[Tool Result: {content}{error}]"
    return json.dumps(block)


def format_transcript(messages: List[Dict[str, Any]]) -> str:
    """Render a transcript as ``role: content`` paragraphs."""
    lines = []
    for msg in messages:
        if not isinstance(msg, dict):
            msg = {"content": msg}
        role = msg.get("role") or "unknown"
        content = msg.get("content", "")

        if isinstance(content, str):
            text = content
        elif isinstance(content, list):
            text = "\n".join(format_block(b) for b in content)
        else:
            text = json.dumps(content)

        lines.append(f"{role}: {text}")
    return "\n\n".join(lines)


class Judge:
    """Grades a transcript against success criteria.

    Usage:
        judge = Judge(llm)
        verdict = await judge.evaluate(transcript.messages, test_case.criteria)
        print(verdict.passed, verdict.score)
    """

    def __init__(self, llm: LLMClient):
        """Initialize judge.

        Args:
            llm: Client used for the single judging call
        """
        self.llm = llm

    async def evaluate(self, transcript: List[Dict[str, Any]], criteria: str) -> JudgeVerdict:
        """Judge the transcript. Never raises."""
        try:
            prompt = self._build_prompt(transcript, criteria)
            raw = await self.llm.call(prompt)
            logger.debug(f"Judge raw response: {raw[:500]}")
            verdict = self._parse_response(raw)
        except Exception as e:
            logger.error(f"Judge evaluation failed: {e}")
            return JudgeVerdict(passed=False, score=MIN_SCORE, reasoning=f"Judge error: {e}")

        logger.debug(f"Judge verdict: pass={verdict.passed}, score={verdict.score}")
        return verdict

    def _build_prompt(self, transcript: List[Dict[str, Any]], criteria: str) -> str:
        return f"""You are evaluating an AI agent's conversation. Judge whether the agent met the success criteria.

## Success Criteria
{criteria}

## Conversation Thread
{format_transcript(transcript)}

Respond with ONLY a JSON object (no markdown fences):
{{
    "pass": true or false,
    "score": 1-10,
    "reasoning": "brief explanation of the verdict"
}}"""

    def _parse_response(self, raw: str) -> JudgeVerdict:
        data = extract_json_object(raw)
        if data is None:
            logger.warning("Judge response contained no JSON object")
            return JudgeVerdict(
                passed=False,
                score=MIN_SCORE,
                reasoning=f"Judge returned unparseable response: {raw[:200]}",
            )

        passed = bool(data.get("pass"))
        return JudgeVerdict(
            passed=passed,
            score=_coerce_score(data.get("score"), passed),
            reasoning=str(data.get("reasoning") or ""),
        )


def _coerce_score(value: Any, passed: bool) -> int:
    """Clamp to 1..10; derive from pass when missing or not a number.

    Only JSON numbers count. A quoted "7" is treated as missing.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_PASS_SCORE if passed else DEFAULT_FAIL_SCORE

    score = float(value)
    if score != score:  # NaN
        return DEFAULT_PASS_SCORE if passed else DEFAULT_FAIL_SCORE

    # Clamp first: 1e999 parses to inf, which round() cannot convert
    score = max(MIN_SCORE, min(MAX_SCORE, score))
    return int(round(score))


class MockJudge:
    """Mock judge for testing.

    Returns a configurable verdict without making LLM calls.
    """

    def __init__(
        self,
        passed: bool = True,
        score: int = 9,
        reasoning: str = "Mock verdict",
        should_error: bool = False,
        error_message: str = "Mock judge error",
    ):
        """Initialize mock judge.

        Args:
            passed: Verdict to return
            score: Score to return
            reasoning: Reasoning to return
            should_error: If True, return the degraded error verdict
            error_message: Error message if should_error
        """
        self.passed = passed
        self.score = score
        self.reasoning = reasoning
        self.should_error = should_error
        self.error_message = error_message
        self.calls: List[dict] = []

    async def evaluate(self, transcript: List[Dict[str, Any]], criteria: str) -> JudgeVerdict:
        """Return mock verdict."""
        self.calls.append({"transcript": transcript, "criteria": criteria})

        if self.should_error:
            return JudgeVerdict(
                passed=False, score=MIN_SCORE, reasoning=f"Judge error: {self.error_message}"
            )

        return JudgeVerdict(passed=self.passed, score=self.score, reasoning=self.reasoning)

    @property
    def call_count(self) -> int:
        """Number of times evaluate was called."""
        return len(self.calls)
