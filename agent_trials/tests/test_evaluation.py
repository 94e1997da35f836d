"""
Tests for the evaluation layer of Agent Trials.

Tests:
- Loose JSON extraction
- Planner agent choice, fallback and parse errors
- Judge verdict parsing, clamping and degradation
- Transcript formatting
"""

import json

import pytest

from agent_trials import LLMError, NoAgentsAvailable, PlannerParseError
from agent_trials.evaluation import (
    Judge,
    MockJudge,
    Planner,
    extract_json_object,
    format_transcript,
)
from agent_trials.execution import AgentRecord, InMemoryAgentRegistry

from conftest import ScriptedLLM


def plan_json(agent_id="a1", message="How much is the Pro plan?", reasoning="Support handles pricing"):
    return json.dumps({"agent_id": agent_id, "message": message, "reasoning": reasoning})


# ============================================================================
# JSON Extraction Tests
# ============================================================================


class TestExtractJsonObject:
    """Test pulling a JSON object out of LLM prose."""

    def test_plain_object(self):
        assert extract_json_object('{"pass": true}') == {"pass": True}

    def test_wrapped_in_prose_and_fences(self):
        text = 'Sure!\n```json\n{"pass": false, "score": 2}\n```\nHope that helps.'
        assert extract_json_object(text) == {"pass": False, "score": 2}

    def test_braces_inside_strings(self):
        text = 'verdict: {"reasoning": "used {curly} and \\"quotes\\"", "score": 7}'
        assert extract_json_object(text) == {"reasoning": 'used {curly} and "quotes"', "score": 7}

    def test_skips_invalid_candidates(self):
        text = "{not json} then {\"ok\": 1}"
        assert extract_json_object(text) == {"ok": 1}

    def test_nested_object_returned_whole(self):
        assert extract_json_object('{"a": {"b": 1}}') == {"a": {"b": 1}}

    def test_nested_candidates_outer_first(self):
        text = '{"a": {"b": 1}, oops} {"c": 2}'
        assert extract_json_object(text) == {"b": 1}

    def test_unmatched_braces_before_object(self):
        text = "{" * 5000 + ' {"ok": 1}'
        assert extract_json_object(text) == {"ok": 1}

    def test_raw_newline_ends_stray_string(self):
        text = '{draft "unterminated\n{"pass": true}'
        assert extract_json_object(text) == {"pass": True}

    @pytest.mark.parametrize("text", ["", "no braces here", "{unclosed", "[1, 2]"])
    def test_nothing_usable(self, text):
        assert extract_json_object(text) is None


# ============================================================================
# Planner Tests
# ============================================================================


class TestPlanner:
    """Test the behavior planner."""

    @pytest.mark.asyncio
    async def test_valid_plan(self, registry):
        llm = ScriptedLLM(plan_json())
        plan = await Planner(llm, registry).plan("user asks about pricing", project_id="p1")

        assert plan.agent_id == "a1"
        assert plan.agent_name == "Support Bot"
        assert plan.message == "How much is the Pro plan?"
        assert plan.reasoning == "Support handles pricing"
        assert not plan.fell_back

    @pytest.mark.asyncio
    async def test_prompt_describes_agents(self, registry):
        llm = ScriptedLLM(plan_json())
        await Planner(llm, registry).plan("user asks about pricing")

        prompt = llm.prompts[0]
        assert "- ID: a1 | Name: Support Bot | Status: running | Features: memory, MCP tools" in prompt
        assert "System prompt: You answer billing and pricing questions for Acme." in prompt
        assert "- ID: a2 | Name: Sales Bot | Status: stopped | Features: none" in prompt
        assert "user asks about pricing" in prompt

    @pytest.mark.asyncio
    async def test_long_system_prompt_truncated(self):
        agent = AgentRecord(id="x", name="X", system_prompt="y" * 300)
        llm = ScriptedLLM(plan_json(agent_id="x"))
        await Planner(llm, InMemoryAgentRegistry([agent])).plan("anything")

        assert "System prompt: " + "y" * 200 + "..." in llm.prompts[0]
        assert "y" * 201 not in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_no_agents(self):
        llm = ScriptedLLM()
        with pytest.raises(NoAgentsAvailable, match="No agents available to test"):
            await Planner(llm, InMemoryAgentRegistry()).plan("anything")
        assert llm.call_count == 0

    @pytest.mark.asyncio
    async def test_project_scope(self, registry):
        registry.add(AgentRecord(id="b1", name="Billing", project_id="p2"))
        llm = ScriptedLLM(plan_json(agent_id="a1"))

        plan = await Planner(llm, registry).plan("anything", project_id="p2")

        # a1 is not a candidate in p2
        assert plan.agent_id == "b1"
        assert plan.fell_back
        assert "a1" not in llm.prompts[0].split("## Behavior to Test")[0]

    @pytest.mark.asyncio
    async def test_invalid_agent_falls_back_to_first(self, registry):
        llm = ScriptedLLM(plan_json(agent_id="nope", reasoning="Best fit"))
        plan = await Planner(llm, registry).plan("anything")

        assert plan.agent_id == "a1"
        assert plan.agent_name == "Support Bot"
        assert plan.message == "How much is the Pro plan?"
        assert plan.reasoning == (
            "Best fit (Note: planner picked invalid agent nope, falling back to Support Bot)"
        )
        assert plan.fallback_reason == "planner picked invalid agent nope"

    @pytest.mark.asyncio
    async def test_plan_in_prose(self, registry):
        llm = ScriptedLLM("Here's my plan:\n" + plan_json(agent_id="a2") + "\nGood luck!")
        plan = await Planner(llm, registry).plan("anything")
        assert plan.agent_id == "a2"

    @pytest.mark.asyncio
    async def test_unparseable(self, registry):
        llm = ScriptedLLM("I'd pick the support bot.")
        with pytest.raises(PlannerParseError, match="unparseable response: I'd pick"):
            await Planner(llm, registry).plan("anything")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"agent_id": "a1"},
        {"message": "hi"},
        {"agent_id": "", "message": "hi"},
    ])
    async def test_missing_fields(self, registry, payload):
        llm = ScriptedLLM(json.dumps(payload))
        with pytest.raises(PlannerParseError, match="missing agent_id or message"):
            await Planner(llm, registry).plan("anything")

    @pytest.mark.asyncio
    async def test_llm_error_propagates(self, registry):
        llm = ScriptedLLM(LLMError("No LLM provider configured"))
        with pytest.raises(LLMError):
            await Planner(llm, registry).plan("anything")


# ============================================================================
# Judge Tests
# ============================================================================


TRANSCRIPT = [
    {"role": "user", "content": "hi"},
    {"role": "assistant", "content": "Hello world"},
]


class TestJudge:
    """Test the LLM judge."""

    @pytest.mark.asyncio
    async def test_valid_verdict(self):
        llm = ScriptedLLM('{"pass": true, "score": 9, "reasoning": "Friendly"}')
        verdict = await Judge(llm).evaluate(TRANSCRIPT, "Agent greets the user")

        assert verdict.passed
        assert verdict.score == 9
        assert verdict.reasoning == "Friendly"

    @pytest.mark.asyncio
    async def test_prompt_contents(self):
        llm = ScriptedLLM('{"pass": true, "score": 9}')
        await Judge(llm).evaluate(TRANSCRIPT, "Agent greets the user")

        prompt = llm.prompts[0]
        assert "## Success Criteria\nAgent greets the user" in prompt
        assert "## Conversation Thread\nuser: hi\n\nassistant: Hello world" in prompt

    @pytest.mark.asyncio
    async def test_unparseable_response(self):
        llm = ScriptedLLM("I cannot help with that.")
        verdict = await Judge(llm).evaluate(TRANSCRIPT, "criteria")

        assert verdict.to_dict() == {
            "pass": False,
            "score": 1,
            "reasoning": "Judge returned unparseable response: I cannot help with that.",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("score,expected", [
        ("15", 10),
        ("0", 1),
        ("-4", 1),
        ("7.6", 8),
        ("1e999", 10),
        ("-1e999", 1),
    ])
    async def test_score_clamped(self, score, expected):
        llm = ScriptedLLM(f'{{"pass": true, "score": {score}, "reasoning": "great"}}')
        verdict = await Judge(llm).evaluate(TRANSCRIPT, "criteria")

        assert verdict.passed is True
        assert verdict.score == expected
        assert verdict.reasoning == "great"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("score", ["high", "7", None, True])
    @pytest.mark.parametrize("passed,expected", [(True, 8), (False, 3)])
    async def test_missing_score_derived_from_pass(self, passed, expected, score):
        llm = ScriptedLLM(json.dumps({"pass": passed, "score": score}))
        verdict = await Judge(llm).evaluate(TRANSCRIPT, "criteria")
        assert verdict.passed is passed
        assert verdict.score == expected

    @pytest.mark.asyncio
    async def test_missing_pass_is_fail(self):
        llm = ScriptedLLM('{"score": 5, "reasoning": "meh"}')
        verdict = await Judge(llm).evaluate(TRANSCRIPT, "criteria")
        assert verdict.passed is False
        assert verdict.score == 5

    @pytest.mark.asyncio
    async def test_llm_error_degrades(self):
        llm = ScriptedLLM(LLMError("openai API error 500: boom"))
        verdict = await Judge(llm).evaluate(TRANSCRIPT, "criteria")

        assert not verdict.passed
        assert verdict.score == 1
        assert verdict.reasoning == "Judge error: openai API error 500: boom"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [
        "",
        "   ",
        "{",
        "}{",
        "null",
        "[true, 10]",
        '{"pass": "yes", "score": null}',
        '{"pass": true, "score": NaN}',
        '{"pass": false, "score": -1e999}',
        '{"pass": [], "score": {"x": 1}, "reasoning": 42}',
        "\x00\xff garbage",
    ])
    async def test_never_raises(self, raw):
        verdict = await Judge(ScriptedLLM(raw)).evaluate(TRANSCRIPT, "criteria")

        assert isinstance(verdict.passed, bool)
        assert 1 <= verdict.score <= 10
        assert isinstance(verdict.reasoning, str)

    @pytest.mark.asyncio
    async def test_empty_transcript_still_judged(self):
        llm = ScriptedLLM('{"pass": false, "score": 1, "reasoning": "No reply"}')
        verdict = await Judge(llm).evaluate([], "criteria")

        assert llm.call_count == 1
        assert verdict.reasoning == "No reply"


class TestFormatTranscript:
    """Test transcript rendering for the judge prompt."""

    def test_typed_blocks(self):
        messages = [
            {"role": "user", "content": "Look up order 42"},
            {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "Checking."},
                    {"type": "tool_use", "name": "lookup", "input": {"order": 42}},
                ],
            },
            {
                "role": "tool",
                "content": [
                    {"type": "tool_result", "content": "not found", "is_error": True},
                    {"type": "image", "url": "x.png"},
                ],
            },
        ]

        assert format_transcript(messages) == (
            "user: Look up order 42\n\n"
            "assistant: Checking.\n"
            '[Tool Call: lookup({"order": 42})]\n\n'
            "tool: [Tool Result: not found (ERROR)]\n"
            '{"type": "image", "url": "x.png"}'
        )

    def test_structured_tool_result(self):
        messages = [{"role": "tool", "content": [{"type": "tool_result", "content": {"rows": 0}}]}]
        assert format_transcript(messages) == 'tool: [Tool Result: {"rows": 0}]'

    def test_missing_role_and_odd_content(self):
        assert format_transcript([{"content": {"a": 1}}, "bare"]) == (
            'unknown: {"a": 1}\n\nunknown: bare'
        )

    def test_empty(self):
        assert format_transcript([]) == ""


class TestMockJudge:
    """Test the mock judge."""

    @pytest.mark.asyncio
    async def test_records_calls(self):
        judge = MockJudge(passed=False, score=4, reasoning="Nope")
        verdict = await judge.evaluate(TRANSCRIPT, "criteria")

        assert (verdict.passed, verdict.score, verdict.reasoning) == (False, 4, "Nope")
        assert judge.call_count == 1
        assert judge.calls[0]["criteria"] == "criteria"

    @pytest.mark.asyncio
    async def test_error_verdict(self):
        judge = MockJudge(should_error=True, error_message="down")
        verdict = await judge.evaluate(TRANSCRIPT, "criteria")

        assert not verdict.passed
        assert verdict.score == 1
        assert verdict.reasoning == "Judge error: down"
