"""
Planner for behavior-driven tests.

Given a natural-language behavior description, the Planner asks an LLM to
pick which agent should be tested and to write the user message that
exercises the behavior.
"""

from typing import List, Optional
import logging

from ..client import LLMClient
from ..exceptions import NoAgentsAvailable, PlannerParseError
from ..execution.agents import AgentRecord, AgentRegistry
from ..models.result import PlanResult
from .json_extract import extract_json_object

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_EXCERPT = 200


class Planner:
    """Chooses a target agent and synthesizes a test message.

    An invalid agent choice is not fatal: the first candidate is used
    instead and the substitution is recorded on the PlanResult.

    Usage:
        planner = Planner(llm, registry)
        plan = await planner.plan("User asks about pricing", project_id="p1")
        print(plan.agent_name, plan.message)
    """

    def __init__(self, llm: LLMClient, registry: AgentRegistry):
        """Initialize planner.

        Args:
            llm: Client used for the single planning call
            registry: Source of candidate agents
        """
        self.llm = llm
        self.registry = registry

    async def plan(self, behavior: str, project_id: Optional[str] = None) -> PlanResult:
        """Plan a test for ``behavior``.

        Raises:
            NoAgentsAvailable: If no agents are in scope
            PlannerParseError: If the LLM response has no usable plan
            LLMError: If the LLM call fails
        """
        agents = self.registry.find_all(project_id)
        if not agents:
            raise NoAgentsAvailable()

        prompt = self._build_prompt(behavior, agents)
        logger.debug(f"Planning across {len(agents)} agent(s) for behavior: {behavior[:100]!r}")

        raw = await self.llm.call(prompt)
        logger.debug(f"Planner raw response: {raw[:500]}")

        return self._parse_response(raw, agents)

    def _build_prompt(self, behavior: str, agents: List[AgentRecord]) -> str:
        agent_list = "\n".join(_describe_agent(a) for a in agents)

        return f"""You are a test planner for AI agents. Given a behavior description and a list of available agents, choose the most appropriate agent to test and generate a realistic user message that would exercise the described behavior.

## Available Agents
{agent_list}

## Behavior to Test
{behavior}

Respond with ONLY a JSON object (no markdown fences) with these fields:
{{
    "agent_id": "the id of the chosen agent",
    "message": "the user message to send to the agent",
    "reasoning": "one sentence on why this agent and message"
}}"""

    def _parse_response(self, raw: str, agents: List[AgentRecord]) -> PlanResult:
        data = extract_json_object(raw)
        if data is None:
            raise PlannerParseError(f"Planner returned unparseable response: {raw[:200]}")

        agent_id = data.get("agent_id")
        message = data.get("message")
        if not agent_id or not message:
            raise PlannerParseError("Planner response missing agent_id or message")

        reasoning = str(data.get("reasoning") or "")
        agent_id = str(agent_id)

        chosen = next((a for a in agents if a.id == agent_id), None)
        if chosen is not None:
            return PlanResult(
                agent_id=chosen.id,
                agent_name=chosen.name,
                message=str(message),
                reasoning=reasoning,
            )

        fallback = agents[0]
        logger.warning(
            f"Planner picked unknown agent {agent_id!r}, falling back to {fallback.name} ({fallback.id})"
        )
        return PlanResult(
            agent_id=fallback.id,
            agent_name=fallback.name,
            message=str(message),
            reasoning=(
                f"{reasoning} (Note: planner picked invalid agent {agent_id}, "
                f"falling back to {fallback.name})"
            ),
            fallback_reason=f"planner picked invalid agent {agent_id}",
        )


def _describe_agent(agent: AgentRecord) -> str:
    features = ", ".join(agent.features.labels()) or "none"
    line = f"- ID: {agent.id} | Name: {agent.name} | Status: {agent.status} | Features: {features}"
    if agent.system_prompt:
        excerpt = agent.system_prompt[:SYSTEM_PROMPT_EXCERPT]
        if len(agent.system_prompt) > SYSTEM_PROMPT_EXCERPT:
            excerpt += "..."
        line += f"\n  System prompt: {excerpt}"
    return line
