"""Shared fixtures for Agent Trials tests."""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest

from agent_trials.exceptions import LLMError
from agent_trials.execution import (
    AgentFeatures,
    AgentRecord,
    Dispatcher,
    HttpAgentTransport,
    InMemoryAgentRegistry,
    MockSupervisor,
)
from agent_trials.evaluation import MockJudge, Planner
from agent_trials.orchestration import CollectingSink, TestRunner
from agent_trials.storage import InMemoryStore


def sse(*events: Dict[str, Any]) -> bytes:
    """Encode events as Server-Sent-Event frames."""
    return "".join(f"data: {json.dumps(e)}\n\n" for e in events).encode()


def content(text: str) -> Dict[str, Any]:
    return {"type": "content", "content": text}


def thread(thread_id: str) -> Dict[str, Any]:
    return {"type": "thread_id", "thread_id": thread_id}


def endless_stream(first: bytes = b""):
    """Chat body factory for a stream that never closes."""

    async def body():
        if first:
            yield first
        while True:
            await asyncio.sleep(0.01)
            yield b"\n"

    return body


def broken_stream(*parts: bytes):
    """Chat body factory for a stream whose connection drops after ``parts``."""

    async def body():
        for part in parts:
            yield part
        raise httpx.ReadError("connection reset by peer")

    return body


class ScriptedLLM:
    """LLM stand-in that returns queued responses in order.

    An Exception in the queue is raised instead of returned.
    """

    def __init__(self, *responses: Union[str, Exception]):
        self.responses: List[Union[str, Exception]] = list(responses)
        self.prompts: List[str] = []

    async def call(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            raise LLMError("No scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def call_count(self) -> int:
        return len(self.prompts)


class FakeAgentServer:
    """In-process agent HTTP API served through httpx.MockTransport.

    ``chat_body`` is bytes, or a zero-argument callable returning an async
    byte iterator (a fresh one per request).
    """

    def __init__(
        self,
        chat_body: Union[bytes, Callable[[], Any]] = b"",
        chat_status: int = 200,
        thread_messages: Optional[Any] = None,
        thread_status: int = 200,
        health_status: int = 200,
    ):
        self.chat_body = chat_body
        self.chat_status = chat_status
        self.thread_messages = thread_messages
        self.thread_status = thread_status
        self.health_status = health_status
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/health":
            return httpx.Response(self.health_status)
        if path == "/chat":
            body = self.chat_body() if callable(self.chat_body) else self.chat_body
            return httpx.Response(self.chat_status, content=body)
        if path.startswith("/threads/"):
            if self.thread_messages is None:
                return httpx.Response(404, text="thread not found")
            return httpx.Response(self.thread_status, json=self.thread_messages)
        return httpx.Response(404)

    def mock_transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def agent_transport(self) -> HttpAgentTransport:
        return HttpAgentTransport(transport=self.mock_transport())

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]


@pytest.fixture
def support_agent():
    return AgentRecord(
        id="a1",
        name="Support Bot",
        status="running",
        port=4101,
        features=AgentFeatures(memory=True, mcp=True),
        system_prompt="You answer billing and pricing questions for Acme.",
        project_id="p1",
    )


@pytest.fixture
def sales_agent():
    return AgentRecord(
        id="a2",
        name="Sales Bot",
        status="stopped",
        port=4102,
        project_id="p1",
    )


@pytest.fixture
def registry(support_agent, sales_agent):
    return InMemoryAgentRegistry([support_agent, sales_agent])


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def telemetry():
    return CollectingSink()


def make_runner(
    registry: InMemoryAgentRegistry,
    server: FakeAgentServer,
    llm: Optional[ScriptedLLM] = None,
    judge: Any = None,
    store: Optional[InMemoryStore] = None,
    telemetry: Optional[CollectingSink] = None,
    supervisor: Any = None,
    stream_timeout: float = 5.0,
) -> TestRunner:
    """Runner wired to in-process fakes."""
    llm = llm or ScriptedLLM()
    dispatcher = Dispatcher(
        registry,
        supervisor or MockSupervisor(registry),
        server.agent_transport(),
        stream_timeout=stream_timeout,
    )
    return TestRunner(
        store if store is not None else InMemoryStore(),
        Planner(llm, registry),
        dispatcher,
        judge if judge is not None else MockJudge(),
        telemetry,
    )
