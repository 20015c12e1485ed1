"""Integration test fixtures.

This module provides shared fixtures for integration tests including:
- A scripted chat model standing in for the LiteLLM backend
- Real assistant graphs built around the scripted model and local tools
- Route/handler tests with a stub agent (shallow app setup)
"""

import asyncio
from collections.abc import AsyncIterator, Generator, Sequence
from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessageChunk
from langchain_core.tools import BaseTool, tool
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import InMemorySaver

from toolchat.agents.assistant.agent import AssistantAgentBuilder
from toolchat.agents.assistant.routes import assistant_router
from toolchat.platform.agent.config import AgentConfig, AgentIdentity, LlmConfig, MCPConfig
from toolchat.platform.agent.langgraph import LangGraphAgent
from toolchat.platform.agent.llm_client import LlmClient
from toolchat.platform.agent.messages import ExecutionResult, Message, Role
from toolchat.platform.server.app import register_exception_handlers
from toolchat.platform.server.health import HealthCheck
from toolchat.platform.server.routes import root as root_router
from toolchat.platform.store.conversations import InMemoryConversationStore
from toolchat.platform.streaming.events import (
    ConnectedEvent,
    DoneEvent,
    StreamEvent,
    TokenEvent,
    ToolEndEvent,
    ToolStartEvent,
)

TEST_MODEL = "test-model"
TEST_USER = "user-1"

# =============================================================================
# Scripted Model
# =============================================================================


class ScriptedChatModel:
    """Chat model double that replays one scripted pass per astream call.

    A pass is a sequence of AIMessageChunks. An exception in the sequence is
    raised at that point of the stream; a number sleeps that many seconds.
    """

    def __init__(self, passes: Sequence[Sequence[Any]]):
        self.passes = [list(p) for p in passes]
        self.prompts: list[list] = []
        self.bound_tools: list[BaseTool] = []

    def bind_tools(self, tools: list[BaseTool]) -> "ScriptedChatModel":
        self.bound_tools = list(tools)
        return self

    async def astream(self, input, config=None, **kwargs) -> AsyncIterator[AIMessageChunk]:
        self.prompts.append(list(input))
        if not self.passes:
            raise AssertionError("model called more times than scripted")
        for item in self.passes.pop(0):
            if isinstance(item, BaseException):
                raise item
            if isinstance(item, int | float):
                await asyncio.sleep(item)
                continue
            yield item


@pytest.fixture
def scripted_model():
    """Factory for scripted models: scripted_model(pass1, pass2, ...)."""

    def make(*passes: Sequence[Any]) -> ScriptedChatModel:
        return ScriptedChatModel(passes)

    return make


# =============================================================================
# Tools
# =============================================================================


@tool
def calculator(a: int, b: int) -> int:
    """Add two integers."""
    return a + b


@tool
def flaky(query: str) -> str:
    """A tool whose backend is down."""
    raise RuntimeError("backend unavailable")


@tool
async def slow(seconds: float) -> str:
    """A tool that takes its time."""
    await asyncio.sleep(seconds)
    return "finished"


@pytest.fixture
def tools() -> list[BaseTool]:
    return [calculator, flaky, slow]


# =============================================================================
# Agent Fixtures
# =============================================================================


@pytest.fixture
def stub_agent_identity() -> AgentIdentity:
    """Create a stub agent identity with canned test data."""
    return AgentIdentity(
        name="Test Agent",
        slug="test-agent",
        description="A test agent for integration tests",
    )


@pytest.fixture
def agent_config() -> AgentConfig:
    return AgentConfig(
        max_reasoning_steps=5,
        recursion_limit=50,
        max_messages=None,
        prompt_caching=False,
        run_timeout_seconds=None,
    )


@pytest.fixture
def checkpointer() -> InMemorySaver:
    return InMemorySaver()


@pytest.fixture
def build_agent(
    stub_agent_identity: AgentIdentity,
    agent_config: AgentConfig,
    tools: list[BaseTool],
    checkpointer: InMemorySaver,
):
    """Factory building a real assistant graph around a scripted model."""

    async def build(
        model: ScriptedChatModel,
        config: AgentConfig | None = None,
        checkpointer_override: BaseCheckpointSaver | None = None,
    ) -> LangGraphAgent:
        llm_client = LlmClient(
            stub_agent_identity.slug, LlmConfig(model=TEST_MODEL, temperature=0.0), llm=model
        )
        builder = AssistantAgentBuilder(
            agent_config=config or agent_config,
            llm_config=LlmConfig(model=TEST_MODEL),
            mcp_configs=[MCPConfig(server_url="http://mcp.test/mcp")],
            checkpointer=checkpointer_override or checkpointer,
            identity=stub_agent_identity,
            tool_fetcher=AsyncMock(return_value=tools),
            llm_client=llm_client,
        )
        return await builder.build()

    return build


@pytest.fixture
def initial_state_builder():
    """Create a simple initial state builder for LangGraphAgent tests."""

    def builder(
        message: str, thread_id: str, history=(), utc_now: datetime | None = None
    ) -> dict[str, Any]:
        return {"messages": [*history, message], "thread_id": thread_id}

    return builder


@pytest.fixture
def stub_execution_result() -> ExecutionResult:
    """Create a stub execution result with canned test data."""
    return ExecutionResult(
        response="2 + 2 = 4",
        messages=[
            Message(role=Role.USER, content="What is 2 + 2?"),
            Message(role=Role.ASSISTANT, content="2 + 2 = 4"),
        ],
        reasoning_steps=1,
        thread_id="test-thread-123",
        metadata={"framework": "langgraph"},
    )


@pytest.fixture
def stub_stream_events() -> list[StreamEvent]:
    """Create stub stream events with canned test data."""
    return [
        ConnectedEvent(),
        ToolStartEvent(tool="calculator", input={"a": 2, "b": 2}, id="call_1"),
        ToolEndEvent(tool="calculator", output=4, id="call_1"),
        TokenEvent(token="4"),
        DoneEvent(),
    ]


@pytest.fixture
def stub_agent(
    stub_agent_identity: AgentIdentity,
    stub_execution_result: ExecutionResult,
    stub_stream_events: list[StreamEvent],
) -> Mock:
    """Create a stub agent that provides canned responses.

    Replace ``agent.stream_events`` to change what run_stream yields; every
    run_stream call is recorded in ``agent.stream_calls``.
    """
    agent = Mock()
    agent.identity = stub_agent_identity
    agent.name = stub_agent_identity.name
    agent.description = stub_agent_identity.description
    agent.slug = stub_agent_identity.slug

    agent.run = AsyncMock(return_value=stub_execution_result)

    agent.stream_events = list(stub_stream_events)
    agent.stream_calls = []

    async def stream_generator(
        message: str,
        thread_id: str,
        history: Sequence[Message] = (),
        utc_now: datetime | None = None,
    ) -> AsyncIterator[StreamEvent]:
        agent.stream_calls.append({"message": message, "thread_id": thread_id, "history": list(history)})
        for event in agent.stream_events:
            yield event

    agent.run_stream = stream_generator

    return agent


# =============================================================================
# FastAPI App Fixtures (Shallow - no middleware, minimal lifespan)
# =============================================================================


@pytest.fixture
def store() -> InMemoryConversationStore:
    return InMemoryConversationStore()


@pytest.fixture
def test_app(stub_agent: Mock, store: InMemoryConversationStore, checkpointer: InMemorySaver) -> FastAPI:
    """Create a minimal test FastAPI app for integration tests.

    This is intentionally SHALLOW - no middleware, no full lifespan.
    Tests route handlers and their interaction with dependencies.
    """
    app = FastAPI()

    app.state.agents = {AssistantAgentBuilder: stub_agent}
    app.state.store = store
    app.state.checkpointer = checkpointer
    register_exception_handlers(app)

    app.include_router(root_router)
    app.include_router(assistant_router)

    return app


@pytest.fixture
def client(test_app: FastAPI) -> TestClient:
    """Create a test client for the test app.

    No context manager needed since we're not using lifespan.
    """
    return TestClient(test_app)


@pytest.fixture
def client_with_health_enabled(test_app: FastAPI) -> Generator[TestClient]:
    """Create a test client with health checks enabled."""
    HealthCheck.enable()
    yield TestClient(test_app)
    HealthCheck.disable()


@pytest.fixture
def client_with_health_disabled(test_app: FastAPI) -> Generator[TestClient]:
    """Create a test client with health checks disabled."""
    HealthCheck.disable()
    yield TestClient(test_app)


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {"X-User-ID": TEST_USER}


@pytest.fixture
def chat_id(client: TestClient, user_headers: dict[str, str]) -> str:
    """A chat owned by the test user."""
    response = client.post("/chats", json={"title": "Arithmetic"}, headers=user_headers)
    assert response.status_code == 201
    return response.json()["id"]
