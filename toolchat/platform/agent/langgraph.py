"""LangGraph integration components.

- LangGraphMCPTools: the MCP tool catalog as LangChain StructuredTools
- LangGraphMessageParser: conversion between LangChain messages and ``Message``
- LangGraphAgent: the Agent protocol over a compiled StateGraph, streaming
  node activity as chat events
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import aclosing, asynccontextmanager
from datetime import datetime
from typing import Any, Literal, Protocol

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langchain_core.runnables import RunnableConfig
from langchain_core.tools import BaseTool, StructuredTool
from langgraph.graph.state import CompiledStateGraph
from mcp.types import Tool as MCPTool
from openinference.instrumentation import using_session
from opentelemetry import trace
from pydantic import BaseModel, Field, create_model

from toolchat.platform.agent.config import AgentIdentity, MCPConfig
from toolchat.platform.agent.events import EventTranslator
from toolchat.platform.agent.mcp import MCPClient
from toolchat.platform.agent.messages import ExecutionResult, Message, Role, ToolCall
from toolchat.platform.agent.metrics import AgentMetricsLabels, collect_agent_metrics
from toolchat.platform.agent.protocol import Agent
from toolchat.platform.exceptions import RunTimeoutError
from toolchat.platform.streaming.events import StreamEvent

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Injectable so tests can build agents without MCP servers
type ToolFetcher = Callable[[Sequence[MCPConfig]], Awaitable[list[BaseTool]]]

# Tool calls an aborted run left open are answered as if by the tools node
TOOLS_NODE = "tools"
ABORTED_TOOL_RESULT = "Error: the run was aborted before this tool returned"

JSON_TYPES: dict[str, type] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
    "object": dict,
    "array": list,
}


def json_schema_type(prop: dict[str, Any]) -> Any:
    """Python annotation for one JSON Schema property.

    Enums become Literals, typed arrays become ``list[item]`` and a ``null``
    member of a type list makes the annotation optional.
    """
    if prop.get("enum"):
        return Literal[tuple(prop["enum"])]
    declared = prop.get("type", "string")
    types = declared if isinstance(declared, list) else [declared]
    nullable = "null" in types
    non_null = [t for t in types if t != "null"] or ["string"]
    annotation = JSON_TYPES.get(non_null[0], str)
    if annotation is list and isinstance(prop.get("items"), dict):
        annotation = list[json_schema_type(prop["items"])]
    return annotation | None if nullable else annotation


def args_model_from_schema(tool_name: str, schema: Any) -> type[BaseModel] | None:
    """Pydantic model validating a tool's arguments, or None without properties."""
    if not isinstance(schema, dict) or not schema.get("properties"):
        if not isinstance(schema, dict):
            logger.warning(f"Tool '{tool_name}' has a non-object input schema; arguments are not validated")
        return None

    required = set(schema.get("required", []))
    fields: dict[str, Any] = {}
    for name, prop in schema["properties"].items():
        annotation = json_schema_type(prop)
        description = prop.get("description", "")
        if name in required:
            fields[name] = (annotation, Field(description=description))
        elif "default" in prop:
            fields[name] = (annotation, Field(default=prop["default"], description=description))
        else:
            fields[name] = (annotation | None, Field(default=None, description=description))

    model_name = f"{tool_name.replace('-', '_').title()}Args"
    return create_model(model_name, **fields)


def render_tool_output(result: Any) -> str:
    """Tool messages carry text; structured payloads are sent as JSON."""
    if result is None:
        return "No result"
    if isinstance(result, str):
        return result
    return json.dumps(result)


def unanswered_tool_calls(messages: Sequence[BaseMessage]) -> list[dict[str, Any]]:
    """Tool calls of the newest assistant message that no tool message answers."""
    last_ai = next((m for m in reversed(messages) if isinstance(m, AIMessage)), None)
    if last_ai is None or not last_ai.tool_calls:
        return []
    answered = {m.tool_call_id for m in messages if isinstance(m, ToolMessage)}
    return [call for call in last_ai.tool_calls if call["id"] not in answered]


class LangGraphMCPTools:
    """One MCP server's tools as LangChain StructuredTools.

    The model sees ``mcp_<name>`` (or ``mcp_<prefix>_<name>``); calls are
    forwarded to the server under the original name.
    """

    def __init__(self, mcp_client: MCPClient, tool_prefix: str | None = None) -> None:
        self.mcp_client = mcp_client
        self.tool_prefix = tool_prefix

    @classmethod
    def from_config(cls, config: MCPConfig) -> "LangGraphMCPTools":
        mcp_client = MCPClient(
            server_url=config.server_url,
            headers=config.headers,
            timeout=config.timeout,
            sse_read_timeout=config.sse_read_timeout,
            read_timeout=config.read_timeout,
        )
        return cls(mcp_client, config.tool_prefix)

    def catalog_name(self, name: str) -> str:
        return f"mcp_{self.tool_prefix}_{name}" if self.tool_prefix else f"mcp_{name}"

    async def convert_tools(self) -> list[StructuredTool]:
        tools = await self.mcp_client.list_tools()
        return [self.to_langchain_tool(tool) for tool in tools if tool.inputSchema]

    def to_langchain_tool(self, mcp_tool: MCPTool) -> StructuredTool:
        server_name = mcp_tool.name

        async def invoke(**kwargs: Any) -> str:
            return render_tool_output(await self.mcp_client.call_tool(server_name, kwargs))

        tool_kwargs: dict[str, Any] = {
            "name": self.catalog_name(server_name),
            "description": mcp_tool.description or f"MCP tool: {server_name}",
            "coroutine": invoke,
        }
        args_model = args_model_from_schema(server_name, mcp_tool.inputSchema)
        if args_model is not None:
            tool_kwargs["args_schema"] = args_model
        return StructuredTool(**tool_kwargs)

    @classmethod
    async def fetch_all(cls, configs: Sequence[MCPConfig]) -> list[BaseTool]:
        """Fetch the combined catalog of several MCP servers concurrently.

        Raises:
            ExceptionGroup: If any server fails to respond
            ValueError: If two servers expose the same catalog name
        """
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(cls.from_config(config).convert_tools()) for config in configs]

        tools: list[BaseTool] = []
        owners: dict[str, str] = {}
        for config, task in zip(configs, tasks, strict=True):
            for tool in task.result():
                if owner := owners.get(tool.name):
                    raise ValueError(
                        f"Tool name collision: '{tool.name}' from {config.server_url} conflicts with "
                        f"{owner}. Set tool_prefix on one or both MCPConfigs."
                    )
                owners[tool.name] = config.server_url
                tools.append(tool)
        return tools


class LangGraphMessageParser:
    """Converts between LangChain messages and framework-agnostic ``Message``."""

    ROLES: tuple[tuple[type[BaseMessage], Role], ...] = (
        (SystemMessage, Role.SYSTEM),
        (HumanMessage, Role.USER),
        (AIMessage, Role.ASSISTANT),
    )

    def to_execution_result(self, langgraph_result: dict[str, Any], thread_id: str) -> ExecutionResult:
        """Summarize the final graph state of a non-streaming run."""
        messages = langgraph_result.get("messages", [])
        answer = next(
            (m for m in reversed(messages) if isinstance(m, AIMessage) and not m.tool_calls),
            None,
        )
        return ExecutionResult(
            response=self.extract_content(answer) if answer is not None else "",
            messages=self.to_messages(messages),
            reasoning_steps=langgraph_result.get("reasoning_steps", 0),
            thread_id=thread_id,
            metadata={
                "framework": "langgraph",
                "input_tokens_by_model": langgraph_result.get("input_tokens_by_model", {}),
                "output_tokens_by_model": langgraph_result.get("output_tokens_by_model", {}),
            },
        )

    @classmethod
    def to_messages(cls, messages: Sequence[BaseMessage]) -> list[Message]:
        return [cls.to_message(msg) for msg in messages]

    @classmethod
    def to_message(cls, msg: BaseMessage) -> Message:
        calls = msg.tool_calls if isinstance(msg, AIMessage) else []
        return Message(
            role=cls.get_role(msg),
            content=cls.extract_content(msg),
            tool_calls=tuple(
                ToolCall(id=c.get("id") or "", name=c["name"], args=c.get("args", {})) for c in calls
            ),
            tool_call_id=getattr(msg, "tool_call_id", None),
            name=msg.name if isinstance(msg, ToolMessage) else None,
        )

    @staticmethod
    def to_langchain(message: Message) -> BaseMessage:
        match message.role:
            case Role.SYSTEM:
                return SystemMessage(content=message.content)
            case Role.USER:
                return HumanMessage(content=message.content)
            case Role.ASSISTANT:
                return AIMessage(
                    content=message.content,
                    tool_calls=[{"id": c.id, "name": c.name, "args": c.args} for c in message.tool_calls],
                )
            case Role.TOOL:
                return ToolMessage(
                    content=message.content,
                    tool_call_id=message.tool_call_id or "",
                    name=message.name,
                )
        raise ValueError(f"Unsupported role: {message.role}")

    @classmethod
    def get_role(cls, msg: BaseMessage) -> Role:
        for message_cls, role in cls.ROLES:
            if isinstance(msg, message_cls):
                return role
        return Role.TOOL

    @staticmethod
    def extract_content(msg: BaseMessage) -> str:
        """Plain text of a message; content blocks contribute their text."""
        content = msg.content
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return "".join(p.get("text", "") if isinstance(p, dict) else str(p) for p in content)
        return str(content)


class InitialStateBuilder(Protocol):
    """Builds the graph input for one run from the new user message."""

    def __call__(
        self,
        message: str,
        thread_id: str,
        history: Sequence[BaseMessage] = (),
        utc_now: datetime | None = None,
    ) -> dict[str, Any]: ...


class LangGraphAgent(Agent):
    """The Agent protocol over a compiled StateGraph.

    ``thread_id`` doubles as the LangGraph checkpoint key, so repeated runs on
    one chat continue from the checkpointed run state.
    """

    def __init__(
        self,
        graph: CompiledStateGraph,
        identity: AgentIdentity,
        initial_state_builder: InitialStateBuilder,
        message_parser: LangGraphMessageParser | None = None,
        tools: list[BaseTool] | None = None,
        run_timeout_seconds: float | None = None,
    ) -> None:
        """Initialize the agent.

        Args:
            graph: Compiled graph, already configured with its recursion limit
            identity: Agent identity
            initial_state_builder: Builds the graph input for a run
            message_parser: Message converter, defaults to LangGraphMessageParser
            tools: Tool catalog bound to the model, kept for introspection
            run_timeout_seconds: Wall-clock limit of a run (None disables)
        """
        self._graph = graph
        self._identity = identity
        self._initial_state_builder = initial_state_builder
        self._message_parser = message_parser or LangGraphMessageParser()
        self._tools = tools or []
        self._run_timeout_seconds = run_timeout_seconds

    @property
    def identity(self) -> AgentIdentity:
        return self._identity

    @property
    def name(self) -> str:
        return self._identity.name

    @property
    def description(self) -> str:
        return self._identity.description

    @property
    def slug(self) -> str:
        return self._identity.slug

    @property
    def tools(self) -> list[BaseTool]:
        return self._tools

    @property
    def checkpointer(self):
        return getattr(self._graph, "checkpointer", None)

    @staticmethod
    def _run_config(thread_id: str) -> RunnableConfig:
        return {"configurable": {"thread_id": thread_id}}

    async def _resume_thread(self, thread_id: str) -> bool:
        """Load the thread's run state, answering tool calls an aborted run left open.

        A run cancelled while its tools were executing checkpoints an assistant
        message whose tool calls have no tool message. Each such call gets an
        error result so the next reasoning pass sees a complete exchange.

        Returns:
            Whether the thread has checkpointed messages
        """
        if not self.checkpointer:
            return False
        config = self._run_config(thread_id)
        snapshot = await self._graph.aget_state(config)
        messages: list[BaseMessage] = snapshot.values.get("messages") or []
        if not messages:
            return False

        unanswered = unanswered_tool_calls(messages)
        if unanswered:
            logger.warning(
                f"Thread {thread_id} has {len(unanswered)} unanswered tool call(s) from an aborted run"
            )
            results = [
                ToolMessage(
                    content=ABORTED_TOOL_RESULT,
                    tool_call_id=call["id"],
                    name=call["name"],
                    status="error",
                )
                for call in unanswered
            ]
            await self._graph.aupdate_state(config, {"messages": results}, as_node=TOOLS_NODE)
        return True

    async def _initial_state(
        self,
        message: str,
        thread_id: str,
        history: Sequence[Message],
        utc_now: datetime | None,
    ) -> dict[str, Any]:
        """Seed from external history unless the thread already has a checkpoint."""
        if await self._resume_thread(thread_id) and history:
            logger.debug(f"Thread {thread_id} has run state; ignoring {len(history)} stored message(s)")
            history = ()
        return self._initial_state_builder(
            message=message,
            thread_id=thread_id,
            history=[self._message_parser.to_langchain(m) for m in history],
            utc_now=utc_now,
        )

    @asynccontextmanager
    async def _traced_run(self, thread_id: str) -> AsyncIterator[None]:
        """Span, OpenInference session and run metrics around one run."""
        with tracer.start_as_current_span(self.name) as span, using_session(session_id=thread_id):
            span.set_attribute("agent.slug", self.slug)
            span.set_attribute("chat.thread_id", thread_id)
            async with collect_agent_metrics(AgentMetricsLabels(self.slug)):
                yield

    async def run(
        self,
        message: str,
        thread_id: str,
        history: Sequence[Message] = (),
        utc_now: datetime | None = None,
    ) -> ExecutionResult:
        """Run to completion; failures propagate to the caller.

        Raises:
            RunTimeoutError: If the run exceeds ``run_timeout_seconds``
        """
        init_state = await self._initial_state(message, thread_id, history, utc_now)
        timeout = asyncio.timeout(self._run_timeout_seconds)
        async with self._traced_run(thread_id):
            try:
                async with timeout:
                    result = await self._graph.ainvoke(init_state, config=self._run_config(thread_id))
            except TimeoutError as e:
                if timeout.expired():
                    raise RunTimeoutError(self._run_timeout_seconds or 0) from e
                raise
        return self._message_parser.to_execution_result(langgraph_result=result, thread_id=thread_id)

    async def _within_deadline(self, stream: AsyncIterator[Any]) -> AsyncIterator[Any]:
        """Re-yield stream items under the run deadline.

        Only the wait for the next item is cancelled at the deadline, never the
        consumer while it handles an item, so expiry always surfaces here as
        RunTimeoutError.
        """
        deadline = None
        if self._run_timeout_seconds is not None:
            deadline = asyncio.get_running_loop().time() + self._run_timeout_seconds
        async with aclosing(stream):
            while True:
                timeout = asyncio.timeout_at(deadline)
                try:
                    async with timeout:
                        item = await anext(stream)
                except StopAsyncIteration:
                    return
                except TimeoutError as e:
                    if timeout.expired():
                        raise RunTimeoutError(self._run_timeout_seconds or 0) from e
                    raise
                yield item

    async def run_stream(
        self,
        message: str,
        thread_id: str,
        history: Sequence[Message] = (),
        utc_now: datetime | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Run and yield chat events as node activity arrives.

        Node activity is read through LangGraph's ``custom`` stream mode and
        passed through an EventTranslator, which guarantees ``connected``
        first and exactly one terminal ``done`` or ``error``. Any failure,
        including the run timeout, becomes the ``error`` event.
        """
        translator = EventTranslator()
        yield translator.connected()

        try:
            async with self._traced_run(thread_id):
                init_state = await self._initial_state(message, thread_id, history, utc_now)
                activities = self._graph.astream(
                    init_state,
                    config=self._run_config(thread_id),
                    stream_mode="custom",
                )
                async with aclosing(self._within_deadline(activities)) as stream:
                    async for activity in stream:
                        if (event := translator.translate(activity)) is not None:
                            yield event
            done = translator.done()
        except Exception as e:
            logger.exception(f"Run failed for thread {thread_id}: {e}")
            yield translator.error(e)
            return

        yield done
