"""Tool invoker node that executes the pending tool call batch."""

import asyncio
import logging
from time import monotonic
from typing import Any

from langchain_core.messages import AIMessage, ToolMessage
from langchain_core.tools import BaseTool
from langgraph.types import StreamWriter

from toolchat.agents.assistant.state import AgentState
from toolchat.platform.agent.config import AgentConfig
from toolchat.platform.agent.events import ToolDispatched, ToolResolved
from toolchat.platform.agent.messages import ToolCall, ToolResult
from toolchat.platform.agent.metrics import ToolMetricsLabels, record_tool_call
from toolchat.platform.exceptions import ToolBackendError

from .base import Node

logger = logging.getLogger(__name__)

_JSON_SCALARS = (str, int, float, bool, dict, list)


class ToolInvokerNode(Node):
    """Node that resolves every tool call of the last assistant message.

    Each call yields exactly one tool message with the matching tool call id.
    Failures, including unknown tool names, become error tool messages so
    the model can see them and recover on its next pass.
    """

    def __init__(self, tools: list[BaseTool], config: AgentConfig, agent_slug: str):
        """Initialize the tool invoker.

        Args:
            tools: Tool catalog available to the agent
            config: Agent configuration
            agent_slug: The agent's slug for metrics labeling
        """
        self.tools_by_name = {tool.name: tool for tool in tools}
        self.config = config
        self.agent_slug = agent_slug

    @staticmethod
    def pending_tool_calls(state: AgentState) -> list[ToolCall]:
        last = state["messages"][-1]
        if not isinstance(last, AIMessage):
            return []
        return [
            ToolCall(id=tc.get("id") or "", name=tc["name"], args=tc.get("args", {}))
            for tc in last.tool_calls
        ]

    async def _execute(self, call: ToolCall) -> Any:
        tool = self.tools_by_name.get(call.name)
        if tool is None:
            raise ToolBackendError("no such tool in the catalog", call.name)
        output = await tool.ainvoke(call.args)
        if output is not None and not isinstance(output, _JSON_SCALARS):
            output = str(output)
        return output

    async def _invoke(self, call: ToolCall, writer: StreamWriter) -> ToolResult:
        writer(ToolDispatched(call))
        labels = ToolMetricsLabels(self.agent_slug, call.name)
        start_time = monotonic()
        try:
            output = await self._execute(call)
        except Exception as e:
            record_tool_call(labels, duration=monotonic() - start_time, error=True)
            logger.warning(f"Tool '{call.name}' failed: {e}")
            result = ToolResult(call.id, call.name, f"Error: {e!s}", is_error=True)
        else:
            record_tool_call(labels, duration=monotonic() - start_time)
            result = ToolResult(call.id, call.name, output)

        writer(ToolResolved(result))
        return result

    async def __call__(self, state: AgentState, writer: StreamWriter) -> dict[str, Any]:
        """Execute the pending tool calls.

        Args:
            state: Current agent state; the last message carries the tool calls
            writer: Custom stream writer for dispatch/resolve activity

        Returns:
            State update with one tool message per call, in call order
        """
        calls = self.pending_tool_calls(state)
        if self.config.parallel_tool_calls and len(calls) > 1:
            async with asyncio.TaskGroup() as tg:
                tasks = {call.id: tg.create_task(self._invoke(call, writer)) for call in calls}
            results = {tool_call_id: task.result() for tool_call_id, task in tasks.items()}
        else:
            results = {call.id: await self._invoke(call, writer) for call in calls}

        messages = [
            ToolMessage(
                content=results[call.id].content,
                tool_call_id=call.id,
                name=call.name,
                status="error" if results[call.id].is_error else "success",
            )
            for call in calls
        ]
        return {"messages": messages}
