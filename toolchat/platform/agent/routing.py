"""Orchestration loop routing.

The loop alternates between the agent node (reasoning) and the tools node
until the model answers without requesting tools.
"""

from collections.abc import Sequence
from enum import StrEnum

from langchain_core.messages import AnyMessage
from langgraph.graph import END

from toolchat.platform.agent.langgraph import LangGraphMessageParser
from toolchat.platform.agent.messages import Message, ToolCall


class RunStep(StrEnum):
    """States of the orchestration loop."""

    AGENT = "agent"
    TOOLS = "tools"
    TERMINAL = "terminal"


def next_state(last_message: Message, pending_tool_calls: Sequence[ToolCall]) -> RunStep:
    """Decide where the loop goes after a message has been appended.

    Pending tool calls win, then trailing tool output, otherwise the run ends.

    Args:
        last_message: Most recently appended message
        pending_tool_calls: Unresolved tool calls carried by that message

    Returns:
        The next loop state
    """
    if pending_tool_calls:
        return RunStep.TOOLS
    if last_message.has_tool_output:
        return RunStep.AGENT
    return RunStep.TERMINAL


def route_after_agent(state: dict) -> str:
    """LangGraph conditional edge wrapping next_state for the agent node."""
    messages: list[AnyMessage] = state["messages"]
    last = LangGraphMessageParser.to_message(messages[-1])
    step = next_state(last, last.tool_calls if last.has_pending_tool_calls else ())
    if step == RunStep.TERMINAL:
        return END
    return step.value
