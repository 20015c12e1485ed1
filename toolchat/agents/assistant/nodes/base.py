"""Base protocol for agent nodes."""

from typing import Any, Protocol, runtime_checkable

from langgraph.types import StreamWriter

from toolchat.agents.assistant.state import AgentState


@runtime_checkable
class Node(Protocol):
    """Protocol for agent graph nodes.

    Nodes are callable objects that return a partial AgentState update.
    LangGraph injects ``writer``, the custom stream channel nodes use to
    report activity while a run is streamed.
    """

    async def __call__(self, state: AgentState, writer: StreamWriter) -> dict[str, Any]:
        """Process state and return a state update.

        Args:
            state: Current agent state
            writer: Custom stream writer for activity records

        Returns:
            Partial state update merged by the graph reducers
        """
        ...
