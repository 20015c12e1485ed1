"""LangGraph state definition for the assistant agent."""

from toolchat.platform.agent.state import BaseAgentState


class AgentState(BaseAgentState):
    """LangGraph state for the assistant agent.

    Inherits from BaseAgentState and adds:
        reasoning_steps: Agent passes taken in the current run
    """

    reasoning_steps: int
