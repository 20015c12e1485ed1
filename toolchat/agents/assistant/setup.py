"""Assistant agent setup.

This module provides a factory function that builds the assistant from the
application settings so the server can cache it at startup.
"""

from fastapi import FastAPI

from toolchat.agents.assistant.agent import AssistantAgentBuilder
from toolchat.platform.agent.protocol import Agent


async def build_assistant_agent(app: FastAPI) -> tuple[type, Agent]:
    """Build the assistant from app settings.

    Args:
        app: FastAPI application with initialized settings and checkpointer

    Returns:
        Tuple of (builder_class, agent) for the agent cache
    """
    settings = app.state.settings

    builder = AssistantAgentBuilder.default_builder(
        llm_config=settings.agent.to_llm_config(settings.litellm),
        checkpointer=app.state.checkpointer,
        mcp_configs=[s.to_config() for s in settings.agents_mcp.assistant],
        agent_config=settings.agent.to_agent_config(),
    )
    agent = await builder.build()
    return AssistantAgentBuilder, agent
