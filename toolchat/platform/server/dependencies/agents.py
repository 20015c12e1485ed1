"""Agent lookup dependency for FastAPI routes."""

from collections.abc import Callable

from fastapi import HTTPException, Request

from toolchat.platform.agent.protocol import Agent


def get_agent(builder_cls: type) -> Callable[[Request], Agent]:
    """Dependency returning the agent built at startup by ``builder_cls``.

    Usage:
        agent: Agent = Depends(get_agent(AssistantAgentBuilder))

    Raises:
        HTTPException: 503 when no such agent was built
    """

    def _get_agent(request: Request) -> Agent:
        agent = getattr(request.app.state, "agents", {}).get(builder_cls)
        if agent is None:
            raise HTTPException(status_code=503, detail=f"Agent {builder_cls.__name__} is not available")
        return agent

    return _get_agent
