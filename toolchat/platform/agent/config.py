"""Immutable runtime configuration for the model, the tool servers and the run loop.

Settings are parsed from the environment in ``toolchat.platform.settings`` and
converted into these dataclasses before any agent is built.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class LlmConfig:
    """Model routing and sampling parameters.

    Attributes:
        model: LiteLLM model name, e.g. "litellm_proxy/anthropic/claude-sonnet-4"
        api_key: Key for the LiteLLM proxy
        base_url: LiteLLM proxy URL
        temperature: Sampling temperature
        max_tokens: Output token cap for a single model call
    """

    model: str
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = 0.7
    max_tokens: int = 4096


@dataclass(frozen=True)
class MCPConfig:
    """One MCP server contributing tools to the catalog.

    Attributes:
        server_url: StreamableHTTP endpoint of the server
        tool_prefix: Extra namespace for the server's tools, giving ``mcp_<prefix>_<name>``
        headers: HTTP headers sent with every request
        timeout: Connect, write and pool timeout in seconds
        sse_read_timeout: HTTP stream read timeout in seconds
        read_timeout: MCP session read timeout in seconds
    """

    server_url: str
    tool_prefix: str | None = None
    headers: dict[str, str] | None = None
    timeout: float = 60.0
    sse_read_timeout: float = 300.0
    read_timeout: float = 120.0


@dataclass(frozen=True)
class AgentConfig:
    """Limits and switches of the orchestration loop.

    Attributes:
        max_reasoning_steps: Agent passes allowed per run; one more fails the run
        recursion_limit: LangGraph superstep cap, a second guard behind the step limit
        max_messages: History window counted in messages (None disables)
        max_tokens: History window counted in approximate tokens (None disables)
        prompt_caching: Add ephemeral cache hints to the prompt
        parallel_tool_calls: Run the tool calls of one batch concurrently
        run_timeout_seconds: Wall-clock limit of one streamed run (None disables)
    """

    max_reasoning_steps: int
    recursion_limit: int
    max_messages: int | None = 10
    max_tokens: int | None = None
    prompt_caching: bool = True
    parallel_tool_calls: bool = True
    run_timeout_seconds: float | None = 300.0

    def __post_init__(self) -> None:
        if self.max_reasoning_steps < 1:
            raise ValueError("max_reasoning_steps must be at least 1")
        if self.max_messages is not None and self.max_messages < 2:
            raise ValueError("max_messages must keep the system message and one user message")
        if self.max_tokens is not None and self.max_tokens < 1:
            raise ValueError("max_tokens must be positive")
        if self.run_timeout_seconds is not None and self.run_timeout_seconds <= 0:
            raise ValueError("run_timeout_seconds must be positive")


@dataclass(frozen=True)
class AgentIdentity:
    """Who an agent is to the API and to observability.

    Attributes:
        name: Display name
        description: One-line summary of what the agent does
        slug: Route and metrics label, e.g. "assistant"
    """

    name: str
    description: str
    slug: str
