"""Application settings and configuration.

This module provides Pydantic settings classes for application configuration,
loaded from environment variables with support for nested configuration.
"""

import logging

import pydantic_settings
from pydantic import BaseModel, Field, field_validator

from toolchat.platform.agent.config import AgentConfig, LlmConfig, MCPConfig


class AppHTTPSettings(BaseModel):
    url: str = Field("")
    host: str = Field("0.0.0.0")
    port: int = Field(8000)
    log_level: str = Field("INFO")
    log_json: bool | None = Field(
        None, description="Override log format: True=JSON, False=console, None=auto"
    )

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v):
        v_upper = v.upper()
        if v_upper not in logging._nameToLevel:
            raise ValueError(f'invalid value "{v}"')
        return v_upper


class OpenTelemetrySettings(BaseModel):
    host: str = Field("")
    port: int = Field(4317)
    enabled: bool = Field(True)
    excluded_urls: str = Field("metrics,health,info")

    @property
    def endpoint(self) -> str:
        return f"http://{self.host}:{self.port}"


class BugsnagSettings(BaseModel):
    api_key: str
    release_stage: str = Field("development")

    @field_validator("release_stage")
    @classmethod
    def _validate_bugsnag_release_stage(cls, v):
        if v not in ["development", "production", "local"]:
            raise ValueError(f'invalid bugsnag release stage "{v}"')
        return v


class LitellmSettings(BaseModel):
    proxy_api_base: str
    proxy_api_key: str


class AgentSettings(BaseModel):
    """Model and orchestration loop settings.

    Example: AGENT__MAX_MESSAGES=20, AGENT__MAX_TOKENS=8000
    """

    model: str = Field("litellm_proxy/anthropic/claude-sonnet-4-5")
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    max_output_tokens: int = Field(4096, gt=0)
    max_reasoning_steps: int = Field(15, gt=0)
    recursion_limit: int = Field(50, gt=0)
    max_messages: int | None = Field(10, gt=1, description="History window in messages")
    max_tokens: int | None = Field(None, gt=0, description="History window in approximate tokens")
    prompt_caching: bool = Field(True)
    parallel_tool_calls: bool = Field(True)
    run_timeout_seconds: float | None = Field(300.0, gt=0)

    def to_agent_config(self) -> AgentConfig:
        return AgentConfig(
            max_reasoning_steps=self.max_reasoning_steps,
            recursion_limit=self.recursion_limit,
            max_messages=self.max_messages,
            max_tokens=self.max_tokens,
            prompt_caching=self.prompt_caching,
            parallel_tool_calls=self.parallel_tool_calls,
            run_timeout_seconds=self.run_timeout_seconds,
        )

    def to_llm_config(self, litellm: LitellmSettings) -> LlmConfig:
        return LlmConfig(
            model=self.model,
            api_key=litellm.proxy_api_key,
            base_url=litellm.proxy_api_base,
            temperature=self.temperature,
            max_tokens=self.max_output_tokens,
        )


class CheckpointSettings(BaseModel):
    """In-process checkpoint retention."""

    ttl_seconds: float | None = Field(3600.0, gt=0)
    max_threads: int | None = Field(1000, gt=0)


class MCPServerSettings(BaseModel):
    """Configuration for a single MCP server.

    Attributes:
        url: URL of the MCP server endpoint
        prefix: Optional prefix for tool names to avoid collisions
        headers: HTTP headers for every request, e.g. Authorization
        timeout: Connection timeout in seconds
        sse_read_timeout: SSE stream read timeout in seconds
        read_timeout: General read timeout in seconds
    """

    url: str
    prefix: str | None = None
    headers: dict[str, str] | None = None
    timeout: float = 60.0
    sse_read_timeout: float = 300.0
    read_timeout: float = 120.0

    def to_config(self) -> MCPConfig:
        return MCPConfig(
            server_url=self.url,
            tool_prefix=self.prefix,
            headers=self.headers,
            timeout=self.timeout,
            sse_read_timeout=self.sse_read_timeout,
            read_timeout=self.read_timeout,
        )


class AgentsMCPSettings(BaseModel):
    """MCP server configurations keyed by agent slug.

    Each agent can have multiple MCP servers configured via JSON env vars.
    Example: AGENTS_MCP__ASSISTANT='[{"url":"http://...","prefix":"books"}]'
    """

    assistant: list[MCPServerSettings] = []


class Settings(pydantic_settings.BaseSettings):
    model_config = pydantic_settings.SettingsConfigDict(env_nested_delimiter="__")

    app_http: AppHTTPSettings
    opentelemetry: OpenTelemetrySettings
    bugsnag: BugsnagSettings

    # LiteLLM configuration
    litellm: LitellmSettings

    # Orchestration loop and history window
    agent: AgentSettings = AgentSettings()

    # Checkpoint retention
    checkpoint: CheckpointSettings = CheckpointSettings()

    # MCP server configurations per agent
    agents_mcp: AgentsMCPSettings = AgentsMCPSettings()
