"""Toolchat platform infrastructure.

This module provides the core infrastructure for the chat service:
- Agent protocol and base classes
- LangGraph integration
- MCP (Model Context Protocol) client
- Streaming wire codec and transcript reconstruction
- Conversation storage
- FastAPI server configuration and observability utilities
"""

from toolchat.platform.agent.config import (
    AgentConfig,
    AgentIdentity,
    LlmConfig,
    MCPConfig,
)
from toolchat.platform.agent.langgraph import (
    LangGraphAgent,
    LangGraphMCPTools,
)
from toolchat.platform.agent.mcp import MCPClient
from toolchat.platform.agent.messages import (
    ExecutionResult,
    Message,
)
from toolchat.platform.agent.protocol import Agent
from toolchat.platform.settings import Settings
from toolchat.platform.streaming.events import StreamEvent

__all__ = [
    # Core protocols
    "Agent",
    # Configuration
    "AgentConfig",
    "AgentIdentity",
    "LlmConfig",
    "MCPConfig",
    "Settings",
    # LangGraph integration
    "LangGraphAgent",
    "LangGraphMCPTools",
    # MCP
    "MCPClient",
    # Message types
    "ExecutionResult",
    "Message",
    "StreamEvent",
]
