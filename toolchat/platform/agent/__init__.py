"""Agent infrastructure module.

This module provides the core abstractions and integrations for building agents:
- Agent protocol definition
- Configuration dataclasses
- History preparation (trimming and cache hints)
- LangGraph integration and routing
- Event translation for streamed runs
- MCP client for tool discovery
- Agent-specific metrics
"""

from toolchat.platform.agent.checkpoint import EvictingMemorySaver
from toolchat.platform.agent.config import (
    AgentConfig,
    AgentIdentity,
    LlmConfig,
    MCPConfig,
)
from toolchat.platform.agent.events import EventTranslator
from toolchat.platform.agent.history import HistoryPreparer
from toolchat.platform.agent.langgraph import (
    LangGraphAgent,
    LangGraphMCPTools,
)
from toolchat.platform.agent.mcp import MCPClient
from toolchat.platform.agent.messages import (
    ExecutionResult,
    Message,
    Role,
    ToolCall,
    ToolResult,
)
from toolchat.platform.agent.protocol import Agent

__all__ = [
    "Agent",
    "AgentConfig",
    "AgentIdentity",
    "LlmConfig",
    "MCPConfig",
    "EventTranslator",
    "EvictingMemorySaver",
    "ExecutionResult",
    "HistoryPreparer",
    "Message",
    "Role",
    "ToolCall",
    "ToolResult",
    "LangGraphAgent",
    "LangGraphMCPTools",
    "MCPClient",
]
