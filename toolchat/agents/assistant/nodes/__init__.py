"""LangGraph nodes."""

from toolchat.agents.assistant.nodes.base import Node
from toolchat.agents.assistant.nodes.reasoner import ReasonerNode
from toolchat.agents.assistant.nodes.tools import ToolInvokerNode

__all__ = [
    "Node",
    "ReasonerNode",
    "ToolInvokerNode",
]
