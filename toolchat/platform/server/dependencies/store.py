"""Storage dependencies for FastAPI routes."""

from fastapi import Request
from langgraph.checkpoint.base import BaseCheckpointSaver

from toolchat.platform.store.conversations import ConversationStore


def get_store(request: Request) -> ConversationStore:
    """Get the conversation store for chats and messages."""
    return request.app.state.store


def get_checkpointer(request: Request) -> BaseCheckpointSaver:
    """Get BaseCheckpointSaver holding per-thread run state."""
    return request.app.state.checkpointer
