"""Conversation storage."""

from toolchat.platform.store.conversations import (
    Chat,
    ConversationStore,
    InMemoryConversationStore,
    StoredMessage,
)

__all__ = [
    "Chat",
    "ConversationStore",
    "InMemoryConversationStore",
    "StoredMessage",
]
