"""Conversation storage for chat threads and their messages.

ConversationStore is the boundary to durable chat storage. Every operation
takes the caller's user id and checks chat ownership before touching data.
InMemoryConversationStore is the process-local implementation used by the
service and the tests.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from toolchat.platform.agent.messages import Message, Role
from toolchat.platform.exceptions import ChatNotFoundError, UnauthorizedError

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class Chat:
    """A chat thread owned by one user."""

    id: str
    title: str
    user_id: str
    created_at: datetime


@dataclass(frozen=True)
class StoredMessage:
    """A persisted chat message."""

    id: str
    chat_id: str
    role: Role
    content: str
    created_at: datetime

    def to_message(self) -> Message:
        return Message(role=self.role, content=self.content)


class ConversationStore(Protocol):
    """Protocol for chat and message storage."""

    async def create_chat(self, user_id: str, title: str) -> Chat: ...

    async def list_chats(self, user_id: str) -> list[Chat]: ...

    async def get_chat(self, chat_id: str, user_id: str) -> Chat: ...

    async def delete_chat(self, chat_id: str, user_id: str) -> None: ...

    async def get_messages(self, chat_id: str, user_id: str) -> list[StoredMessage]: ...

    async def append_message(
        self, chat_id: str, user_id: str, role: Role, content: str
    ) -> StoredMessage: ...


@dataclass
class InMemoryConversationStore:
    """Process-local ConversationStore."""

    clock: Callable[[], datetime] = _utc_now
    _chats: dict[str, Chat] = field(default_factory=dict, repr=False)
    _messages: dict[str, list[StoredMessage]] = field(default_factory=dict, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def create_chat(self, user_id: str, title: str) -> Chat:
        chat = Chat(id=str(uuid.uuid4()), title=title, user_id=user_id, created_at=self.clock())
        async with self._lock:
            self._chats[chat.id] = chat
            self._messages[chat.id] = []
        logger.info(f"Created chat {chat.id}")
        return chat

    async def list_chats(self, user_id: str) -> list[Chat]:
        """Chats owned by the user, newest first."""
        chats = [c for c in self._chats.values() if c.user_id == user_id]
        return sorted(chats, key=lambda c: c.created_at, reverse=True)

    async def get_chat(self, chat_id: str, user_id: str) -> Chat:
        """Fetch a chat, checking ownership.

        Raises:
            ChatNotFoundError: If the chat does not exist
            UnauthorizedError: If the chat belongs to another user
        """
        chat = self._chats.get(chat_id)
        if chat is None:
            raise ChatNotFoundError(chat_id)
        if chat.user_id != user_id:
            raise UnauthorizedError(f"chat {chat_id} belongs to another user", user_id=user_id)
        return chat

    async def delete_chat(self, chat_id: str, user_id: str) -> None:
        """Delete a chat and all of its messages."""
        await self.get_chat(chat_id, user_id)
        async with self._lock:
            del self._chats[chat_id]
            self._messages.pop(chat_id, None)
        logger.info(f"Deleted chat {chat_id}")

    async def get_messages(self, chat_id: str, user_id: str) -> list[StoredMessage]:
        """Messages of a chat in creation order."""
        await self.get_chat(chat_id, user_id)
        return list(self._messages[chat_id])

    async def append_message(
        self, chat_id: str, user_id: str, role: Role, content: str
    ) -> StoredMessage:
        await self.get_chat(chat_id, user_id)
        message = StoredMessage(
            id=str(uuid.uuid4()),
            chat_id=chat_id,
            role=Role(role),
            content=content,
            created_at=self.clock(),
        )
        async with self._lock:
            self._messages[chat_id].append(message)
        return message

    async def save(self, chat_id: str, user_id: str, content: str) -> None:
        """Persist a finished assistant answer; used as a TranscriptSink."""
        await self.append_message(chat_id, user_id, Role.ASSISTANT, content)
