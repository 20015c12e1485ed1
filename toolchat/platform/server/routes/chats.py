"""Chat thread and message endpoints.

Every endpoint acts on behalf of the user named in the X-User-ID header and
only touches chats that user owns.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from toolchat.platform.agent.messages import Role
from toolchat.platform.server.dependencies.auth import get_current_user
from toolchat.platform.server.dependencies.store import get_store
from toolchat.platform.store.conversations import Chat, ConversationStore, StoredMessage

chats_router = APIRouter(prefix="/chats", tags=["chats"])


# =============================================================================
# Request/Response Models
# =============================================================================


class CreateChatRequest(BaseModel):
    title: str = Field("New Chat", min_length=1, max_length=200)


class ChatResponse(BaseModel):
    id: str
    title: str
    created_at: datetime

    @classmethod
    def from_chat(cls, chat: Chat) -> "ChatResponse":
        return cls(id=chat.id, title=chat.title, created_at=chat.created_at)


class CreateMessageRequest(BaseModel):
    role: Role
    content: str = Field(min_length=1)


class MessageResponse(BaseModel):
    id: str
    chat_id: str
    role: Role
    content: str
    created_at: datetime

    @classmethod
    def from_stored(cls, message: StoredMessage) -> "MessageResponse":
        return cls(
            id=message.id,
            chat_id=message.chat_id,
            role=message.role,
            content=message.content,
            created_at=message.created_at,
        )


# =============================================================================
# Endpoints
# =============================================================================


@chats_router.post("", status_code=201)
async def create_chat(
    payload: CreateChatRequest,
    user_id: Annotated[str, Depends(get_current_user)],
    store: Annotated[ConversationStore, Depends(get_store)],
) -> ChatResponse:
    chat = await store.create_chat(user_id, payload.title)
    return ChatResponse.from_chat(chat)


@chats_router.get("")
async def list_chats(
    user_id: Annotated[str, Depends(get_current_user)],
    store: Annotated[ConversationStore, Depends(get_store)],
) -> list[ChatResponse]:
    """List the caller's chats, newest first."""
    return [ChatResponse.from_chat(chat) for chat in await store.list_chats(user_id)]


@chats_router.delete("/{chat_id}", status_code=204)
async def delete_chat(
    chat_id: str,
    user_id: Annotated[str, Depends(get_current_user)],
    store: Annotated[ConversationStore, Depends(get_store)],
) -> Response:
    """Delete a chat and its messages.

    Raises:
        UnauthorizedError: 403 if the chat belongs to another user
        ChatNotFoundError: 404 if the chat does not exist
    """
    await store.delete_chat(chat_id, user_id)
    return Response(status_code=204)


@chats_router.get("/{chat_id}/messages")
async def list_messages(
    chat_id: str,
    user_id: Annotated[str, Depends(get_current_user)],
    store: Annotated[ConversationStore, Depends(get_store)],
) -> list[MessageResponse]:
    """Messages of a chat in creation order."""
    messages = await store.get_messages(chat_id, user_id)
    return [MessageResponse.from_stored(m) for m in messages]


@chats_router.post("/{chat_id}/messages", status_code=201)
async def create_message(
    chat_id: str,
    payload: CreateMessageRequest,
    user_id: Annotated[str, Depends(get_current_user)],
    store: Annotated[ConversationStore, Depends(get_store)],
) -> MessageResponse:
    """Append a message to a chat; used by clients to persist finished answers."""
    message = await store.append_message(chat_id, user_id, payload.role, payload.content)
    return MessageResponse.from_stored(message)
