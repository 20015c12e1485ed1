"""Assistant HTTP endpoints.

This module provides REST API endpoints for running the assistant on a chat
thread, supporting both synchronous and streaming response modes.
"""

import logging
from contextlib import aclosing
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from toolchat.agents.assistant.agent import AssistantAgentBuilder
from toolchat.platform.agent.messages import ExecutionResult, Role
from toolchat.platform.agent.protocol import Agent
from toolchat.platform.observability.logging import chat_log_context, thread_id_ctx, user_id_ctx
from toolchat.platform.observability.metrics import record_stream_disconnect, record_stream_frame
from toolchat.platform.server.dependencies.agents import get_agent
from toolchat.platform.server.dependencies.auth import get_current_user
from toolchat.platform.server.dependencies.store import get_store
from toolchat.platform.store.conversations import ConversationStore
from toolchat.platform.streaming.codec import encode_frame

logger = logging.getLogger(__name__)

assistant_router = APIRouter(
    prefix=f"/{AssistantAgentBuilder.SLUG}",
    tags=["agents"],
)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable proxy buffering
}


class ChatPayload(BaseModel):
    """Request payload for assistant endpoints.

    Attributes:
        chat_id: Chat thread the message belongs to; also the run's thread id
        message: The user's message (1-10000 characters)
    """

    chat_id: str = Field(min_length=1)
    message: str = Field(
        min_length=1,
        max_length=10000,
        description="The user's message to the assistant",
    )


async def _prepare_run(store: ConversationStore, user_id: str, payload: ChatPayload):
    """Check ownership, load prior history, then persist the new user message."""
    stored = await store.get_messages(payload.chat_id, user_id)
    history = [m.to_message() for m in stored]
    await store.append_message(payload.chat_id, user_id, Role.USER, payload.message)
    return history


@assistant_router.post("/invoke")
async def invoke_handler(
    payload: ChatPayload,
    user_id: Annotated[str, Depends(get_current_user)],
    store: Annotated[ConversationStore, Depends(get_store)],
    agent: Agent = Depends(get_agent(AssistantAgentBuilder)),
) -> ExecutionResult:
    """Run the assistant to completion and persist its answer.

    Args:
        payload: Request containing the chat id and message
        user_id: Caller identity (injected)
        store: Conversation store (injected)
        agent: Cached agent instance (injected)

    Returns:
        ExecutionResult with the agent's response and conversation metadata
    """
    history = await _prepare_run(store, user_id, payload)
    with chat_log_context(payload.chat_id, user_id):
        result = await agent.run(payload.message, thread_id=payload.chat_id, history=history)
    await store.append_message(payload.chat_id, user_id, Role.ASSISTANT, result.response)
    return result


@assistant_router.post("/stream")
async def stream_handler(
    request: Request,
    payload: ChatPayload,
    user_id: Annotated[str, Depends(get_current_user)],
    store: Annotated[ConversationStore, Depends(get_store)],
    agent: Agent = Depends(get_agent(AssistantAgentBuilder)),
):
    """Run the assistant and stream its events as frames.

    The user message is persisted before the run starts. The assistant's
    answer is persisted by the client once the stream completes.

    Args:
        request: Incoming request, polled for client disconnects
        payload: Request containing the chat id and message
        user_id: Caller identity (injected)
        store: Conversation store (injected)
        agent: Cached agent instance (injected)

    Returns:
        StreamingResponse of ``data:`` frames, one per event
    """
    history = await _prepare_run(store, user_id, payload)

    async def stream_generator():
        thread_id_ctx.set(payload.chat_id)
        user_id_ctx.set(user_id)
        events = agent.run_stream(payload.message, thread_id=payload.chat_id, history=history)
        async with aclosing(events) as stream:
            async for event in stream:
                if await request.is_disconnected():
                    logger.info(f"Client disconnected from chat {payload.chat_id}; stopping run")
                    record_stream_disconnect()
                    break
                record_stream_frame(event.type)
                yield encode_frame(event)

    return StreamingResponse(
        stream_generator(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
