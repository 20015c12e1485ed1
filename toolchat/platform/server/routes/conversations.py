"""Inspection of a chat thread's checkpointed run state.

Checkpoints are evicted after a TTL, so a chat with stored messages may have
no run state left to show.
"""

from typing import Annotated, Any, Self

from fastapi import APIRouter, Depends, HTTPException
from langgraph.checkpoint.base import BaseCheckpointSaver, CheckpointTuple
from pydantic import BaseModel

from toolchat.platform.agent.langgraph import LangGraphMessageParser
from toolchat.platform.server.dependencies.auth import get_current_user
from toolchat.platform.server.dependencies.store import get_checkpointer, get_store
from toolchat.platform.store.conversations import ConversationStore

conversations_router = APIRouter(prefix="/conversations", tags=["conversations"])


class TokenUsage(BaseModel):
    input_tokens_by_model: dict[str, int]
    output_tokens_by_model: dict[str, int]
    total_input_tokens: int
    total_output_tokens: int

    @classmethod
    def from_state(cls, state: dict[str, Any]) -> Self | None:
        inputs = state.get("input_tokens_by_model") or {}
        outputs = state.get("output_tokens_by_model") or {}
        if not inputs and not outputs:
            return None
        return cls(
            input_tokens_by_model=inputs,
            output_tokens_by_model=outputs,
            total_input_tokens=sum(inputs.values()),
            total_output_tokens=sum(outputs.values()),
        )


class ConversationResponse(BaseModel):
    """Latest checkpoint of a thread: messages, loop counters and token usage."""

    thread_id: str
    agent_slug: str | None
    messages: list[dict[str, Any]]
    reasoning_steps: int
    updated_at: str
    total_steps: int
    token_usage: TokenUsage | None

    @classmethod
    def from_checkpoint(cls, thread_id: str, checkpoint_tuple: CheckpointTuple) -> Self:
        checkpoint = checkpoint_tuple.checkpoint
        state = checkpoint.get("channel_values") or {}
        return cls(
            thread_id=thread_id,
            agent_slug=state.get("agent_slug"),
            messages=[m.to_dict() for m in LangGraphMessageParser.to_messages(state.get("messages", []))],
            reasoning_steps=state.get("reasoning_steps", 0),
            updated_at=checkpoint.get("ts", ""),
            total_steps=(checkpoint_tuple.metadata or {}).get("step", 0),
            token_usage=TokenUsage.from_state(state),
        )


@conversations_router.get("/{thread_id}")
async def get_conversation(
    thread_id: str,
    user_id: Annotated[str, Depends(get_current_user)],
    store: Annotated[ConversationStore, Depends(get_store)],
    checkpointer: Annotated[BaseCheckpointSaver, Depends(get_checkpointer)],
) -> ConversationResponse:
    """Return the run state of a chat the caller owns.

    Raises:
        HTTPException: 404 if the thread was never run or its checkpoint was evicted
    """
    await store.get_chat(thread_id, user_id)

    checkpoint_tuple = await checkpointer.aget_tuple({"configurable": {"thread_id": thread_id}})
    if checkpoint_tuple is None or not checkpoint_tuple.checkpoint.get("channel_values"):
        raise HTTPException(status_code=404, detail="Conversation not found")
    return ConversationResponse.from_checkpoint(thread_id, checkpoint_tuple)
