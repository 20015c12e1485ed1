"""Reasoner node for LLM-based reasoning."""

import logging
from typing import Any

from langchain_core.messages import AIMessage, AIMessageChunk, message_chunk_to_message
from langgraph.types import StreamWriter

from toolchat.agents.assistant.state import AgentState
from toolchat.platform.agent.config import AgentConfig
from toolchat.platform.agent.events import TokenActivity
from toolchat.platform.agent.history import HistoryPreparer
from toolchat.platform.agent.langgraph import LangGraphMessageParser
from toolchat.platform.agent.llm_client import LlmClient
from toolchat.platform.exceptions import ModelBackendError, ReasoningLimitExceededError

from .base import Node

logger = logging.getLogger(__name__)


class ReasonerNode(Node):
    """Node that streams one model pass and appends the assistant message.

    Answer text is reported as token activity while it arrives. Once the
    model starts emitting a tool call, the rest of the pass is not streamed.
    """

    def __init__(
        self,
        llm_with_tools: LlmClient,
        config: AgentConfig,
        history_preparer: HistoryPreparer,
    ):
        """Initialize the reasoner node.

        Args:
            llm_with_tools: LLM with tools bound
            config: Agent configuration
            history_preparer: Builds the bounded prompt for each pass
        """
        self.llm = llm_with_tools
        self.config = config
        self.history = history_preparer

    def _get_token_state_update(self, response: AIMessage) -> dict:
        """Extract token usage from response as state update dict.

        Args:
            response: AIMessage from LLM

        Returns:
            Dict with input/output tokens keyed by model for state reducer
        """
        input_tokens, output_tokens = self.llm.extract_tokens(response)
        return {
            "input_tokens_by_model": {self.llm.model_name: input_tokens},
            "output_tokens_by_model": {self.llm.model_name: output_tokens},
        }

    async def _stream_pass(self, prompt: list, writer: StreamWriter) -> AIMessage:
        full: AIMessageChunk | None = None
        answering = True
        async for chunk in self.llm.astream(prompt):
            full = chunk if full is None else full + chunk
            if chunk.tool_call_chunks:
                answering = False
            if answering:
                text = LangGraphMessageParser.extract_content(chunk)
                if text:
                    writer(TokenActivity(text))

        if full is None:
            return AIMessage(content="")
        return message_chunk_to_message(full)  # type: ignore[return-value]

    async def __call__(self, state: AgentState, writer: StreamWriter) -> dict[str, Any]:
        """Run one reasoning pass.

        Args:
            state: Current agent state
            writer: Custom stream writer for token activity

        Returns:
            State update with the assistant message and token usage

        Raises:
            ReasoningLimitExceededError: If the run has used all its reasoning steps
            ModelBackendError: If the model call fails
        """
        messages = state["messages"]
        steps = state.get("reasoning_steps", 0)
        logger.debug(f"Step {steps}, messages count: {len(messages)}")

        if steps >= self.config.max_reasoning_steps:
            raise ReasoningLimitExceededError(self.config.max_reasoning_steps)

        prompt = self.history.prepare(messages)
        try:
            response = await self._stream_pass(prompt, writer)
        except Exception as e:
            raise ModelBackendError(str(e) or type(e).__name__, self.llm.model_name) from e

        if response.tool_calls:
            logger.info(f"Model requested {len(response.tool_calls)} tool call(s)")

        return {
            "messages": [response],
            "reasoning_steps": steps + 1,
            **self._get_token_state_update(response),
        }
