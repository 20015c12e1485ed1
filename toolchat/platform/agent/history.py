"""History preparation for agent reasoning passes.

Bounds the conversation passed to the model on every reasoning pass and
marks a few messages as cache-eligible for providers with prompt caching.
"""

import logging
from collections.abc import Sequence
from typing import Any

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage, trim_messages

logger = logging.getLogger(__name__)

CACHE_CONTROL = {"type": "ephemeral"}
CHARS_PER_TOKEN = 4

# Keep the newest messages, the system message, and start on a user turn so a
# tool exchange is never cut in half.
_TRIM_OPTIONS: dict[str, Any] = {
    "strategy": "last",
    "include_system": True,
    "allow_partial": False,
    "start_on": "human",
}


def count_messages(messages: list[BaseMessage]) -> int:
    """Token counter that counts message objects."""
    return len(messages)


def approximate_tokens(messages: list[BaseMessage]) -> int:
    """Token counter estimating ~4 characters per token."""
    return sum(len(_text_of(m)) for m in messages) // CHARS_PER_TOKEN


def _text_of(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    return "".join(p.get("text", "") if isinstance(p, dict) else str(p) for p in content)


def _has_user_turn(messages: list[BaseMessage]) -> bool:
    return any(isinstance(m, HumanMessage) for m in messages)


def with_cache_control(message: BaseMessage) -> BaseMessage:
    """Return a copy of message with its text wrapped in a cache-control block.

    Messages with empty or non-text content are returned unchanged.
    """
    if not isinstance(message.content, str) or not message.content:
        return message
    block = {"type": "text", "text": message.content, "cache_control": CACHE_CONTROL}
    return message.model_copy(update={"content": [block]})


class HistoryPreparer:
    """Builds the bounded, cache-annotated prompt for one reasoning pass."""

    def __init__(
        self,
        system_prompt: str,
        max_messages: int | None = None,
        max_tokens: int | None = None,
        prompt_caching: bool = True,
    ) -> None:
        """Initialize the preparer.

        Args:
            system_prompt: System instruction prepended to every prompt
            max_messages: Keep at most this many messages, system included (None disables)
            max_tokens: Keep at most this many approximate tokens (None disables)
            prompt_caching: Whether to add cache-control hints
        """
        self.system_prompt = system_prompt
        self.max_messages = max_messages
        self.max_tokens = max_tokens
        self.prompt_caching = prompt_caching

    def prepare(self, messages: Sequence[BaseMessage]) -> list[BaseMessage]:
        """Produce the prompt for the model from the thread's messages.

        System messages already present in the thread are replaced by the
        configured system prompt. The caller's list and messages are not modified.

        Args:
            messages: Thread messages, oldest first, ending with the newest turn

        Returns:
            System message followed by the kept window of history
        """
        history: list[BaseMessage] = [SystemMessage(content=self.system_prompt)]
        history.extend(m for m in messages if not isinstance(m, SystemMessage))
        history = self.trim(history)
        if self.prompt_caching:
            history = self.add_cache_hints(history)
        return history

    def trim(self, messages: list[BaseMessage]) -> list[BaseMessage]:
        """Apply the message-count and token policies, in that order.

        When the current turn alone exceeds a limit the window would hold no user
        message at all, so the whole current turn is kept instead.
        """
        trimmed = list(messages)
        if self.max_messages is not None:
            trimmed = trim_messages(
                trimmed,
                max_tokens=self.max_messages,
                token_counter=count_messages,
                **_TRIM_OPTIONS,
            )
        if self.max_tokens is not None:
            trimmed = trim_messages(
                trimmed,
                max_tokens=self.max_tokens,
                token_counter=approximate_tokens,
                **_TRIM_OPTIONS,
            )
        if not _has_user_turn(trimmed) and _has_user_turn(messages):
            current = self.current_turn(messages)
            logger.warning(
                f"Current turn of {len(current)} messages exceeds the history limits; sending it untrimmed"
            )
            return current
        if len(trimmed) < len(messages):
            logger.info(f"Trimmed messages from {len(messages)} to {len(trimmed)}")
        return trimmed

    @staticmethod
    def current_turn(messages: list[BaseMessage]) -> list[BaseMessage]:
        """System messages followed by everything from the newest user message on."""
        latest = max((i for i, m in enumerate(messages) if isinstance(m, HumanMessage)), default=0)
        head = [m for m in messages[:latest] if isinstance(m, SystemMessage)]
        return head + messages[latest:]

    @staticmethod
    def add_cache_hints(messages: list[BaseMessage]) -> list[BaseMessage]:
        """Mark the system message, the newest message and the second-newest user message."""
        if not messages:
            return messages

        hinted = list(messages)
        if isinstance(hinted[0], SystemMessage):
            hinted[0] = with_cache_control(hinted[0])
        hinted[-1] = with_cache_control(hinted[-1])

        user_turns = 0
        for index in range(len(hinted) - 1, -1, -1):
            if isinstance(hinted[index], HumanMessage):
                user_turns += 1
                if user_turns == 2:
                    hinted[index] = with_cache_control(hinted[index])
                    break
        return hinted
