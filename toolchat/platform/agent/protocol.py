"""The interface the chat API relies on, independent of the orchestration framework."""

from collections.abc import AsyncIterator, Sequence
from datetime import datetime
from typing import Protocol

from toolchat.platform.agent.config import AgentIdentity
from toolchat.platform.agent.messages import ExecutionResult, Message
from toolchat.platform.streaming.events import StreamEvent


class Agent(Protocol):
    """A chat agent runnable on a conversation thread.

    ``history`` seeds a thread that has no checkpointed run state yet; once a
    thread has been checkpointed only the new message is added.
    """

    @property
    def identity(self) -> AgentIdentity: ...

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def slug(self) -> str: ...

    async def run(
        self,
        message: str,
        thread_id: str,
        history: Sequence[Message] = (),
        utc_now: datetime | None = None,
    ) -> ExecutionResult:
        """Run to completion and return the final answer."""
        ...

    def run_stream(
        self,
        message: str,
        thread_id: str,
        history: Sequence[Message] = (),
        utc_now: datetime | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Run and yield events as they happen.

        Yields ``connected`` first, then tokens and tool events, then exactly
        one ``done`` or ``error``. Failures are reported as the ``error``
        event, never raised.
        """
        ...
