"""Client-side reconstruction of the assistant transcript from stream events.

Tokens accumulate into text blocks. A ``tool_start`` opens a pending tool
block that the matching ``tool_end`` resolves in place, so each tool call
renders as a single block whatever text arrives around it.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from itertools import count
from typing import Any

from toolchat.platform.exceptions import PendingToolBlockNotFoundError, StreamOrderError
from toolchat.platform.streaming.events import (
    ConnectedEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    TokenEvent,
    ToolEndEvent,
    ToolStartEvent,
)

logger = logging.getLogger(__name__)

PENDING_OUTPUT = "Processing..."


class BlockStatus(StrEnum):
    PENDING = "pending"
    DONE = "done"


class StreamStatus(StrEnum):
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


@dataclass
class TextBlock:
    text: str = ""


@dataclass
class ToolBlock:
    tool: str
    key: str
    input: Any = None
    output: Any = None
    status: BlockStatus = BlockStatus.PENDING


type Block = TextBlock | ToolBlock


def stringify(value: Any) -> str:
    """Strings pass through; anything else is shown as JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def format_tool_block(block: ToolBlock) -> str:
    """Render a tool block as a fenced input/output block."""
    output = stringify(block.output) if block.status is BlockStatus.DONE else PENDING_OUTPUT
    return f"\n```{block.tool}\nInput: {stringify(block.input)}\nOutput: {output}\n```\n"


@dataclass(frozen=True)
class Transcript:
    """Final state of a reconstructed stream."""

    content: str
    status: StreamStatus
    error: str | None = None
    warnings: tuple[str, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.status is StreamStatus.DONE


@dataclass
class TranscriptReconstructor:
    """Apply stream events in order and render the transcript so far."""

    blocks: list[Block] = field(default_factory=list)
    status: StreamStatus = StreamStatus.STREAMING
    error: str | None = None
    warnings: list[str] = field(default_factory=list)
    _pending: dict[str, ToolBlock] = field(default_factory=dict, repr=False)
    _synthetic_keys: count = field(default_factory=count, repr=False)

    @property
    def finished(self) -> bool:
        return self.status is not StreamStatus.STREAMING

    @property
    def pending_tool_blocks(self) -> list[ToolBlock]:
        return list(self._pending.values())

    def apply(self, event: StreamEvent) -> None:
        """Fold one event into the transcript.

        Raises:
            PendingToolBlockNotFoundError: If a tool_end has no pending block
            StreamOrderError: If an event arrives after the stream finished
        """
        if self.finished:
            raise StreamOrderError(f"{event.type} event received after the stream finished")

        match event:
            case ConnectedEvent():
                pass
            case TokenEvent(token=token):
                self._append_text(token)
            case ToolStartEvent():
                self._start_tool(event)
            case ToolEndEvent():
                self._end_tool(event)
            case DoneEvent():
                self.status = StreamStatus.DONE
            case ErrorEvent(recoverable=True):
                logger.warning(f"Recoverable stream error: {event.error}")
                self.warnings.append(event.error)
            case ErrorEvent():
                self.status = StreamStatus.FAILED
                self.error = event.error

    def abort(self, reason: str = "Stream ended before completion") -> None:
        """Mark a stream that ended without a terminal event as failed."""
        if not self.finished:
            self.status = StreamStatus.FAILED
            self.error = reason

    def render(self) -> str:
        parts = []
        for block in self.blocks:
            if isinstance(block, TextBlock):
                parts.append(block.text)
            else:
                parts.append(format_tool_block(block))
        return "".join(parts)

    def finalize(self) -> Transcript:
        """Snapshot the transcript; an unfinished stream is reported as failed."""
        self.abort()
        return Transcript(
            content=self.render(),
            status=self.status,
            error=self.error,
            warnings=tuple(self.warnings),
        )

    def _append_text(self, token: str) -> None:
        if self.blocks and isinstance(self.blocks[-1], TextBlock):
            self.blocks[-1].text += token
        else:
            self.blocks.append(TextBlock(token))

    def _start_tool(self, event: ToolStartEvent) -> None:
        key = event.id or f"{event.tool}#{next(self._synthetic_keys)}"
        if key in self._pending:
            raise StreamOrderError(f"tool call '{key}' started twice")
        block = ToolBlock(tool=event.tool, key=key, input=event.input)
        self._pending[key] = block
        self.blocks.append(block)

    def _end_tool(self, event: ToolEndEvent) -> None:
        block = self._find_pending(event)
        if block is None:
            raise PendingToolBlockNotFoundError(event.tool, event.id)
        del self._pending[block.key]
        block.output = event.output
        block.status = BlockStatus.DONE

    def _find_pending(self, event: ToolEndEvent) -> ToolBlock | None:
        if event.id is not None:
            return self._pending.get(event.id)
        # Without an id, pair with the latest pending call of the same tool
        for block in reversed(self._pending.values()):
            if block.tool == event.tool:
                return block
        return None
