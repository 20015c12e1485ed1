"""Translation of orchestration loop activity into stream events.

Graph nodes report what they are doing through LangGraph's custom stream
writer as activity records. The EventTranslator turns those records into
wire events and enforces the per-run ordering rules: ``connected`` first,
``done`` or ``error`` last, and every ``tool_end`` preceded by the
``tool_start`` with the same tool call id.
"""

import logging
from dataclasses import dataclass

from toolchat.platform.agent.messages import ToolCall, ToolResult
from toolchat.platform.exceptions import StreamOrderError
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


@dataclass(frozen=True)
class TokenActivity:
    """A fragment of final-answer text produced by the model."""

    text: str


@dataclass(frozen=True)
class ToolDispatched:
    """A tool call has been handed to the tool catalog."""

    call: ToolCall


@dataclass(frozen=True)
class ToolResolved:
    """A tool call has produced its result (or error)."""

    result: ToolResult


type Activity = TokenActivity | ToolDispatched | ToolResolved


class EventTranslator:
    """Stateful translator for a single run."""

    def __init__(self) -> None:
        self._connected = False
        self._finished = False
        self._open_tool_calls: dict[str, str] = {}

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def open_tool_calls(self) -> dict[str, str]:
        """Tool call id -> tool name for calls started but not yet ended."""
        return dict(self._open_tool_calls)

    def connected(self) -> ConnectedEvent:
        if self._connected:
            raise StreamOrderError("connected emitted twice")
        self._connected = True
        return ConnectedEvent()

    def translate(self, activity: object) -> StreamEvent | None:
        """Map one activity record to a stream event.

        Args:
            activity: Record written by a graph node

        Returns:
            The stream event, or None when the activity has nothing to show

        Raises:
            StreamOrderError: If the activity breaks the run's event ordering
        """
        self._ensure_streaming()

        match activity:
            case TokenActivity(text=text):
                if not text:
                    return None
                return TokenEvent(token=text)
            case ToolDispatched(call=call):
                if call.id in self._open_tool_calls:
                    raise StreamOrderError(f"tool call '{call.id}' started twice")
                self._open_tool_calls[call.id] = call.name
                return ToolStartEvent(tool=call.name, input=call.args, id=call.id)
            case ToolResolved(result=result):
                if self._open_tool_calls.pop(result.tool_call_id, None) is None:
                    raise StreamOrderError(
                        f"tool call '{result.tool_call_id}' ended without a start"
                    )
                return ToolEndEvent(tool=result.name, output=result.output, id=result.tool_call_id)
            case _:
                logger.debug(f"Ignoring unknown activity {type(activity).__name__}")
                return None

    def done(self) -> DoneEvent:
        self._ensure_streaming()
        if self._open_tool_calls:
            raise StreamOrderError(
                f"run finished with unresolved tool calls: {sorted(self._open_tool_calls)}"
            )
        self._finished = True
        return DoneEvent()

    def error(self, error: BaseException | str) -> ErrorEvent:
        """Terminal error event; replaces done for a failed run."""
        self._ensure_streaming()
        self._finished = True
        if isinstance(error, BaseException):
            message = str(error) or type(error).__name__
        else:
            message = error
        return ErrorEvent(error=message)

    def _ensure_streaming(self) -> None:
        if not self._connected:
            raise StreamOrderError("event emitted before connected")
        if self._finished:
            raise StreamOrderError("event emitted after the run finished")
