"""Stream event types exchanged between the server and the chat client.

Each event is one frame on the wire. The union is discriminated on the
``type`` field so decoded JSON validates straight into the right model.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-compatible payload for the wire, without unset tool call ids."""
        payload = self.model_dump(mode="json")
        if payload.get("id", "") is None:
            del payload["id"]
        return payload


class ConnectedEvent(_Event):
    type: Literal["connected"] = "connected"


class TokenEvent(_Event):
    type: Literal["token"] = "token"
    token: str


class ToolStartEvent(_Event):
    type: Literal["tool_start"] = "tool_start"
    tool: str
    input: Any = None
    id: str | None = Field(default=None, description="Tool call id pairing start and end")


class ToolEndEvent(_Event):
    type: Literal["tool_end"] = "tool_end"
    tool: str
    output: Any = None
    id: str | None = Field(default=None, description="Tool call id pairing start and end")


class DoneEvent(_Event):
    type: Literal["done"] = "done"


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    error: str
    # Set on errors produced locally by the decoder; never sent on the wire.
    recoverable: bool = Field(default=False, exclude=True)


StreamEvent = Annotated[
    ConnectedEvent | TokenEvent | ToolStartEvent | ToolEndEvent | DoneEvent | ErrorEvent,
    Field(discriminator="type"),
]

stream_event_adapter: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)


def is_terminal(event: StreamEvent) -> bool:
    """Whether the event ends a run (done, or a non-recoverable error)."""
    if isinstance(event, DoneEvent):
        return True
    return isinstance(event, ErrorEvent) and not event.recoverable
