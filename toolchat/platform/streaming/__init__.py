"""Chat event stream: event types, wire codec, transcript reconstruction and client."""

from toolchat.platform.streaming.events import (
    ConnectedEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    TokenEvent,
    ToolEndEvent,
    ToolStartEvent,
)
from toolchat.platform.streaming.codec import (
    FrameDecoder,
    decode_stream,
    encode_frame,
    encode_stream,
)
from toolchat.platform.streaming.reconstructor import Transcript, TranscriptReconstructor

__all__ = [
    "ConnectedEvent",
    "DoneEvent",
    "ErrorEvent",
    "FrameDecoder",
    "StreamEvent",
    "TokenEvent",
    "ToolEndEvent",
    "ToolStartEvent",
    "Transcript",
    "TranscriptReconstructor",
    "decode_stream",
    "encode_frame",
    "encode_stream",
]
