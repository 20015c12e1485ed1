"""Line-delimited frame codec for the chat event stream.

Each event travels as one frame: ``data: <json>`` followed by a blank line.
The ``done`` event is written as the reserved ``[DONE]`` payload. The
decoder tolerates arbitrary chunk boundaries, including splits inside a
multi-byte UTF-8 sequence.
"""

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from pydantic import ValidationError

from toolchat.platform.constants import (
    SSE_DATA_PREFIX,
    SSE_DONE_SENTINEL,
    SSE_LINE_DELIMITER,
)
from toolchat.platform.streaming.events import (
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    stream_event_adapter,
)

logger = logging.getLogger(__name__)


def encode_frame(event: StreamEvent) -> str:
    """Encode one event as a wire frame."""
    if isinstance(event, DoneEvent):
        payload = SSE_DONE_SENTINEL
    else:
        payload = json.dumps(event.to_wire(), ensure_ascii=False, separators=(",", ":"))
    return f"{SSE_DATA_PREFIX}{payload}{SSE_LINE_DELIMITER}"


async def encode_stream(events: AsyncIterable[StreamEvent]) -> AsyncIterator[str]:
    """Adapt an event iterator into a frame iterator."""
    async for event in events:
        yield encode_frame(event)


class FrameDecoder:
    """Incremental decoder turning received chunks into events.

    Bytes and text chunks may be mixed. Incomplete frames are carried over
    to the next ``feed`` call. A frame that cannot be parsed yields a
    recoverable ErrorEvent and decoding continues with the next frame.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def pending(self) -> str:
        """Undecoded carry-over text."""
        return self._buffer

    def feed(self, chunk: str | bytes) -> list[StreamEvent]:
        """Consume one chunk and return every event it completes."""
        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        self._buffer = (self._buffer + chunk).replace("\r\n", "\n")

        events: list[StreamEvent] = []
        while SSE_LINE_DELIMITER in self._buffer:
            frame, self._buffer = self._buffer.split(SSE_LINE_DELIMITER, 1)
            event = self._decode_frame(frame)
            if event is not None:
                events.append(event)
        return events

    def close(self) -> list[StreamEvent]:
        """Flush the decoder at end of stream.

        A trailing fragment that never received its delimiter is reported as
        a recoverable protocol error.
        """
        tail = self._utf8.decode(b"", final=True)
        leftover = (self._buffer + tail).strip()
        self._buffer = ""
        if not leftover:
            return []
        logger.warning(f"Stream ended with an incomplete frame: {leftover[:80]!r}")
        return [ErrorEvent(error=f"Incomplete frame at end of stream: {leftover[:80]}", recoverable=True)]

    def _decode_frame(self, frame: str) -> StreamEvent | None:
        data_lines = []
        for line in frame.split("\n"):
            if not line or line.startswith(":"):
                # Blank line or comment/keep-alive
                continue
            if line.startswith("data:"):
                data_lines.append(line[5:].removeprefix(" "))
            else:
                logger.debug(f"Ignoring non-data line: {line[:80]!r}")

        if not data_lines:
            return None

        payload = "\n".join(data_lines)
        if payload.strip() == SSE_DONE_SENTINEL:
            return DoneEvent()

        try:
            return stream_event_adapter.validate_json(payload)
        except ValidationError as e:
            logger.warning(f"Dropping malformed frame {payload[:80]!r}: {e.error_count()} error(s)")
            return ErrorEvent(error=f"Malformed frame: {payload[:80]}", recoverable=True)


async def decode_stream(chunks: AsyncIterable[str | bytes]) -> AsyncIterator[StreamEvent]:
    """Adapt a chunk iterator into an event iterator."""
    decoder = FrameDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
    for event in decoder.close():
        yield event
