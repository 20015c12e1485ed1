"""Unit tests for the frame codec."""

import pytest

from toolchat.platform.streaming.codec import FrameDecoder, decode_stream, encode_frame, encode_stream
from toolchat.platform.streaming.events import (
    ConnectedEvent,
    DoneEvent,
    ErrorEvent,
    TokenEvent,
    ToolEndEvent,
    ToolStartEvent,
)


class TestEncodeFrame:
    """Tests for encode_frame."""

    @pytest.mark.parametrize(
        ("event", "frame"),
        [
            (ConnectedEvent(), 'data: {"type":"connected"}\n\n'),
            (TokenEvent(token="Hi"), 'data: {"type":"token","token":"Hi"}\n\n'),
            (
                ToolStartEvent(tool="calculator", input={"a": 2}, id="call_1"),
                'data: {"type":"tool_start","tool":"calculator","input":{"a":2},"id":"call_1"}\n\n',
            ),
            (ToolEndEvent(tool="calculator", output=4), 'data: {"type":"tool_end","tool":"calculator","output":4}\n\n'),
            (DoneEvent(), "data: [DONE]\n\n"),
            (ErrorEvent(error="boom"), 'data: {"type":"error","error":"boom"}\n\n'),
        ],
    )
    def test_frames(self, event, frame: str):
        assert encode_frame(event) == frame

    def test_non_ascii_kept_verbatim(self):
        assert encode_frame(TokenEvent(token="héllo ✓")) == 'data: {"type":"token","token":"héllo ✓"}\n\n'

    def test_recoverable_flag_not_on_wire(self):
        assert "recoverable" not in encode_frame(ErrorEvent(error="x", recoverable=True))

    async def test_encode_stream(self):
        async def events():
            yield ConnectedEvent()
            yield DoneEvent()

        frames = [frame async for frame in encode_stream(events())]
        assert frames == ['data: {"type":"connected"}\n\n', "data: [DONE]\n\n"]


class TestFrameDecoder:
    """Tests for FrameDecoder."""

    def test_frame_split_across_reads(self):
        """A frame split over two chunks decodes to exactly one event after the second."""
        decoder = FrameDecoder()

        assert decoder.feed('data: {"type":"tok') == []
        assert decoder.feed('en","token":"Hi"}\n\n') == [TokenEvent(token="Hi")]
        assert decoder.pending == ""

    def test_several_frames_in_one_chunk(self):
        events = FrameDecoder().feed('data: {"type":"connected"}\n\ndata: {"type":"token","token":"a"}\n\ndata: [DONE]\n\n')

        assert events == [ConnectedEvent(), TokenEvent(token="a"), DoneEvent()]

    def test_multibyte_character_split_between_chunks(self):
        raw = 'data: {"type":"token","token":"✓"}\n\n'.encode()
        cut = raw.index("✓".encode()) + 1
        decoder = FrameDecoder()

        assert decoder.feed(raw[:cut]) == []
        assert decoder.feed(raw[cut:]) == [TokenEvent(token="✓")]

    def test_every_byte_boundary(self):
        raw = 'data: {"type":"token","token":"naïve"}\n\ndata: [DONE]\n\n'.encode()
        decoder = FrameDecoder()

        events = [event for i in range(len(raw)) for event in decoder.feed(raw[i : i + 1])]

        assert events == [TokenEvent(token="naïve"), DoneEvent()]

    def test_done_as_json(self):
        assert FrameDecoder().feed('data: {"type":"done"}\n\n') == [DoneEvent()]

    def test_crlf_line_endings(self):
        assert FrameDecoder().feed('data: {"type":"connected"}\r\n\r\n') == [ConnectedEvent()]

    def test_comments_and_blank_frames_ignored(self):
        events = FrameDecoder().feed(': keep-alive\n\n\n\nevent: message\ndata: {"type":"connected"}\n\n')

        assert events == [ConnectedEvent()]

    def test_multiline_data_joined(self):
        events = FrameDecoder().feed('data: {"type":"token",\ndata: "token":"Hi"}\n\n')

        assert events == [TokenEvent(token="Hi")]

    def test_data_without_space(self):
        assert FrameDecoder().feed('data:{"type":"connected"}\n\n') == [ConnectedEvent()]

    @pytest.mark.parametrize(
        "payload",
        ["not json", '{"type":"mystery"}', '{"type":"token"}', "[1, 2]"],
    )
    def test_malformed_frame_is_recoverable(self, payload: str):
        decoder = FrameDecoder()

        (event,) = decoder.feed(f"data: {payload}\n\n")

        assert isinstance(event, ErrorEvent)
        assert event.recoverable
        assert decoder.feed('data: {"type":"connected"}\n\n') == [ConnectedEvent()]

    def test_close_reports_leftover_fragment(self):
        decoder = FrameDecoder()
        decoder.feed('data: {"type":"token","tok')

        (event,) = decoder.close()

        assert isinstance(event, ErrorEvent)
        assert event.recoverable
        assert "Incomplete frame" in event.error

    def test_close_with_nothing_pending(self):
        decoder = FrameDecoder()
        decoder.feed('data: {"type":"connected"}\n\n')

        assert decoder.close() == []

    async def test_decode_stream(self):
        async def chunks():
            yield b'data: {"type":"connected"}\n'
            yield b"\ndata: [DO"
            yield b"NE]\n\n"

        events = [event async for event in decode_stream(chunks())]
        assert events == [ConnectedEvent(), DoneEvent()]
