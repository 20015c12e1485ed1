"""Unit tests for TranscriptReconstructor."""

import pytest

from toolchat.platform.exceptions import PendingToolBlockNotFoundError, StreamOrderError
from toolchat.platform.streaming.events import (
    ConnectedEvent,
    DoneEvent,
    ErrorEvent,
    TokenEvent,
    ToolEndEvent,
    ToolStartEvent,
)
from toolchat.platform.streaming.reconstructor import (
    BlockStatus,
    StreamStatus,
    ToolBlock,
    TranscriptReconstructor,
    format_tool_block,
)


def apply_all(*events) -> TranscriptReconstructor:
    reconstructor = TranscriptReconstructor()
    for event in events:
        reconstructor.apply(event)
    return reconstructor


class TestFormatToolBlock:
    """Tests for format_tool_block."""

    def test_pending(self):
        block = ToolBlock(tool="calculator", key="call_1", input={"a": 2, "b": 2})

        assert format_tool_block(block) == '\n```calculator\nInput: {"a": 2, "b": 2}\nOutput: Processing...\n```\n'

    def test_done_with_text_output(self):
        block = ToolBlock(tool="search", key="k", input="cats", output="3 results", status=BlockStatus.DONE)

        assert format_tool_block(block) == "\n```search\nInput: cats\nOutput: 3 results\n```\n"


class TestApply:
    """Tests for folding events into the transcript."""

    def test_tokens_concatenate(self):
        reconstructor = apply_all(ConnectedEvent(), TokenEvent(token="Hel"), TokenEvent(token="lo"))

        assert reconstructor.render() == "Hello"
        assert reconstructor.status is StreamStatus.STREAMING

    def test_tool_block_resolved_in_place(self):
        reconstructor = apply_all(
            ConnectedEvent(),
            TokenEvent(token="Checking."),
            ToolStartEvent(tool="calculator", input={"a": 2, "b": 2}, id="call_1"),
            TokenEvent(token=" Still going."),
            ToolEndEvent(tool="calculator", output=4, id="call_1"),
            TokenEvent(token=" Done: 4"),
        )

        assert reconstructor.render() == (
            'Checking.\n```calculator\nInput: {"a": 2, "b": 2}\nOutput: 4\n```\n Still going. Done: 4'
        )
        assert reconstructor.pending_tool_blocks == []

    def test_pending_block_renders_placeholder(self):
        reconstructor = apply_all(ConnectedEvent(), ToolStartEvent(tool="calculator", input={}, id="call_1"))

        assert "Output: Processing..." in reconstructor.render()
        assert [b.key for b in reconstructor.pending_tool_blocks] == ["call_1"]

    def test_parallel_calls_matched_by_id(self):
        reconstructor = apply_all(
            ConnectedEvent(),
            ToolStartEvent(tool="calculator", input={"a": 1}, id="call_a"),
            ToolStartEvent(tool="calculator", input={"a": 2}, id="call_b"),
            ToolEndEvent(tool="calculator", output="B", id="call_b"),
            ToolEndEvent(tool="calculator", output="A", id="call_a"),
        )

        first, second = reconstructor.blocks
        assert (first.key, first.output) == ("call_a", "A")
        assert (second.key, second.output) == ("call_b", "B")

    def test_without_ids_matches_latest_pending_of_same_tool(self):
        reconstructor = apply_all(
            ConnectedEvent(),
            ToolStartEvent(tool="search", input="first"),
            ToolStartEvent(tool="search", input="second"),
            ToolStartEvent(tool="calculator", input={}),
            ToolEndEvent(tool="search", output="second result"),
        )

        search_first, search_second, calc = reconstructor.blocks
        assert search_second.status is BlockStatus.DONE
        assert search_second.output == "second result"
        assert search_first.status is BlockStatus.PENDING
        assert calc.status is BlockStatus.PENDING

    def test_tool_end_without_pending_block(self):
        reconstructor = apply_all(ConnectedEvent())

        with pytest.raises(PendingToolBlockNotFoundError) as exc_info:
            reconstructor.apply(ToolEndEvent(tool="calculator", output=4, id="call_9"))

        assert exc_info.value.tool_call_id == "call_9"

    def test_duplicate_tool_start(self):
        reconstructor = apply_all(ConnectedEvent(), ToolStartEvent(tool="calculator", id="call_1"))

        with pytest.raises(StreamOrderError):
            reconstructor.apply(ToolStartEvent(tool="calculator", id="call_1"))

    def test_done_finishes(self):
        reconstructor = apply_all(ConnectedEvent(), TokenEvent(token="4"), DoneEvent())

        assert reconstructor.finished
        assert reconstructor.status is StreamStatus.DONE

    def test_event_after_done_rejected(self):
        reconstructor = apply_all(ConnectedEvent(), DoneEvent())

        with pytest.raises(StreamOrderError):
            reconstructor.apply(TokenEvent(token="late"))

    def test_error_fails_and_keeps_partial_content(self):
        reconstructor = apply_all(
            ConnectedEvent(),
            ToolStartEvent(tool="calculator", input={}, id="call_1"),
            ErrorEvent(error="Model backend failed"),
        )

        assert reconstructor.status is StreamStatus.FAILED
        assert reconstructor.error == "Model backend failed"
        assert "Processing..." in reconstructor.render()

    def test_recoverable_error_is_a_warning(self):
        reconstructor = apply_all(
            ConnectedEvent(),
            ErrorEvent(error="Malformed frame: x", recoverable=True),
            TokenEvent(token="ok"),
        )

        assert not reconstructor.finished
        assert reconstructor.warnings == ["Malformed frame: x"]
        assert reconstructor.render() == "ok"


class TestFinalize:
    """Tests for finalize and abort."""

    def test_successful_transcript(self):
        transcript = apply_all(ConnectedEvent(), TokenEvent(token="4"), DoneEvent()).finalize()

        assert transcript.succeeded
        assert transcript.content == "4"
        assert transcript.error is None

    def test_unfinished_stream_fails(self):
        transcript = apply_all(ConnectedEvent(), TokenEvent(token="Half")).finalize()

        assert not transcript.succeeded
        assert transcript.status is StreamStatus.FAILED
        assert transcript.error == "Stream ended before completion"
        assert transcript.content == "Half"

    def test_abort_does_not_override_terminal_state(self):
        reconstructor = apply_all(ConnectedEvent(), DoneEvent())
        reconstructor.abort("client gave up")

        assert reconstructor.status is StreamStatus.DONE
