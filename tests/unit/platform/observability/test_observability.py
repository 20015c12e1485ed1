"""Unit tests for logging context, Bugsnag context and stream metrics."""

from unittest.mock import Mock

import prometheus_client

from toolchat.platform.observability.errors import attach_chat_context
from toolchat.platform.observability.logging import (
    add_chat_context,
    chat_log_context,
    correlation_id_ctx,
    thread_id_ctx,
    user_id_ctx,
)
from toolchat.platform.observability.metrics import (
    record_stream_disconnect,
    record_stream_frame,
    status_class,
)


class TestChatLogContext:
    """Tests for the chat context carried on log lines."""

    def test_context_added_and_reset(self):
        with chat_log_context("chat-1", "user-1"):
            event = add_chat_context(None, "info", {"event": "run started"})

        assert event == {"event": "run started", "thread_id": "chat-1", "user_id": "user-1"}
        assert thread_id_ctx.get() is None
        assert user_id_ctx.get() is None

    def test_unset_values_are_skipped(self):
        assert add_chat_context(None, "info", {"event": "boot"}) == {"event": "boot"}

    def test_explicit_values_win(self):
        token = correlation_id_ctx.set("req-1")
        try:
            event = add_chat_context(None, "info", {"event": "x", "correlation_id": "explicit"})
        finally:
            correlation_id_ctx.reset(token)

        assert event["correlation_id"] == "explicit"


class TestBugsnagContext:
    def test_chat_tab(self):
        event = Mock()

        with chat_log_context("chat-1", "user-1"):
            attach_chat_context(event)

        event.add_tab.assert_called_once_with(
            "chat", {"correlation_id": None, "thread_id": "chat-1", "user_id": "user-1"}
        )


def sample(name: str, labels: dict | None = None) -> float:
    return prometheus_client.REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestStreamMetrics:
    def test_status_class(self):
        assert status_class(200) == "2XX"
        assert status_class(404) == "4XX"
        assert status_class(503) == "5XX"

    def test_frames_counted_by_type(self):
        before = sample("chat_stream_frames_total", {"event_type": "token"})

        record_stream_frame("token")
        record_stream_frame("token")

        assert sample("chat_stream_frames_total", {"event_type": "token"}) == before + 2

    def test_disconnects_counted(self):
        before = sample("chat_stream_disconnects_total")

        record_stream_disconnect()

        assert sample("chat_stream_disconnects_total") == before + 1
