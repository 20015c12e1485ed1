"""Integration tests for ChatStreamClient.

Covers frame decoding over real HTTP responses, transcript reconstruction
and the persist-on-done rule, against a mock transport and the shallow app.
"""

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi import FastAPI

from toolchat.platform.streaming.client import ChatStreamClient
from toolchat.platform.streaming.reconstructor import StreamStatus
from toolchat.platform.store.conversations import InMemoryConversationStore

ROUND_TRIP_FRAMES = (
    'data: {"type":"connected"}\n\n'
    'data: {"type":"tool_start","tool":"calculator","input":{"a":2,"b":2},"id":"call_1"}\n\n'
    'data: {"type":"tool_end","tool":"calculator","output":4,"id":"call_1"}\n\n'
    'data: {"type":"token","token":"The answer is "}\n\n'
    'data: {"type":"token","token":"4"}\n\n'
    "data: [DONE]\n\n"
)

EXPECTED_CONTENT = '\n```calculator\nInput: {"a": 2, "b": 2}\nOutput: 4\n```\nThe answer is 4'


def streaming_transport(body: str, chunk_size: int | None = None) -> httpx.MockTransport:
    """Serve body from /assistant/stream in chunks of chunk_size bytes."""
    raw = body.encode()

    async def chunks() -> AsyncIterator[bytes]:
        size = chunk_size or len(raw) or 1
        for start in range(0, len(raw), size):
            yield raw[start : start + size]

    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/assistant/stream"
        return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=chunks())

    return httpx.MockTransport(handler)


@pytest.fixture
def sink() -> AsyncMock:
    return AsyncMock()


def make_client(transport: httpx.AsyncBaseTransport, sink) -> ChatStreamClient:
    http_client = httpx.AsyncClient(transport=transport, base_url="http://test")
    return ChatStreamClient("http://test", user_id="user-1", sink=sink, http_client=http_client)


class TestSend:
    """Tests for ChatStreamClient.send."""

    async def test_done_persists_once(self, sink: AsyncMock):
        client = make_client(streaming_transport(ROUND_TRIP_FRAMES), sink)

        transcript = await client.send("chat-1", "What is 2 + 2?")

        assert transcript.status is StreamStatus.DONE
        assert transcript.content == EXPECTED_CONTENT
        sink.save.assert_awaited_once_with("chat-1", "user-1", EXPECTED_CONTENT)

    async def test_reading_stops_at_done(self, sink: AsyncMock):
        """Frames after the terminal event are never applied."""
        body = ROUND_TRIP_FRAMES + 'data: {"type":"token","token":" extra"}\n\n'
        client = make_client(streaming_transport(body), sink)

        transcript = await client.send("chat-1", "What is 2 + 2?")

        assert transcript.status is StreamStatus.DONE
        assert transcript.content == EXPECTED_CONTENT
        sink.save.assert_awaited_once_with("chat-1", "user-1", EXPECTED_CONTENT)

    async def test_byte_sized_chunks(self, sink: AsyncMock):
        """Frames split at every byte decode to the same transcript."""
        client = make_client(streaming_transport(ROUND_TRIP_FRAMES, chunk_size=1), sink)

        transcript = await client.send("chat-1", "What is 2 + 2?")

        assert transcript.content == EXPECTED_CONTENT
        sink.save.assert_awaited_once()

    async def test_error_is_not_persisted(self, sink: AsyncMock):
        body = (
            'data: {"type":"connected"}\n\n'
            'data: {"type":"token","token":"Partial"}\n\n'
            'data: {"type":"error","error":"Model backend failed"}\n\n'
        )
        client = make_client(streaming_transport(body), sink)

        transcript = await client.send("chat-1", "Hello")

        assert transcript.status is StreamStatus.FAILED
        assert transcript.error == "Model backend failed"
        assert transcript.content == "Partial"
        sink.save.assert_not_awaited()

    async def test_truncated_stream_is_not_persisted(self, sink: AsyncMock):
        body = 'data: {"type":"connected"}\n\ndata: {"type":"token","token":"Half"}\n\ndata: {"type":"tok'
        client = make_client(streaming_transport(body), sink)

        transcript = await client.send("chat-1", "Hello")

        assert transcript.status is StreamStatus.FAILED
        assert transcript.content == "Half"
        assert len(transcript.warnings) == 1
        sink.save.assert_not_awaited()

    async def test_on_update_receives_rendered_text(self, sink: AsyncMock):
        client = make_client(streaming_transport(ROUND_TRIP_FRAMES), sink)
        updates: list[str] = []

        await client.send("chat-1", "What is 2 + 2?", on_update=updates.append)

        assert "Output: Processing..." in updates[1]
        assert updates[-1] == EXPECTED_CONTENT

    async def test_http_error_raises(self, sink: AsyncMock):
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"detail": "Unauthorized"})

        client = make_client(httpx.MockTransport(handler), sink)

        with pytest.raises(httpx.HTTPStatusError):
            await client.send("chat-1", "Hello")
        sink.save.assert_not_awaited()


class TestAgainstService:
    """ChatStreamClient talking to the service routes with the default sink."""

    async def test_answer_saved_through_messages_endpoint(
        self, test_app: FastAPI, store: InMemoryConversationStore
    ):
        http_client = httpx.AsyncClient(transport=httpx.ASGITransport(app=test_app), base_url="http://test")
        async with ChatStreamClient("http://test", user_id="user-1", http_client=http_client) as client:
            chat_id = await client.create_chat("Arithmetic")
            transcript = await client.send(chat_id, "What is 2 + 2?")

        assert transcript.succeeded
        messages = await store.get_messages(chat_id, "user-1")
        assert [(m.role, m.content) for m in messages] == [
            ("user", "What is 2 + 2?"),
            ("assistant", '\n```calculator\nInput: {"a": 2, "b": 2}\nOutput: 4\n```\n4'),
        ]
        await http_client.aclose()
