"""HTTP client for the chat event stream.

ChatStreamClient posts a user message to the assistant stream endpoint,
decodes the frames as they arrive, and folds them into a transcript. When
the stream reaches ``done`` the final assistant text is handed to a
TranscriptSink exactly once; failed or truncated streams persist nothing.
"""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from typing import Protocol

import httpx
from opentelemetry import propagate

from toolchat.platform.constants import USER_AGENT
from toolchat.platform.observability.logging import correlation_id_ctx
from toolchat.platform.streaming.codec import FrameDecoder
from toolchat.platform.streaming.events import StreamEvent, is_terminal
from toolchat.platform.streaming.reconstructor import Transcript, TranscriptReconstructor

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-ID"


async def _inject_trace_context(request: httpx.Request) -> None:
    """Propagate trace context and correlation id on each outgoing request."""
    propagate.inject(request.headers)

    correlation_id = correlation_id_ctx.get()
    if correlation_id:
        request.headers["X-Request-ID"] = correlation_id


class TranscriptSink(Protocol):
    """Destination for a finished assistant answer."""

    async def save(self, chat_id: str, user_id: str, content: str) -> None: ...


class HttpTranscriptSink:
    """Persist answers through the chat messages endpoint."""

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http_client = http_client

    async def save(self, chat_id: str, user_id: str, content: str) -> None:
        response = await self._http_client.post(
            f"/chats/{chat_id}/messages",
            json={"role": "assistant", "content": content},
            headers={USER_ID_HEADER: user_id},
        )
        response.raise_for_status()


class ChatStreamClient:
    """Client that streams one assistant answer per call."""

    def __init__(
        self,
        base_url: str,
        user_id: str,
        sink: TranscriptSink | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 300.0,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL of the chat service
            user_id: Identity forwarded in the X-User-ID header
            sink: Where finished answers go; defaults to the service's messages endpoint
            http_client: Optional pre-configured HTTP client
            timeout: Read timeout for the event stream in seconds
        """
        self._user_id = user_id
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(10.0, read=timeout),
            headers={"User-Agent": USER_AGENT},
            event_hooks={"request": [_inject_trace_context]},
        )
        self._sink = sink or HttpTranscriptSink(self._http_client)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "ChatStreamClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def create_chat(self, title: str = "New Chat") -> str:
        """Create a chat thread and return its id."""
        response = await self._http_client.post(
            "/chats",
            json={"title": title},
            headers={USER_ID_HEADER: self._user_id},
        )
        response.raise_for_status()
        return response.json()["id"]

    async def events(self, chat_id: str, message: str) -> AsyncIterator[StreamEvent]:
        """Post a message and yield decoded events as they arrive."""
        decoder = FrameDecoder()
        async with self._http_client.stream(
            "POST",
            "/assistant/stream",
            json={"chat_id": chat_id, "message": message},
            headers={USER_ID_HEADER: self._user_id, "Accept": "text/event-stream"},
        ) as response:
            response.raise_for_status()
            async for chunk in response.aiter_bytes():
                for event in decoder.feed(chunk):
                    yield event
        for event in decoder.close():
            yield event

    async def send(
        self,
        chat_id: str,
        message: str,
        on_update: Callable[[str], None] | None = None,
    ) -> Transcript:
        """Stream an answer to completion and persist it on success.

        Args:
            chat_id: Chat thread to post into
            message: The user's message
            on_update: Optional callback receiving the rendered text after each event

        Returns:
            The final transcript; failed when the run errored or was cut short
        """
        reconstructor = TranscriptReconstructor()
        async with aclosing(self.events(chat_id, message)) as events:
            async for event in events:
                reconstructor.apply(event)
                if on_update is not None:
                    on_update(reconstructor.render())
                if is_terminal(event):
                    break

        transcript = reconstructor.finalize()
        if transcript.succeeded:
            await self._sink.save(chat_id, self._user_id, transcript.content)
        else:
            logger.warning(f"Answer for chat {chat_id} not saved: {transcript.error}")
        return transcript
