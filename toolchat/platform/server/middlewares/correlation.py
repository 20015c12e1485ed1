"""Middleware for request correlation ID propagation."""

import uuid

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from toolchat.platform.observability.logging import correlation_id_ctx

REQUEST_ID_HEADER = "X-Request-ID"


class CorrelationIdMiddleware:
    """Middleware that extracts or generates correlation IDs for request tracing.

    Extracts X-Request-ID from incoming request headers or generates a new UUID
    if not present, and echoes it back in the response headers. Written as a
    plain ASGI middleware so the context variable stays set while a streaming
    response body is being produced.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        correlation_id = Headers(scope=scope).get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        async def send_with_correlation_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = correlation_id
            await send(message)

        token = correlation_id_ctx.set(correlation_id)
        try:
            await self.app(scope, receive, send_with_correlation_id)
        finally:
            correlation_id_ctx.reset(token)
