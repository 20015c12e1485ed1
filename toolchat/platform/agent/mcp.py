"""MCP client for the external tool catalog.

Tools are discovered and invoked over StreamableHTTP; LangGraphMCPTools turns
them into LangChain tools for the tool invoker node.

Usage:
    client = MCPClient("http://localhost:8000/mcp")
    tools = await client.list_tools()
    result = await client.call_tool("calculator", {"expr": "2+2"})
"""

import json
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any

import httpx
from mcp.client.session import ClientSession
from mcp.client.streamable_http import streamable_http_client
from mcp.types import Tool as MCPTool
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
)

from toolchat.platform.constants import USER_AGENT
from toolchat.platform.exceptions import BackendFailureError, ToolBackendError

logger = logging.getLogger(__name__)


class MCPClientError(BackendFailureError):
    """The MCP server could not be reached or rejected the request."""


class MCPToolError(ToolBackendError, MCPClientError):
    """The tool ran but reported an error result. Never retried."""


def parse_text(text: str) -> Any:
    """Decode a text content item as JSON, falling back to the raw text."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def parse_tool_result(result: Any) -> Any:
    """Extract the payload of a CallToolResult.

    Structured content wins when the server sends it. Otherwise text items are
    decoded: one item yields its value, several yield a list, none yields None.
    """
    structured = getattr(result, "structuredContent", None)
    if structured is not None:
        return structured
    items = [parse_text(getattr(item, "text", None) or str(item)) for item in result.content or []]
    if not items:
        return None
    return items[0] if len(items) == 1 else items


class MCPClient:
    """MCP client for StreamableHTTP servers.

    Each operation opens a short-lived session. Transport failures are retried;
    tool-reported errors are not.
    """

    def __init__(
        self,
        server_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 60.0,
        sse_read_timeout: float = 300.0,
        read_timeout: float = 120.0,
    ) -> None:
        """Initialize the MCP client.

        Args:
            server_url: URL of the MCP server endpoint
            headers: Optional HTTP headers; the service user-agent always wins
            timeout: Connect, write and pool timeout in seconds
            sse_read_timeout: Read timeout of the HTTP stream in seconds
            read_timeout: Per-request MCP session read timeout in seconds
        """
        self.server_url = server_url
        self.headers = (headers or {}) | {"user-agent": USER_AGENT}
        self.timeout = timeout
        self.sse_read_timeout = sse_read_timeout
        self.read_timeout = timedelta(seconds=read_timeout)

    def __repr__(self) -> str:
        return (
            f"MCPClient(server_url={self.server_url!r}, headers=<obfuscated>, "
            f"timeout={self.timeout}, sse_read_timeout={self.sse_read_timeout}, "
            f"read_timeout={self.read_timeout})"
        )

    def _http_timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self.timeout,
            read=self.sse_read_timeout,
            write=self.timeout,
            pool=self.timeout,
        )

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[ClientSession]:
        async with httpx.AsyncClient(headers=self.headers, timeout=self._http_timeout()) as http_client:
            async with streamable_http_client(url=self.server_url, http_client=http_client) as (
                read_stream,
                write_stream,
                _,
            ):
                async with ClientSession(
                    read_stream,
                    write_stream,
                    read_timeout_seconds=self.read_timeout,
                ) as session:
                    await session.initialize()
                    yield session

    @retry(
        wait=wait_fixed(2),
        stop=(stop_after_attempt(3) | stop_after_delay(10)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def list_tools(self) -> list[MCPTool]:
        """Fetch the tool catalog from the MCP server.

        Raises:
            MCPClientError: If listing fails after retries
        """
        try:
            async with self._session() as session:
                response = await session.list_tools()
        except Exception as e:
            raise MCPClientError(f"Failed to list tools: {e}") from e
        logger.info(f"Discovered {len(response.tools)} tool(s) at {self.server_url}")
        return response.tools

    @retry(
        retry=retry_if_not_exception_type(MCPToolError),
        wait=wait_fixed(2),
        stop=(stop_after_attempt(3) | stop_after_delay(10)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        """Call a tool on the MCP server and return its parsed payload.

        Raises:
            MCPToolError: If the tool reports an error result
            MCPClientError: If the call fails after retries
        """
        try:
            async with self._session() as session:
                result = await session.call_tool(name, arguments)
        except Exception as e:
            raise MCPClientError(f"Failed to call tool '{name}': {e}") from e
        if getattr(result, "isError", False):
            raise MCPToolError(str(parse_tool_result(result)), name)
        return parse_tool_result(result)
