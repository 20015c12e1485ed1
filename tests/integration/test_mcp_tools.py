"""Integration tests for LangGraphMCPTools.

Tests conversion of MCP tool definitions into LangChain tools and the
concurrent fetch across servers, with the MCP client stubbed.
"""

from unittest.mock import AsyncMock, Mock, patch

import pytest
from mcp.types import Tool as MCPTool

from toolchat.platform.agent.config import MCPConfig
from toolchat.platform.agent.langgraph import LangGraphMCPTools

ADD_TOOL = MCPTool(
    name="add",
    description="Add two numbers",
    inputSchema={
        "type": "object",
        "properties": {
            "a": {"type": "integer", "description": "First operand"},
            "b": {"type": "integer", "description": "Second operand"},
            "note": {"type": "string"},
        },
        "required": ["a", "b"],
    },
)


@pytest.fixture
def mcp_client() -> Mock:
    client = Mock()
    client.list_tools = AsyncMock(return_value=[ADD_TOOL])
    client.call_tool = AsyncMock(return_value={"sum": 4})
    return client


class TestConvertTools:
    """Tests for LangGraphMCPTools.convert_tools."""

    async def test_names_are_prefixed(self, mcp_client: Mock):
        tools = await LangGraphMCPTools(mcp_client).convert_tools()
        assert [t.name for t in tools] == ["mcp_add"]

        tools = await LangGraphMCPTools(mcp_client, tool_prefix="math").convert_tools()
        assert [t.name for t in tools] == ["mcp_math_add"]

    async def test_args_schema_from_input_schema(self, mcp_client: Mock):
        (tool,) = await LangGraphMCPTools(mcp_client).convert_tools()

        schema = tool.args_schema.model_json_schema()
        assert set(schema["properties"]) == {"a", "b", "note"}
        assert set(schema["required"]) == {"a", "b"}
        assert tool.description == "Add two numbers"

    async def test_invoke_uses_original_name(self, mcp_client: Mock):
        (tool,) = await LangGraphMCPTools(mcp_client, tool_prefix="math").convert_tools()

        output = await tool.ainvoke({"a": 2, "b": 2})

        name, arguments = mcp_client.call_tool.await_args.args
        assert name == "add"
        assert (arguments["a"], arguments["b"]) == (2, 2)
        assert output == '{"sum": 4}'

    async def test_empty_result(self, mcp_client: Mock):
        mcp_client.call_tool.return_value = None
        (tool,) = await LangGraphMCPTools(mcp_client).convert_tools()

        assert await tool.ainvoke({"a": 1, "b": 1}) == "No result"


class TestFetchAll:
    """Tests for LangGraphMCPTools.fetch_all."""

    async def test_combines_servers(self, mcp_client: Mock):
        configs = [
            MCPConfig(server_url="http://one.test/mcp", tool_prefix="one"),
            MCPConfig(server_url="http://two.test/mcp", tool_prefix="two"),
        ]
        with patch("toolchat.platform.agent.langgraph.MCPClient", return_value=mcp_client):
            tools = await LangGraphMCPTools.fetch_all(configs)

        assert [t.name for t in tools] == ["mcp_one_add", "mcp_two_add"]

    async def test_name_collision(self, mcp_client: Mock):
        configs = [MCPConfig(server_url="http://one.test/mcp"), MCPConfig(server_url="http://two.test/mcp")]
        with patch("toolchat.platform.agent.langgraph.MCPClient", return_value=mcp_client):
            with pytest.raises(ValueError, match="Tool name collision"):
                await LangGraphMCPTools.fetch_all(configs)
