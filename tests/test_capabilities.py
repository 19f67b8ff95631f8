"""Test capability listing and normalization."""

from types import SimpleNamespace

import pytest
from mcp import types

from mcp_client_node.mcp.capabilities import (
    CapabilityLister,
    normalize_listing,
    to_jsonable,
    to_tool_descriptor,
)
from mcp_client_node.mcp.exceptions import MCPConnectionError, MCPNoCapabilityError, MCPRemoteError
from mcp_client_node.mcp.schema_adapter import SchemaAdapter
from mcp_client_node.mcp.session_manager import MCPSessionManager

from .fakes import ECHO_SCHEMA, FakeServer


class TestNormalizeListing:
    """Test listing response normalization."""

    def test_result_object(self):
        """Test SDK result objects are read by attribute."""
        raw = types.ListPromptsResult(prompts=[types.Prompt(name="a"), types.Prompt(name="b")])

        assert [p.name for p in normalize_listing(raw, "prompts")] == ["a", "b"]

    def test_plain_sequence(self):
        """Test a bare list is returned in order."""
        assert normalize_listing([{"name": "a"}, {"name": "b"}], "tools") == [{"name": "a"}, {"name": "b"}]

    def test_mapping_with_key(self):
        """Test a dict holding the listing under its key."""
        assert normalize_listing({"tools": [{"name": "a"}]}, "tools") == [{"name": "a"}]

    def test_name_keyed_mapping(self):
        """Test a mapping keyed by name becomes a list of its values."""
        raw = {"tools": {"first": {"name": "first"}, "second": {"name": "second"}}}

        assert normalize_listing(raw, "tools") == [{"name": "first"}, {"name": "second"}]

    def test_empty_inputs(self):
        """Test missing listings normalize to an empty list."""
        assert normalize_listing(None, "tools") == []
        assert normalize_listing(SimpleNamespace(tools=None), "tools") == []
        assert normalize_listing("tools", "tools") == []


class TestToolDescriptor:
    """Test tool descriptor construction."""

    def test_schema_object_is_kept(self):
        """Test the descriptor holds the server's schema unchanged."""
        schema = {"type": "object", "properties": {"q": {"type": "string"}}}
        descriptor = to_tool_descriptor({"name": "search", "description": "Search", "inputSchema": schema})

        assert descriptor.input_schema is schema
        assert SchemaAdapter.to_listing(descriptor) == {"name": "search", "description": "Search", "schema": schema}

    def test_default_description(self):
        """Test a tool without a description gets a generated one."""
        descriptor = to_tool_descriptor(types.Tool(name="ping", inputSchema={"type": "object"}))

        assert descriptor.description == "Execute the ping tool"


class TestToJsonable:
    """Test conversion of SDK models to plain structures."""

    def test_models_are_dumped_by_alias_without_nulls(self):
        """Test nested models use protocol field names and drop unset values."""
        resource = types.Resource(uri="file:///notes.txt", name="notes", mimeType="text/plain")

        assert to_jsonable([resource]) == [
            {"uri": "file:///notes.txt", "name": "notes", "mimeType": "text/plain"}
        ]

    def test_plain_values_pass_through(self):
        """Test JSON values are returned as they are."""
        assert to_jsonable({"a": [1, "b", None]}) == {"a": [1, "b", None]}


class TestCapabilityLister:
    """Test queries against a connected session."""

    async def test_list_tools(self, fake_transport, fake_server):
        """Test tools are listed with their schema."""
        async with MCPSessionManager(fake_transport, session_factory=fake_server.session_factory) as manager:
            tools = await CapabilityLister(manager).list_tools()

        assert [tool.name for tool in tools] == ["echo"]
        assert tools[0].input_schema == ECHO_SCHEMA

    async def test_list_tools_is_fresh_each_time(self, fake_transport, fake_server):
        """Test every listing queries the server again."""
        async with MCPSessionManager(fake_transport, session_factory=fake_server.session_factory) as manager:
            lister = CapabilityLister(manager)
            await lister.list_tools()
            fake_server.tools.append(types.Tool(name="late", inputSchema={"type": "object"}))
            tools = await lister.list_tools()

        assert fake_server.list_tools_calls == 2
        assert [tool.name for tool in tools] == ["echo", "late"]

    async def test_no_tools(self, fake_transport):
        """Test an empty tool list is an error when tools are required."""
        server = FakeServer(tools=[])
        async with MCPSessionManager(fake_transport, session_factory=server.session_factory) as manager:
            lister = CapabilityLister(manager)

            with pytest.raises(MCPNoCapabilityError, match="No tools found from MCP client"):
                await lister.list_tools()

            assert await lister.list_tools(require=False) == []

    async def test_prompts_and_resources(self, fake_transport, fake_server):
        """Test prompt, resource and template listings."""
        async with MCPSessionManager(fake_transport, session_factory=fake_server.session_factory) as manager:
            lister = CapabilityLister(manager)
            prompts = await lister.list_prompts()
            resources = await lister.list_resources()
            templates = await lister.list_resource_templates()

        assert [p.name for p in prompts] == ["greeting"]
        assert [str(r.uri) for r in resources] == ["file:///notes.txt"]
        assert [t.uriTemplate for t in templates] == ["file:///{path}"]

    async def test_read_resource_and_get_prompt(self, fake_transport, fake_server):
        """Test single resource and prompt retrieval."""
        async with MCPSessionManager(fake_transport, session_factory=fake_server.session_factory) as manager:
            lister = CapabilityLister(manager)
            resource = await lister.read_resource("file:///notes.txt")
            prompt = await lister.get_prompt("greeting", {"who": "Ada"})

        assert resource.contents[0].text == "remember the milk"
        assert prompt.messages[0].content.text == "Hello Ada"

    async def test_query_failure_is_wrapped(self, fake_transport):
        """Test remote failures become MCPRemoteError naming the operation and target."""
        server = FakeServer(fail_operations={"read_resource": RuntimeError("resource not found")})
        async with MCPSessionManager(fake_transport, session_factory=server.session_factory) as manager:
            with pytest.raises(MCPRemoteError) as exc_info:
                await CapabilityLister(manager).read_resource("file:///missing.txt")

        error = exc_info.value
        assert error.operation == "readResource"
        assert error.target == "file:///missing.txt"
        assert "resource not found" in error.message

    async def test_connection_errors_are_not_wrapped(self, fake_transport, fake_server):
        """Test session-fatal errors propagate as connection errors."""
        async with MCPSessionManager(fake_transport, session_factory=fake_server.session_factory) as manager:
            await fake_server.sessions[0].kwargs["message_handler"](BrokenPipeError("stdout closed"))

            with pytest.raises(MCPConnectionError):
                await CapabilityLister(manager).list_prompts()
