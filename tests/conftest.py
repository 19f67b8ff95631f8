"""Shared fixtures for MCP client tests."""

import pytest

from mcp_client_node.mcp.models import ConnectionKind
from mcp_client_node.mcp.transport_factory import MCPTransport

from .fakes import FakeConnector, FakeServer


@pytest.fixture
def fake_server():
    return FakeServer()


@pytest.fixture
def fake_connector():
    return FakeConnector()


@pytest.fixture
def fake_transport(fake_connector):
    return MCPTransport(ConnectionKind.STDIO, fake_connector, target="fake-server")


@pytest.fixture
def stdio_credentials():
    return {"stdio": {"command": "fake-mcp-server", "args": "--verbose"}}
