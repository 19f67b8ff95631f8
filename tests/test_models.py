"""Test shared models and host interfaces."""

import pytest
from pydantic import ValidationError

from mcp_client_node.mcp.exceptions import MCPConfigurationError, MCPToolNotFoundError
from mcp_client_node.mcp.interfaces import (
    FailureToleranceFlag,
    ParameterSource,
    StaticCredentialSource,
    StaticParameterSource,
    resolve_failure_tolerance,
)
from mcp_client_node.mcp.models import ConnectionKind, ConnectionSpec


class TestConnectionKind:
    """Test connection type parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("stdio", ConnectionKind.STDIO),
        ("cmd", ConnectionKind.STDIO),
        ("", ConnectionKind.STDIO),
        (None, ConnectionKind.STDIO),
        ("SSE", ConnectionKind.SSE),
        (" http ", ConnectionKind.HTTP),
        (ConnectionKind.HTTP, ConnectionKind.HTTP),
    ])
    def test_parse(self, value, expected):
        """Test supported spellings."""
        assert ConnectionKind.parse(value) is expected

    def test_unknown(self):
        """Test unknown kinds raise ValueError."""
        with pytest.raises(ValueError):
            ConnectionKind.parse("websocket")


class TestConnectionSpec:
    """Test the immutable connection parameters."""

    def test_frozen(self):
        """Test a resolved spec cannot be modified."""
        spec = ConnectionSpec(kind=ConnectionKind.HTTP, url="http://localhost/mcp")

        with pytest.raises(ValidationError):
            spec.url = "http://elsewhere/mcp"

    def test_timeout_must_be_positive(self):
        """Test a zero timeout is rejected."""
        with pytest.raises(ValidationError):
            ConnectionSpec(kind=ConnectionKind.STDIO, command="x", timeout_ms=0)

    def test_timeout_seconds(self):
        """Test the millisecond timeout in seconds."""
        assert ConnectionSpec(kind=ConnectionKind.STDIO, command="x", timeout_ms=1500).timeout_seconds == 1.5


class TestParameterSource:
    """Test the static parameter source."""

    def test_item_overrides(self):
        """Test per-item values win over node parameters."""
        source = StaticParameterSource({"toolName": "echo", "toolParameters": "{}"}, [{}, {"toolName": "add"}])

        assert isinstance(source, ParameterSource)
        assert source.get("toolName", 0) == "echo"
        assert source.get("toolName", 1) == "add"
        assert source.get("toolName", 5) == "echo"
        assert source.get("missing", 0, "fallback") == "fallback"


class TestCredentialSource:
    """Test the static credential source."""

    def test_missing_kind(self):
        """Test a missing connection kind is a configuration error."""
        with pytest.raises(MCPConfigurationError, match="No credentials configured for 'sse'"):
            StaticCredentialSource({}).get("sse")


class TestFailureTolerance:
    """Test failure tolerance resolution."""

    def test_plain_values(self):
        """Test bools and None."""
        assert resolve_failure_tolerance(True) is True
        assert resolve_failure_tolerance(False) is False
        assert resolve_failure_tolerance(None) is False

    def test_flag_object(self):
        """Test objects implementing enabled()."""
        class Flag:
            def __init__(self, value):
                self.value = value

            def enabled(self):
                return self.value

        assert isinstance(Flag(True), FailureToleranceFlag)
        assert resolve_failure_tolerance(Flag(True)) is True
        assert resolve_failure_tolerance(Flag(False)) is False


class TestErrors:
    """Test error serialization."""

    def test_to_dict(self):
        """Test errors render their type, message and details."""
        error = MCPToolNotFoundError(
            "Tool 'x' does not exist. Available tools: echo",
            tool_name="x",
            available_tools=["echo"],
            details={"tool": "x"},
        )

        assert error.to_dict() == {
            "error_type": "MCPToolNotFoundError",
            "message": "Tool 'x' does not exist. Available tools: echo",
            "details": {"tool": "x"},
        }
        assert str(error) == error.message
