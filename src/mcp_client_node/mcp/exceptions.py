"""
MCP Client Exception Classes

Custom exceptions for MCP client operations and error handling.
"""

from typing import Optional, Dict, Any, Sequence


class MCPClientError(Exception):
    """Base exception for all MCP client errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses and logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class MCPConfigurationError(MCPClientError):
    """Raised when connection parameters are missing or invalid."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.field = field


class MCPConnectionError(MCPClientError):
    """Raised when the transport cannot be opened or the handshake fails."""

    def __init__(
        self,
        message: str,
        server_url: Optional[str] = None,
        transport_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.server_url = server_url
        self.transport_type = transport_type


class MCPTransportError(MCPClientError):
    """Raised when transport-level operations fail."""

    def __init__(
        self,
        message: str,
        transport_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.transport_type = transport_type


class MCPRemoteError(MCPClientError):
    """Raised when a list/read/prompt query fails on an open session."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        target: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.operation = operation
        self.target = target


class MCPNoCapabilityError(MCPClientError):
    """Raised when the server advertises no tools but a tool listing was required."""


class MCPToolError(MCPClientError):
    """Base class for tool invocation failures."""

    def __init__(
        self,
        message: str,
        tool_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.tool_name = tool_name


class MCPToolNotFoundError(MCPToolError):
    """Raised when the requested tool is not in the server's tool list."""

    def __init__(
        self,
        message: str,
        tool_name: Optional[str] = None,
        available_tools: Optional[Sequence[str]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, tool_name, details)
        self.available_tools = list(available_tools or [])


class MCPInvalidArgumentsError(MCPToolError):
    """Raised when tool arguments cannot be normalized into a JSON object."""


class MCPToolExecutionError(MCPToolError):
    """Raised when the remote tool call fails or reports an error result."""
