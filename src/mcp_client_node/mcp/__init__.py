"""
MCP Client Module

Transport-agnostic MCP session lifecycle, capability listing, tool schema
adaptation and batched per-item execution.
"""

from .batch_executor import BatchExecutor, resolve_batch_config
from .capabilities import CapabilityLister, normalize_listing
from .client_wrapper import MCPClientWrapper, OPERATIONS
from .headers import merge_headers, parse_headers
from .interfaces import (
    CredentialSource, FailureToleranceFlag, ParameterSource,
    StaticCredentialSource, StaticParameterSource
)
from .models import BatchConfig, ConnectionKind, ConnectionSpec, ItemResult, ToolDescriptor
from .schema_adapter import SchemaAdapter
from .service_adapter import CredentialMCPAdapter
from .session_manager import MCPSessionManager
from .tool_invoker import ToolInvoker, normalize_arguments
from .transport_factory import MCPTransport, MCPTransportFactory
from .exceptions import (
    MCPClientError, MCPConfigurationError, MCPConnectionError, MCPTransportError,
    MCPRemoteError, MCPNoCapabilityError, MCPToolError, MCPToolNotFoundError,
    MCPInvalidArgumentsError, MCPToolExecutionError
)

__all__ = [
    "BatchExecutor",
    "resolve_batch_config",
    "CapabilityLister",
    "normalize_listing",
    "MCPClientWrapper",
    "OPERATIONS",
    "merge_headers",
    "parse_headers",
    "CredentialSource",
    "FailureToleranceFlag",
    "ParameterSource",
    "StaticCredentialSource",
    "StaticParameterSource",
    "BatchConfig",
    "ConnectionKind",
    "ConnectionSpec",
    "ItemResult",
    "ToolDescriptor",
    "SchemaAdapter",
    "CredentialMCPAdapter",
    "MCPSessionManager",
    "ToolInvoker",
    "normalize_arguments",
    "MCPTransport",
    "MCPTransportFactory",
    "MCPClientError",
    "MCPConfigurationError",
    "MCPConnectionError",
    "MCPTransportError",
    "MCPRemoteError",
    "MCPNoCapabilityError",
    "MCPToolError",
    "MCPToolNotFoundError",
    "MCPInvalidArgumentsError",
    "MCPToolExecutionError",
]
