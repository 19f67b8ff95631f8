"""
Capability listing for tools, prompts and resources.

Servers and SDK versions answer listings as result objects, plain
sequences or name-keyed mappings. Everything is normalized into an ordered
list as soon as it is received.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Dict, List, Optional

from pydantic import AnyUrl, BaseModel

from ..core.logging import get_logger
from .exceptions import MCPConnectionError, MCPNoCapabilityError, MCPRemoteError
from .models import ToolDescriptor
from .session_manager import MCPSessionManager


logger = get_logger(__name__)


def normalize_listing(raw: Any, key: str) -> List[Any]:
    """
    Normalize a listing response into an ordered list.

    Args:
        raw: SDK result object, dict holding ``key``, sequence, or mapping keyed by name
        key: Attribute/key holding the entries (``tools``, ``prompts``, ...)
    """
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        inner = raw[key] if key in raw else raw
    elif isinstance(raw, (str, bytes)):
        return []
    elif isinstance(raw, Sequence):
        return list(raw)
    else:
        inner = getattr(raw, key, None)

    if inner is None:
        return []
    if isinstance(inner, Mapping):
        return list(inner.values())
    if isinstance(inner, Sequence) and not isinstance(inner, (str, bytes)):
        return list(inner)
    return []


def to_jsonable(value: Any) -> Any:
    """Convert SDK models (recursively) into JSON-serializable structures."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def _field(entry: Any, name: str) -> Any:
    if isinstance(entry, Mapping):
        return entry.get(name)
    return getattr(entry, name, None)


def to_tool_descriptor(entry: Any) -> ToolDescriptor:
    """Build a descriptor, keeping the server's input schema object as-is."""
    name = _field(entry, "name")
    schema = _field(entry, "inputSchema")
    if schema is None:
        schema = _field(entry, "input_schema")
    return ToolDescriptor(
        name=name,
        description=_field(entry, "description") or f"Execute the {name} tool",
        input_schema=schema if schema is not None else {},
    )


class CapabilityLister:
    """Queries the remote server for its tools, prompts and resources."""

    def __init__(self, session_manager: MCPSessionManager):
        self._session_manager = session_manager

    async def list_tools(self, require: bool = True) -> List[ToolDescriptor]:
        """
        List the server's tools; descriptors are built fresh on every call.

        Raises:
            MCPNoCapabilityError: If ``require`` is set and the server has no tools
            MCPRemoteError: If the query fails
        """
        raw = await self._query("listTools", lambda session: session.list_tools())
        tools = [to_tool_descriptor(entry) for entry in normalize_listing(raw, "tools")]
        if not tools and require:
            logger.warning("No tools found from MCP client response.")
            raise MCPNoCapabilityError("No tools found from MCP client")
        logger.debug(f"[MCP][listTools] Received {len(tools)} tools from server")
        return tools

    async def list_prompts(self) -> List[Any]:
        raw = await self._query("listPrompts", lambda session: session.list_prompts())
        return normalize_listing(raw, "prompts")

    async def list_resources(self) -> List[Any]:
        raw = await self._query("listResources", lambda session: session.list_resources())
        return normalize_listing(raw, "resources")

    async def list_resource_templates(self) -> List[Any]:
        raw = await self._query(
            "listResourceTemplates",
            lambda session: session.list_resource_templates()
        )
        return normalize_listing(raw, "resourceTemplates")

    async def read_resource(self, uri: str) -> Any:
        """Read a single resource by URI."""
        return await self._query(
            "readResource",
            lambda session: session.read_resource(AnyUrl(uri)),
            target=uri
        )

    async def get_prompt(self, name: str, arguments: Optional[Dict[str, str]] = None) -> Any:
        """Get a single prompt by name."""
        return await self._query(
            "getPrompt",
            lambda session: session.get_prompt(name, arguments=arguments),
            target=name
        )

    async def _query(self, operation: str, call, target: Optional[str] = None) -> Any:
        try:
            return await self._session_manager.request(operation, call)
        except MCPConnectionError:
            raise
        except Exception as e:
            subject = f"{operation} '{target}'" if target else operation
            raise MCPRemoteError(
                f"Failed to {subject}: {e}",
                operation=operation,
                target=target,
                details={"error_type": type(e).__name__}
            ) from e
