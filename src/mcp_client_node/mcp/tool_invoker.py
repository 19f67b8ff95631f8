"""
Tool invocation: argument normalization, existence check and the timed
remote call.
"""

import json
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from ..core.logging import get_logger
from .capabilities import CapabilityLister, to_jsonable
from .exceptions import (
    MCPConnectionError,
    MCPInvalidArgumentsError,
    MCPToolExecutionError,
    MCPToolNotFoundError,
)
from .session_manager import MCPSessionManager


logger = get_logger(__name__)


def normalize_arguments(raw: Any = None) -> Dict[str, Any]:
    """
    Normalize tool arguments into a JSON object.

    ``None`` and blank strings become ``{}``; other strings are parsed as
    JSON; mappings and pydantic models are used as-is; anything else goes
    through a JSON round trip.

    Raises:
        MCPInvalidArgumentsError: If the result is not a JSON object
    """
    if raw is None:
        value: Any = {}
    elif isinstance(raw, str):
        if not raw.strip():
            value = {}
        else:
            try:
                value = json.loads(raw)
            except json.JSONDecodeError as e:
                raise MCPInvalidArgumentsError(
                    f"Failed to parse tool parameters: {e}. Make sure the parameters are valid JSON."
                ) from e
    elif isinstance(raw, BaseModel):
        value = raw.model_dump(mode="json", by_alias=True, exclude_unset=True)
    elif isinstance(raw, Mapping):
        value = dict(raw)
    else:
        try:
            value = json.loads(json.dumps(raw))
        except (TypeError, ValueError) as e:
            raise MCPInvalidArgumentsError(
                f"Invalid parameter type: {type(raw).__name__}"
            ) from e

    if not isinstance(value, dict):
        raise MCPInvalidArgumentsError(
            "Tool parameters must be a JSON object",
            details={"received_type": type(value).__name__}
        )
    return value


def _error_text(result: Any) -> str:
    parts: List[str] = []
    for item in getattr(result, "content", None) or []:
        text = getattr(item, "text", None)
        if text is not None:
            parts.append(str(text))
    return "\n".join(parts) or "tool reported an error"


class ToolInvoker:
    """Calls remote tools on the execution's session."""

    def __init__(self, session_manager: MCPSessionManager, lister: Optional[CapabilityLister] = None):
        self._session_manager = session_manager
        self._lister = lister or CapabilityLister(session_manager)

    async def invoke(
        self,
        name: str,
        raw_arguments: Any = None,
        timeout_ms: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Execute a tool.

        Args:
            name: Tool name
            raw_arguments: Arguments in any form accepted by normalize_arguments
            timeout_ms: Per-call timeout (defaults to the session timeout)

        Returns:
            ``{"result": <CallToolResult as JSON>}``

        Raises:
            MCPInvalidArgumentsError: If the arguments are not a JSON object
            MCPToolNotFoundError: If the server does not list the tool
            MCPToolExecutionError: If the call fails or returns an error result
        """
        arguments = normalize_arguments(raw_arguments)

        available = [tool.name for tool in await self._lister.list_tools(require=False)]
        if name not in available:
            raise MCPToolNotFoundError(
                f"Tool '{name}' does not exist. Available tools: {', '.join(available)}",
                tool_name=name,
                available_tools=available
            )

        timeout_ms = timeout_ms or self._session_manager.timeout_ms
        logger.debug(f"Executing tool: {name} with params: {json.dumps(arguments, default=str)}")
        try:
            result = await self._session_manager.request(
                f"callTool '{name}'",
                lambda session: session.call_tool(
                    name,
                    arguments,
                    read_timeout_seconds=timedelta(milliseconds=timeout_ms)
                ),
                timeout_ms=timeout_ms
            )
        except MCPConnectionError:
            raise
        except Exception as e:
            raise MCPToolExecutionError(
                f"Failed to execute tool '{name}': {e}",
                tool_name=name,
                details={"arguments": arguments, "error_type": type(e).__name__}
            ) from e

        if getattr(result, "isError", False):
            raise MCPToolExecutionError(
                f"Failed to execute tool '{name}': {_error_text(result)}",
                tool_name=name,
                details={"arguments": arguments}
            )

        logger.debug(f"Tool executed successfully: {name}")
        return {"result": to_jsonable(result)}
