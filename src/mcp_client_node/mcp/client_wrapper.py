"""
MCP Client Wrapper

High-level entry point for one node execution: resolves the connection,
opens a single MCP session, runs the selected operation for every input
item through the batch executor and tears the session down on every path.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from langchain_core.tools import StructuredTool
from mcp import ClientSession

from ..core.config import Settings, get_settings
from ..core.logging import get_logger
from .batch_executor import BatchExecutor, resolve_batch_config
from .capabilities import CapabilityLister, to_jsonable
from .exceptions import MCPConfigurationError
from .interfaces import (
    CredentialSource,
    FailureToleranceFlag,
    ParameterSource,
    resolve_failure_tolerance,
)
from .schema_adapter import SchemaAdapter
from .service_adapter import CredentialMCPAdapter
from .session_manager import MCPSessionManager
from .tool_invoker import ToolInvoker, normalize_arguments
from .transport_factory import MCPTransportFactory


logger = get_logger(__name__)


class _OperationContext:
    """Per-execution collaborators shared by every item."""

    def __init__(self, session_manager: MCPSessionManager, parameters: ParameterSource):
        self.parameters = parameters
        self.lister = CapabilityLister(session_manager)
        self.invoker = ToolInvoker(session_manager, self.lister)


OperationHandler = Callable[[_OperationContext, int], Awaitable[Dict[str, Any]]]


async def _list_resources(ctx: _OperationContext, index: int) -> Dict[str, Any]:
    return {"resources": to_jsonable(await ctx.lister.list_resources())}


async def _list_resource_templates(ctx: _OperationContext, index: int) -> Dict[str, Any]:
    return {"resourceTemplates": to_jsonable(await ctx.lister.list_resource_templates())}


async def _read_resource(ctx: _OperationContext, index: int) -> Dict[str, Any]:
    uri = str(ctx.parameters.get("resourceUri", index, "") or "").strip()
    if not uri:
        raise MCPConfigurationError("Resource URI is required for readResource", field="resourceUri")
    return {"resource": to_jsonable(await ctx.lister.read_resource(uri))}


async def _list_tools(ctx: _OperationContext, index: int) -> Dict[str, Any]:
    tools = await ctx.lister.list_tools()
    return {"tools": [SchemaAdapter.to_listing(tool) for tool in tools]}


async def _execute_tool(ctx: _OperationContext, index: int) -> Dict[str, Any]:
    name = str(ctx.parameters.get("toolName", index, "") or "")
    raw_arguments = ctx.parameters.get("toolParameters", index, "{}")
    return await ctx.invoker.invoke(name, raw_arguments)


async def _list_prompts(ctx: _OperationContext, index: int) -> Dict[str, Any]:
    return {"prompts": to_jsonable(await ctx.lister.list_prompts())}


async def _get_prompt(ctx: _OperationContext, index: int) -> Dict[str, Any]:
    name = str(ctx.parameters.get("promptName", index, "") or "")
    raw_arguments = ctx.parameters.get("promptArguments", index, None)
    arguments = {
        key: value if isinstance(value, str) else str(value)
        for key, value in normalize_arguments(raw_arguments).items()
    }
    prompt = await ctx.lister.get_prompt(name, arguments or None)
    return {"prompt": to_jsonable(prompt)}


OPERATIONS: Dict[str, OperationHandler] = {
    "listResources": _list_resources,
    "listResourceTemplates": _list_resource_templates,
    "readResource": _read_resource,
    "listTools": _list_tools,
    "executeTool": _execute_tool,
    "listPrompts": _list_prompts,
    "getPrompt": _get_prompt,
}


class MCPClientWrapper:
    """
    High-level wrapper for MCP client operations.

    Provides:
    - Per-execution connection resolution and session lifecycle
    - Batched per-item execution of listing, reading, prompt and tool operations
    - LangChain tools for function-calling agents
    """

    def __init__(
        self,
        adapter: Optional[CredentialMCPAdapter] = None,
        transport_factory: Any = MCPTransportFactory,
        session_factory: Callable[..., Any] = ClientSession,
        settings: Optional[Settings] = None
    ):
        self._settings = settings or get_settings()
        self._adapter = adapter or CredentialMCPAdapter(settings=self._settings)
        self._transport_factory = transport_factory
        self._session_factory = session_factory

    @asynccontextmanager
    async def connect(
        self,
        parameters: ParameterSource,
        credentials: CredentialSource
    ) -> AsyncIterator[MCPSessionManager]:
        """
        Open the execution's single MCP session.

        Raises:
            MCPConfigurationError: If connection parameters are invalid
            MCPConnectionError: If the transport or handshake fails
        """
        spec = self._adapter.build_connection_spec(
            parameters.get("connectionType", 0, "stdio"),
            credentials,
            uri_override=parameters.get("uriOverride", 0, ""),
            header_overrides=parameters.get("headerOverrides", 0, None),
        )
        transport = self._transport_factory.create(spec)
        session_manager = MCPSessionManager(
            transport,
            timeout_ms=spec.timeout_ms,
            client_name=self._settings.CLIENT_NAME,
            client_version=self._settings.CLIENT_VERSION,
            session_factory=self._session_factory,
        )
        async with session_manager:
            yield session_manager

    async def execute(
        self,
        items: Sequence[Any],
        parameters: ParameterSource,
        credentials: CredentialSource,
        failure_tolerance: Union[bool, FailureToleranceFlag, None] = False
    ) -> List[Dict[str, Any]]:
        """
        Run the configured operation for every input item.

        Args:
            items: Input items (an empty sequence runs the operation once)
            parameters: Node parameters; ``operation`` and connection settings
                are read for item 0, operation inputs per item
            credentials: Credential provider
            failure_tolerance: Contain per-item failures instead of aborting

        Returns:
            One ``{"json": ..., "pairedItem": {"item": i}}`` entry per item, in input order
        """
        items = list(items) or [{}]
        operation = parameters.get("operation", 0, "listTools")
        handler = OPERATIONS.get(operation)
        if handler is None:
            raise MCPConfigurationError(
                f"Operation {operation} not supported",
                field="operation",
                details={"supported": sorted(OPERATIONS)}
            )

        continue_on_fail = resolve_failure_tolerance(failure_tolerance)
        batch_config = resolve_batch_config(
            len(items),
            parameters.get("batching", 0, None),
            self._settings
        )
        log = get_logger(__name__, operation=operation)
        log.debug(
            f"Executing {operation} for {len(items)} items "
            f"(batch size {batch_config.items_per_batch}, interval {batch_config.batch_interval_ms} ms)"
        )

        async with self.connect(parameters, credentials) as session_manager:
            ctx = _OperationContext(session_manager, parameters)

            async def run_item(item: Any, index: int) -> Dict[str, Any]:
                return await handler(ctx, index)

            executor = BatchExecutor(batch_config, continue_on_fail=continue_on_fail)
            results = await executor.run(items, run_item)

        return [result.to_output() for result in results]

    @asynccontextmanager
    async def agent_tools(
        self,
        parameters: ParameterSource,
        credentials: CredentialSource
    ) -> AsyncIterator[List[StructuredTool]]:
        """
        Expose the server's tools to a function-calling agent.

        The tools are only usable inside the ``async with`` block; the session
        is closed on exit.
        """
        async with self.connect(parameters, credentials) as session_manager:
            invoker = ToolInvoker(session_manager)
            tools = await CapabilityLister(session_manager).list_tools()
            logger.debug(f"Providing {len(tools)} MCP tools to agent")
            yield [SchemaAdapter.build_structured_tool(tool, invoker.invoke) for tool in tools]
