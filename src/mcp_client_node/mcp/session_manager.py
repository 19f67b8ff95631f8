"""
MCP Session Manager

Owns one transport and one MCP ClientSession for the duration of a single
execution: opens the transport, performs the handshake, converts
asynchronous transport failures into a session-fatal error and guarantees
teardown on every exit path.
"""

import asyncio
from contextlib import AsyncExitStack
from datetime import timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from mcp import ClientSession
from mcp.types import Implementation

from ..core.config import get_settings
from ..core.logging import get_logger
from .exceptions import MCPConnectionError
from .transport_factory import MCPTransport


logger = get_logger(__name__)

T = TypeVar("T")

# Capability groups this client works with; compared against the server's
# advertised capabilities after the handshake.
DECLARED_CAPABILITIES = ("prompts", "resources", "tools")


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    CLOSING = "closing"


class MCPSessionManager:
    """Manages the single MCP session of one execution."""

    def __init__(
        self,
        transport: MCPTransport,
        timeout_ms: Optional[int] = None,
        client_name: Optional[str] = None,
        client_version: Optional[str] = None,
        session_factory: Callable[..., Any] = ClientSession,
        log: Optional[Any] = None
    ):
        settings = get_settings()
        self._transport = transport
        self._timeout_ms = timeout_ms or settings.DEFAULT_TIMEOUT_MS
        self._client_info = Implementation(
            name=client_name or settings.CLIENT_NAME,
            version=client_version or settings.CLIENT_VERSION,
        )
        self._session_factory = session_factory
        self._logger = log or logger

        self._stack: Optional[AsyncExitStack] = None
        self._session: Optional[ClientSession] = None
        self._fatal_error: Optional[MCPConnectionError] = None
        self._fatal_event = asyncio.Event()
        self._opened = False
        self._closed = False

        self.state = SessionState.DISCONNECTED
        self.server_info: Optional[Implementation] = None
        self.server_capabilities: List[str] = []

    async def __aenter__(self) -> "MCPSessionManager":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def transport(self) -> MCPTransport:
        return self._transport

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    @property
    def session(self) -> ClientSession:
        """The connected ClientSession."""
        if self._session is None or self.state is not SessionState.CONNECTED:
            raise MCPConnectionError(
                "MCP session is not connected",
                server_url=self._transport.target,
                transport_type=self._transport.kind.value
            )
        return self._session

    async def open(self) -> "MCPSessionManager":
        """
        Open the transport and perform the MCP handshake.

        Raises:
            MCPConnectionError: If the transport cannot be opened or the
                handshake does not complete. The transport is closed first.
        """
        if self._opened:
            raise MCPConnectionError(
                "MCP session was already opened",
                server_url=self._transport.target,
                transport_type=self._transport.kind.value
            )
        self._opened = True

        try:
            read_stream, write_stream = await self._transport.open()
            self._stack = AsyncExitStack()
            session = await self._stack.enter_async_context(
                self._session_factory(
                    read_stream,
                    write_stream,
                    read_timeout_seconds=timedelta(milliseconds=self._timeout_ms),
                    message_handler=self._handle_incoming,
                    client_info=self._client_info,
                )
            )
            result = await self._race("initialize", session.initialize(), self._timeout_ms)
        except Exception as e:
            self._logger.error(f"MCP client connection error: {e}")
            await self.close()
            raise MCPConnectionError(
                f"Failed to connect to MCP server: {e}",
                server_url=self._transport.target,
                transport_type=self._transport.kind.value,
                details={"error_type": type(e).__name__}
            ) from e

        self._session = session
        self.state = SessionState.CONNECTED
        self._record_server(result)
        return self

    async def request(
        self,
        operation: str,
        call: Callable[[ClientSession], Awaitable[T]],
        timeout_ms: Optional[int] = None
    ) -> T:
        """
        Run one protocol call on the session.

        Args:
            operation: Operation name used in error messages
            call: Receives the ClientSession and returns the awaitable to run
            timeout_ms: Per-call timeout (defaults to the session timeout)

        Raises:
            MCPConnectionError: If the transport failed before or during the call
            TimeoutError: If the call does not complete in time
        """
        if self._fatal_error is not None:
            raise self._fatal_error
        session = self.session
        return await self._race(operation, call(session), timeout_ms or self._timeout_ms)

    async def close(self) -> None:
        """Close session and transport. Idempotent; close failures are logged."""
        if self._closed:
            return
        self._closed = True
        self.state = SessionState.CLOSING

        stack, self._stack = self._stack, None
        self._session = None
        try:
            if stack is not None:
                try:
                    await stack.aclose()
                except Exception as e:
                    self._logger.warning(f"Error exiting MCP session context: {e}")
        finally:
            await self._transport.close()
            self.state = SessionState.DISCONNECTED

    async def _race(self, operation: str, awaitable: Awaitable[T], timeout_ms: int) -> T:
        """Await ``awaitable`` unless the transport fails or the timeout expires first."""
        call = asyncio.ensure_future(awaitable)
        fatal = asyncio.ensure_future(self._fatal_event.wait())
        try:
            done, _ = await asyncio.wait(
                {call, fatal},
                timeout=timeout_ms / 1000.0,
                return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            fatal.cancel()
            if not call.done():
                call.cancel()

        if call in done:
            return call.result()
        if self._fatal_error is not None:
            raise self._fatal_error
        raise TimeoutError(f"{operation} timed out after {timeout_ms} ms")

    async def _handle_incoming(self, message: Any) -> None:
        """Message handler installed on the ClientSession; exceptions are transport failures."""
        if isinstance(message, Exception):
            self._fail(message)

    def _fail(self, error: Exception) -> None:
        if self._fatal_error is not None:
            return
        self._logger.error(f"MCP transport error: {error}")
        fatal = MCPConnectionError(
            f"Transport error: {error}",
            server_url=self._transport.target,
            transport_type=self._transport.kind.value
        )
        fatal.__cause__ = error
        self._fatal_error = fatal
        self._transport.mark_errored(error)
        self._fatal_event.set()

    def _record_server(self, result: Any) -> None:
        self.server_info = getattr(result, "serverInfo", None)
        capabilities = getattr(result, "capabilities", None)
        self.server_capabilities = [
            name for name in DECLARED_CAPABILITIES
            if getattr(capabilities, name, None) is not None
        ]
        server_name = getattr(self.server_info, "name", "unknown")
        self._logger.debug(
            f"Client connected to MCP server {server_name} "
            f"(capabilities: {', '.join(self.server_capabilities) or 'none'})"
        )
        missing = [name for name in DECLARED_CAPABILITIES if name not in self.server_capabilities]
        if missing:
            self._logger.debug(f"MCP server does not advertise: {', '.join(missing)}")
