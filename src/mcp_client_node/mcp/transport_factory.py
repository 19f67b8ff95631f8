"""
MCP Transport Factory

Builds unopened transport handles for the three supported connection kinds
(stdio subprocess, Server-Sent Events, streamable HTTP) from a
``ConnectionSpec``.
"""

from contextlib import AsyncExitStack
from datetime import timedelta
from enum import Enum
from functools import partial
from typing import Any, AsyncContextManager, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

import httpx
from mcp import StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.shared._httpx_utils import create_mcp_http_client

from ..core.logging import get_logger
from .exceptions import MCPConfigurationError, MCPTransportError
from .headers import parse_key_value_lines
from .models import ConnectionKind, ConnectionSpec


logger = get_logger(__name__)

Connector = Callable[[], AsyncContextManager[Tuple[Any, ...]]]


class TransportState(str, Enum):
    UNOPENED = "unopened"
    OPEN = "open"
    ERRORED = "errored"
    CLOSED = "closed"


class MCPTransport:
    """
    Handle to a bidirectional MCP message channel.

    Wraps one of the SDK's transport context managers. The handle is owned
    by a single session, is opened at most once and reaches ``closed``
    exactly once.
    """

    def __init__(self, kind: ConnectionKind, connector: Connector, target: str):
        self.kind = kind
        self.target = target
        self._connector = connector
        self._stack: Optional[AsyncExitStack] = None
        self.state = TransportState.UNOPENED
        self.error: Optional[BaseException] = None

    async def open(self) -> Tuple[Any, Any]:
        """
        Open the channel.

        Returns:
            Tuple of (read_stream, write_stream)

        Raises:
            MCPTransportError: If the transport was already used or fails to open
        """
        if self.state is not TransportState.UNOPENED:
            raise MCPTransportError(
                f"Transport for {self.target} cannot be opened from state '{self.state.value}'",
                transport_type=self.kind.value
            )

        stack = AsyncExitStack()
        try:
            streams = await stack.enter_async_context(self._connector())
        except Exception as e:
            if isinstance(e, BaseExceptionGroup):
                for i, exc in enumerate(e.exceptions):
                    logger.error(f"Transport sub-exception {i} for {self.target}: {exc!r}")
            self.state = TransportState.CLOSED
            await self._close_stack(stack)
            raise MCPTransportError(
                f"Failed to open {self.kind.value} transport for {self.target}: {e}",
                transport_type=self.kind.value,
                details={"target": self.target, "error_type": type(e).__name__}
            ) from e

        self._stack = stack
        self.state = TransportState.OPEN
        logger.debug(f"Opened {self.kind.value} transport for {self.target}")
        # streamable HTTP yields a third element (session id getter)
        return streams[0], streams[1]

    def mark_errored(self, error: BaseException) -> None:
        """Record an asynchronous transport failure."""
        if self.state is TransportState.OPEN:
            self.state = TransportState.ERRORED
            self.error = error

    async def close(self) -> None:
        """Close the channel. Safe to call more than once; failures are logged."""
        if self.state is TransportState.CLOSED:
            return
        stack, self._stack = self._stack, None
        self.state = TransportState.CLOSED
        if stack is not None:
            await self._close_stack(stack)
            logger.debug(f"Closed {self.kind.value} transport for {self.target}")

    async def _close_stack(self, stack: AsyncExitStack) -> None:
        try:
            await stack.aclose()
        except Exception as e:
            logger.warning(f"Error closing {self.kind.value} transport for {self.target}: {e}")


def validate_absolute_url(url: Optional[str], field: str) -> str:
    """Return the trimmed URL, or raise if it is not an absolute URI."""
    candidate = (url or "").strip()
    parsed = urlparse(candidate)
    if not parsed.scheme or not parsed.netloc:
        raise MCPConfigurationError(
            f"Invalid URL for {field}: '{candidate}'",
            field=field,
            details={"url": candidate}
        )
    return candidate


def split_args(text: Optional[str]) -> List[str]:
    """Split argument text on single spaces. Quoting is not interpreted."""
    return [part for part in (text or "").split(" ") if part]


def split_command_line(command: Optional[str]) -> Tuple[str, List[str]]:
    """Split a command string into the executable and its leading arguments."""
    parts = split_args((command or "").strip())
    if not parts:
        raise MCPConfigurationError("No command configured for stdio transport", field="command")
    return parts[0], parts[1:]


def build_stdio_environment(
    environ: Mapping[str, str],
    overrides_text: Optional[str] = None,
    prefix: str = "MCP_",
) -> Dict[str, str]:
    """
    Build the environment for a stdio server process.

    Starts from ``PATH`` of the given snapshot only, overlays the
    newline-delimited overrides, then overlays snapshot variables whose name
    carries ``prefix`` (stripped before insertion).
    """
    env: Dict[str, str] = {"PATH": environ.get("PATH", "")}
    env.update(parse_key_value_lines(overrides_text))

    for key, value in environ.items():
        if key.startswith(prefix) and len(key) > len(prefix) and value:
            env[key[len(prefix):]] = value
    return env


def create_post_redirect_client_factory(endpoint: str) -> Callable[..., httpx.AsyncClient]:
    """
    Create an httpx client factory that sends outbound POST requests to ``endpoint``.

    GET requests (the event stream) keep their original URL. Query parameters
    of the redirected request, such as an SSE session id, are preserved.
    """
    target = httpx.URL(endpoint)

    async def redirect_post(request: httpx.Request) -> None:
        if request.method != "POST":
            return
        url = target.copy_merge_params(request.url.params)
        request.url = url
        request.headers["Host"] = url.netloc.decode("ascii")

    def factory(
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[httpx.Timeout] = None,
        auth: Optional[httpx.Auth] = None,
    ) -> httpx.AsyncClient:
        client = create_mcp_http_client(headers=headers, timeout=timeout, auth=auth)
        hooks = client.event_hooks
        hooks["request"] = [*hooks.get("request", []), redirect_post]
        client.event_hooks = hooks
        return client

    return factory


class MCPTransportFactory:
    """Factory for creating MCP transport handles."""

    @classmethod
    def create(cls, spec: ConnectionSpec) -> MCPTransport:
        """
        Create an unopened transport for the given connection.

        Args:
            spec: Connection parameters

        Returns:
            Unopened MCPTransport

        Raises:
            MCPConfigurationError: If the parameters do not describe a usable transport
        """
        builders = {
            ConnectionKind.STDIO: cls.create_stdio_transport,
            ConnectionKind.SSE: cls.create_sse_transport,
            ConnectionKind.HTTP: cls.create_http_transport,
        }
        return builders[spec.kind](spec)

    @staticmethod
    def create_stdio_transport(spec: ConnectionSpec) -> MCPTransport:
        """Create a stdio transport that launches the MCP server as a subprocess."""
        command, args = split_command_line(spec.command)
        server_params = StdioServerParameters(
            command=command,
            args=args + list(spec.args),
            env=dict(spec.env),
        )
        logger.debug(
            f"Transport created for MCP client command: {command}, "
            f"PATH: {spec.env.get('PATH', '')}"
        )
        return MCPTransport(
            ConnectionKind.STDIO,
            partial(stdio_client, server_params),
            target=command,
        )

    @classmethod
    def create_sse_transport(cls, spec: ConnectionSpec) -> MCPTransport:
        """Create an SSE transport; the URL is the event source."""
        url, options = cls._http_options(spec)
        logger.debug(f"Created SSE transport for MCP client URL: {url}")
        return MCPTransport(
            ConnectionKind.SSE,
            partial(sse_client, url, timeout=spec.timeout_seconds, **options),
            target=url,
        )

    @classmethod
    def create_http_transport(cls, spec: ConnectionSpec) -> MCPTransport:
        """Create a streamable HTTP transport."""
        url, options = cls._http_options(spec)
        logger.debug(f"Created HTTP streamable transport for MCP client URL: {url}")
        return MCPTransport(
            ConnectionKind.HTTP,
            partial(
                streamablehttp_client,
                url,
                timeout=timedelta(milliseconds=spec.timeout_ms),
                **options
            ),
            target=url,
        )

    @staticmethod
    def _http_options(spec: ConnectionSpec) -> Tuple[str, Dict[str, Any]]:
        url = validate_absolute_url(spec.url, "url")
        options: Dict[str, Any] = {"headers": dict(spec.headers) or None}
        if spec.custom_endpoint:
            endpoint = validate_absolute_url(spec.custom_endpoint, "messagesPostEndpoint")
            options["httpx_client_factory"] = create_post_redirect_client_factory(endpoint)
            logger.debug(f"Using custom POST endpoint: {endpoint}")
        return url, options
