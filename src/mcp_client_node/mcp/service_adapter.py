"""
Credential MCP Adapter

Converts stored credentials, node parameters and an environment snapshot
into the immutable ConnectionSpec used for one run.
"""

import math
import os
from typing import Any, Mapping, Optional

from ..core.config import Settings, get_settings
from ..core.logging import get_logger
from .exceptions import MCPConfigurationError
from .headers import merge_headers, parse_headers
from .interfaces import CredentialSource
from .models import ConnectionKind, ConnectionSpec
from .transport_factory import build_stdio_environment, split_args, validate_absolute_url


logger = get_logger(__name__)


def coerce_timeout_ms(value: Any, default: int) -> int:
    """Positive integer milliseconds from a credential value, else ``default``."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number <= 0:
        return default
    return int(number)


class CredentialMCPAdapter:
    """
    Adapter that bridges host credentials with MCP transport configuration.

    The environment snapshot is captured once at construction so that
    building a spec never reads the process environment implicitly.
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        settings: Optional[Settings] = None
    ):
        """
        Initialize the adapter.

        Args:
            environ: Environment snapshot (defaults to a copy of os.environ)
            settings: Application settings
        """
        self._environ = dict(os.environ if environ is None else environ)
        self._settings = settings or get_settings()

    def build_connection_spec(
        self,
        connection_type: Any,
        credentials: CredentialSource,
        uri_override: Optional[str] = None,
        header_overrides: Optional[str] = None
    ) -> ConnectionSpec:
        """
        Resolve the connection for a run.

        Args:
            connection_type: ``stdio`` (or legacy ``cmd``), ``sse`` or ``http``
            credentials: Credential provider
            uri_override: Optional URL replacing the credential URL (sse/http)
            header_overrides: Optional NAME=VALUE text merged over credential headers

        Returns:
            ConnectionSpec for the transport factory

        Raises:
            MCPConfigurationError: If the type is unknown or parameters are invalid
        """
        try:
            kind = ConnectionKind.parse(connection_type)
        except ValueError:
            raise MCPConfigurationError(
                f"Unsupported connection type: {connection_type}",
                field="connectionType",
                details={"connection_type": connection_type}
            ) from None

        stored = credentials.get(kind.value)
        if kind is ConnectionKind.STDIO:
            spec = self._convert_stdio_credentials(stored)
        else:
            spec = self._convert_http_credentials(kind, stored, uri_override, header_overrides)

        logger.debug(f"Resolved MCP connection: {spec.describe()}")
        return spec

    def _convert_stdio_credentials(self, stored: Mapping[str, Any]) -> ConnectionSpec:
        command = str(stored.get("command") or "").strip()
        if not command:
            raise MCPConfigurationError(
                "Stdio connection is missing a command",
                field="command"
            )

        env = build_stdio_environment(
            self._environ,
            stored.get("environments"),
            prefix=self._settings.ENV_PASSTHROUGH_PREFIX
        )
        return ConnectionSpec(
            kind=ConnectionKind.STDIO,
            command=command,
            args=tuple(split_args(stored.get("args"))),
            env=env,
            timeout_ms=coerce_timeout_ms(stored.get("timeout"), self._settings.DEFAULT_TIMEOUT_MS),
        )

    def _convert_http_credentials(
        self,
        kind: ConnectionKind,
        stored: Mapping[str, Any],
        uri_override: Optional[str],
        header_overrides: Optional[str]
    ) -> ConnectionSpec:
        if uri_override and uri_override.strip():
            url = validate_absolute_url(uri_override, "uriOverride")
        else:
            url = validate_absolute_url(stored.get("url"), "url")

        endpoint = str(stored.get("messagesPostEndpoint") or "").strip() or None
        if endpoint:
            endpoint = validate_absolute_url(endpoint, "messagesPostEndpoint")

        headers = merge_headers(
            parse_headers(stored.get("headers")),
            parse_headers(header_overrides)
        )
        return ConnectionSpec(
            kind=kind,
            url=url,
            custom_endpoint=endpoint,
            headers=headers,
            timeout_ms=coerce_timeout_ms(stored.get("timeout"), self._settings.HTTP_TIMEOUT_MS),
        )
