"""
Data model shared by the transport, session and execution layers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class ConnectionKind(str, Enum):
    """Transport used to reach an MCP server."""
    STDIO = "stdio"
    SSE = "sse"
    HTTP = "http"

    @classmethod
    def parse(cls, value: Any) -> "ConnectionKind":
        """Parse a connection type, accepting the legacy ``cmd`` alias for stdio."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        if text in ("", "cmd"):
            return cls.STDIO
        return cls(text)


class ConnectionSpec(BaseModel):
    """Immutable connection parameters for a single run."""

    model_config = ConfigDict(frozen=True)

    kind: ConnectionKind
    command: Optional[str] = None
    args: Tuple[str, ...] = ()
    env: Dict[str, str] = Field(default_factory=dict)
    url: Optional[str] = None
    custom_endpoint: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    timeout_ms: int = Field(default=600000, ge=1)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    def describe(self) -> Dict[str, Any]:
        """Loggable summary without header or environment values."""
        if self.kind is ConnectionKind.STDIO:
            return {
                "kind": self.kind.value,
                "command": self.command,
                "args": list(self.args),
                "env_keys": sorted(self.env),
                "timeout_ms": self.timeout_ms,
            }
        return {
            "kind": self.kind.value,
            "url": self.url,
            "custom_endpoint": self.custom_endpoint,
            "header_names": sorted(self.headers),
            "timeout_ms": self.timeout_ms,
        }


@dataclass(frozen=True)
class ToolDescriptor:
    """A tool as advertised by the server; ``input_schema`` is the server's own object."""
    name: str
    description: str
    input_schema: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchConfig:
    """Effective batching parameters for a run."""
    items_per_batch: int
    batch_interval_ms: int

    @property
    def batch_interval_seconds(self) -> float:
        return self.batch_interval_ms / 1000.0


@dataclass
class ItemResult:
    """Output for one input item."""
    payload: Any
    source_item_index: int
    error: Optional[str] = None

    @classmethod
    def failure(cls, source_item_index: int, message: str) -> "ItemResult":
        return cls(payload={"error": message}, source_item_index=source_item_index, error=message)

    def to_output(self) -> Dict[str, Any]:
        """Render in the host's item format with ``pairedItem`` tagging."""
        return {
            "json": self.payload,
            "pairedItem": {"item": self.source_item_index},
        }
