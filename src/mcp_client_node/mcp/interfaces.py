"""
Host collaborator interfaces.

The hosting workflow engine supplies node parameters, credentials and the
failure-tolerance setting. The static implementations below back the HTTP
API and the tests.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence, Union, runtime_checkable

from .exceptions import MCPConfigurationError


@runtime_checkable
class ParameterSource(Protocol):
    def get(self, name: str, item_index: int, default: Any = None) -> Any:
        ...


@runtime_checkable
class CredentialSource(Protocol):
    def get(self, kind: str) -> Mapping[str, Any]:
        ...


@runtime_checkable
class FailureToleranceFlag(Protocol):
    def enabled(self) -> bool:
        ...


@dataclass
class StaticParameterSource:
    """Node parameters with optional per-item overrides."""
    parameters: Mapping[str, Any] = field(default_factory=dict)
    item_overrides: Sequence[Mapping[str, Any]] = ()

    def get(self, name: str, item_index: int, default: Any = None) -> Any:
        if 0 <= item_index < len(self.item_overrides):
            overrides = self.item_overrides[item_index]
            if name in overrides:
                return overrides[name]
        return self.parameters.get(name, default)


@dataclass
class StaticCredentialSource:
    """Credentials keyed by connection kind (``stdio``, ``sse``, ``http``)."""
    credentials: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    def get(self, kind: str) -> Mapping[str, Any]:
        try:
            return self.credentials[kind]
        except KeyError:
            raise MCPConfigurationError(
                f"No credentials configured for '{kind}' connections",
                field="credentials",
                details={"kind": kind}
            ) from None


def resolve_failure_tolerance(flag: Union[bool, FailureToleranceFlag, None]) -> bool:
    """Accept either a plain bool or a FailureToleranceFlag."""
    if flag is None:
        return False
    if isinstance(flag, bool):
        return flag
    return bool(flag.enabled())
