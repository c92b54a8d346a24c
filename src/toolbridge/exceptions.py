"""Toolbridge exception hierarchy.

All toolbridge-specific exceptions inherit from ToolbridgeError.
Provider errors carry the provider name and the protocol operation
that failed so callers can log or display them without extra context.
"""

from __future__ import annotations

from typing import Any


class ToolbridgeError(Exception):
    """Base exception for all toolbridge errors."""


class ConfigError(ToolbridgeError):
    """Raised when a configuration file cannot be read or validated."""


# ---------------------------------------------------------------------------
# Provider (MCP server) errors
# ---------------------------------------------------------------------------


class ProviderError(ToolbridgeError):
    """Base for failures talking to a capability provider process.

    Attributes:
        provider: Name of the provider (server) involved.
        operation: Protocol operation in flight (e.g. "initialize").
    """

    def __init__(self, provider: str, operation: str, message: str) -> None:
        self.provider = provider
        self.operation = operation
        super().__init__(f"[{provider}] {operation} failed: {message}")


class ProviderTransportError(ProviderError):
    """The process or its pipes failed (spawn, write, unexpected close).

    Fatal to the one connection; other providers are unaffected.
    """


class ProviderSpawnError(ProviderTransportError):
    """The provider process could not be started."""

    def __init__(self, provider: str, command: str, cause: BaseException) -> None:
        self.command = command
        super().__init__(provider, "spawn", f"cannot start {command!r}: {cause}")


class ProviderClosedError(ProviderTransportError):
    """The provider closed its output before answering."""

    def __init__(self, provider: str, operation: str) -> None:
        super().__init__(provider, operation, "provider closed its output")


class ProviderProtocolError(ProviderError):
    """The provider answered with something that is not a valid response.

    The connection remains usable for later calls.
    """


class ProviderCallError(ProviderProtocolError):
    """The provider answered with a JSON-RPC error envelope.

    Attributes:
        error: The raw ``error`` member of the response.
    """

    def __init__(self, provider: str, operation: str, error: Any) -> None:
        self.error = error
        if isinstance(error, dict) and "message" in error:
            detail = str(error["message"])
            if "code" in error:
                detail = f"{detail} (code {error['code']})"
        else:
            detail = str(error)
        super().__init__(provider, operation, f"provider error: {detail}")


class CapabilityNotFoundError(ToolbridgeError):
    """Raised when invoking a capability name that is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"capability unknown: {name}")


class ProviderNotFoundError(ToolbridgeError):
    """Raised when a capability's owning provider connection is gone."""

    def __init__(self, provider: str, capability: str | None = None) -> None:
        self.provider = provider
        self.capability = capability
        msg = f"provider connection missing: {provider}"
        if capability is not None:
            msg = f"{msg} (for capability {capability})"
        super().__init__(msg)


# ---------------------------------------------------------------------------
# Orchestration errors
# ---------------------------------------------------------------------------


class OrchestratorError(ToolbridgeError):
    """Raised when the orchestration loop encounters an unrecoverable error."""


class ToolRoundLimitError(OrchestratorError):
    """The model kept requesting tool calls past the configured round limit."""

    def __init__(self, rounds: int) -> None:
        self.rounds = rounds
        super().__init__(
            f"Tool-call round limit reached after {rounds} round(s) "
            f"without a final answer"
        )
