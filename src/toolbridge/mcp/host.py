"""CapabilityHost: many provider processes behind one capability registry.

Startup is best-effort: a server that fails to spawn, handshake or list its
tools is logged and left out, and the remaining servers still come up. The
registry is built once, after discovery, and is read-only afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from toolbridge.exceptions import (
    CapabilityNotFoundError,
    ProviderNotFoundError,
    ProviderTransportError,
    ToolbridgeError,
)
from toolbridge.mcp.client import McpClient
from toolbridge.mcp.config import McpConfig, McpServerConfig
from toolbridge.mcp.models import CapabilityDescriptor, RegistryEntry

logger = logging.getLogger(__name__)


class CapabilityHost:
    """Owns provider connections and the merged capability registry.

    Capability names are treated as global: when two providers expose the
    same name, the provider started later wins.

    Usage::

        with CapabilityHost.start(McpConfig.load_from_path("mcp.yaml")) as host:
            tools = host.manifest()
            result = host.invoke("read_file", {"path": "README.md"})
    """

    def __init__(
        self,
        clients: Mapping[str, McpClient] | None = None,
        registry: Mapping[str, RegistryEntry] | None = None,
    ) -> None:
        self._clients: dict[str, McpClient] = dict(clients or {})
        self._registry: Mapping[str, RegistryEntry] = MappingProxyType(dict(registry or {}))

    # ------------------------------------------------------------------
    # Startup / teardown
    # ------------------------------------------------------------------

    @classmethod
    def start(cls, servers: McpConfig | Iterable[McpServerConfig]) -> CapabilityHost:
        """Spawn, handshake and discover every configured server.

        Never raises for provider failures; the returned host may have any
        subset of the servers, including none.
        """
        specs = servers.servers if isinstance(servers, McpConfig) else list(servers)

        spawned: dict[str, McpClient] = {}
        for spec in specs:
            if spec.name in spawned:
                logger.warning("Skipping provider %s: duplicate server name", spec.name)
                continue
            try:
                spawned[spec.name] = McpClient.spawn(spec)
            except ToolbridgeError as exc:
                logger.warning("Skipping provider %s: %s", spec.name, exc)
        if specs and not spawned:
            logger.error("None of the %d configured providers could be started", len(specs))

        clients: dict[str, McpClient] = {}
        for name, client in spawned.items():
            try:
                client.initialize()
            except ToolbridgeError as exc:
                logger.warning("Initialize failed for %s: %s", name, exc)
                _close_quietly(client)
                continue
            clients[name] = client

        registry: dict[str, RegistryEntry] = {}
        for name, client in list(clients.items()):
            try:
                descriptors = client.list_capabilities()
            except ToolbridgeError as exc:
                logger.warning("tools/list failed for %s: %s", name, exc)
                _close_quietly(client)
                del clients[name]
                continue
            for descriptor in descriptors:
                previous = registry.get(descriptor.name)
                if previous is not None and previous.provider != name:
                    logger.warning(
                        "Capability %s from %s replaces the one from %s",
                        descriptor.name, name, previous.provider,
                    )
                registry[descriptor.name] = RegistryEntry(provider=name, descriptor=descriptor)
            logger.info("Provider %s ready with %d capabilities", name, len(descriptors))

        return cls(clients, registry)

    def teardown(self) -> None:
        """Close every provider connection.

        Individual failures are logged and swallowed.
        """
        for name, client in list(self._clients.items()):
            try:
                client.close()
            except Exception:
                logger.warning("Error while closing provider %s", name, exc_info=True)
        self._clients.clear()

    def remove_provider(self, name: str) -> None:
        """Close one provider connection and forget it.

        Its capabilities stay registered; invoking them afterwards fails
        with ProviderNotFoundError.
        """
        client = self._clients.pop(name, None)
        if client is None:
            raise ProviderNotFoundError(name)
        _close_quietly(client)

    def __enter__(self) -> CapabilityHost:
        return self

    def __exit__(self, *args: object) -> None:
        self.teardown()

    # ------------------------------------------------------------------
    # Registry access
    # ------------------------------------------------------------------

    @property
    def capabilities(self) -> Mapping[str, RegistryEntry]:
        """Read-only mapping of capability name to owning provider and descriptor."""
        return self._registry

    @property
    def providers(self) -> list[str]:
        """Names of the active provider connections."""
        return list(self._clients)

    def descriptor(self, name: str) -> CapabilityDescriptor:
        entry = self._registry.get(name)
        if entry is None:
            raise CapabilityNotFoundError(name)
        return entry.descriptor

    def manifest(self) -> list[dict]:
        """All registered capabilities in OpenAI ``tools`` format."""
        return [entry.descriptor.to_openai() for entry in self._registry.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._registry

    def __len__(self) -> int:
        return len(self._registry)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def invoke(self, name: str, arguments: Any) -> Any:
        """Route a capability call to its owning provider.

        Raises:
            CapabilityNotFoundError: If ``name`` is not registered.
            ProviderNotFoundError: If the owning connection was removed.
            ProviderError: Whatever the provider call raises. After a
                ProviderTransportError the connection is closed and dropped.
        """
        entry = self._registry.get(name)
        if entry is None:
            raise CapabilityNotFoundError(name)
        client = self._clients.get(entry.provider)
        if client is None:
            raise ProviderNotFoundError(entry.provider, name)
        logger.debug("Invoking %s on %s", name, entry.provider)
        try:
            return client.invoke(name, arguments)
        except ProviderTransportError:
            logger.warning("Dropping provider %s after a transport failure", entry.provider)
            if self._clients.get(entry.provider) is client:
                del self._clients[entry.provider]
            _close_quietly(client)
            raise


def _close_quietly(client: McpClient) -> None:
    try:
        client.close()
    except Exception:
        logger.warning("Error while closing provider %s", client.name, exc_info=True)
