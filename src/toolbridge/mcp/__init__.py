"""Capability providers over the MCP stdio transport.

Provides the per-process JSON-RPC client, the multi-provider host with its
merged capability registry, and the server configuration models.
"""

from toolbridge.mcp.client import McpClient
from toolbridge.mcp.config import EnvVar, McpConfig, McpServerConfig
from toolbridge.mcp.host import CapabilityHost
from toolbridge.mcp.models import CapabilityDescriptor, RegistryEntry

__all__ = [
    "McpClient",
    "CapabilityHost",
    "CapabilityDescriptor",
    "RegistryEntry",
    "McpConfig",
    "McpServerConfig",
    "EnvVar",
]
