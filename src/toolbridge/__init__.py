"""toolbridge: let a chat model call tools served by MCP stdio providers.

Starts provider processes, merges their tools into one registry, and runs
the model/tool-call loop against an OpenAI-compatible completion API.
"""

from toolbridge._version import __version__

# Providers
from toolbridge.mcp import (
    CapabilityDescriptor,
    CapabilityHost,
    EnvVar,
    McpClient,
    McpConfig,
    McpServerConfig,
    RegistryEntry,
)

# Completion API
from toolbridge.llm import (
    LLMClient,
    LLMSettings,
    OpenAIClient,
    StreamDecoder,
    StreamingLLMClient,
    collect_text,
    iter_fragments,
)

# Orchestration
from toolbridge.orchestrator import (
    LoopResult,
    LoopState,
    Orchestrator,
    OrchestratorConfig,
    StepResult,
    ToolCall,
)
from toolbridge.session import ChatSession

# Exceptions
from toolbridge.exceptions import (
    CapabilityNotFoundError,
    ConfigError,
    OrchestratorError,
    ProviderCallError,
    ProviderClosedError,
    ProviderError,
    ProviderNotFoundError,
    ProviderProtocolError,
    ProviderSpawnError,
    ProviderTransportError,
    ToolbridgeError,
    ToolRoundLimitError,
)

__all__ = [
    "__version__",
    # Providers
    "McpClient",
    "CapabilityHost",
    "CapabilityDescriptor",
    "RegistryEntry",
    "McpConfig",
    "McpServerConfig",
    "EnvVar",
    # Completion API
    "OpenAIClient",
    "LLMSettings",
    "LLMClient",
    "StreamingLLMClient",
    "StreamDecoder",
    "iter_fragments",
    "collect_text",
    # Orchestration
    "Orchestrator",
    "OrchestratorConfig",
    "LoopState",
    "LoopResult",
    "StepResult",
    "ToolCall",
    "ChatSession",
    # Exceptions
    "ToolbridgeError",
    "ConfigError",
    "ProviderError",
    "ProviderTransportError",
    "ProviderSpawnError",
    "ProviderClosedError",
    "ProviderProtocolError",
    "ProviderCallError",
    "CapabilityNotFoundError",
    "ProviderNotFoundError",
    "OrchestratorError",
    "ToolRoundLimitError",
]
