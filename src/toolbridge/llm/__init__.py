"""LLM client infrastructure for toolbridge.

Provides an OpenAI-compatible HTTP client (plain and streaming), its
settings model, the SSE stream decoder and the pluggable client protocols.
"""

from toolbridge.llm.client import OpenAIClient
from toolbridge.llm.config import LLMSettings
from toolbridge.llm.errors import (
    LLMAuthError,
    LLMClientError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
)
from toolbridge.llm.protocols import LLMClient, StreamingLLMClient
from toolbridge.llm.streaming import StreamDecoder, collect_text, iter_fragments

__all__ = [
    "OpenAIClient",
    "LLMSettings",
    "LLMClient",
    "StreamingLLMClient",
    "StreamDecoder",
    "iter_fragments",
    "collect_text",
    "LLMClientError",
    "LLMConfigError",
    "LLMRateLimitError",
    "LLMAuthError",
    "LLMResponseError",
]
