"""Errors raised by the chat-completion client.

Everything here is a ToolbridgeError, so the chat loop can report a failed
completion the same way it reports a failed tool provider.
"""

from __future__ import annotations

from toolbridge.exceptions import ToolbridgeError


class LLMClientError(ToolbridgeError):
    """A chat-completion request could not be made or understood."""


class LLMConfigError(LLMClientError):
    """Endpoint, key or another client setting is missing or invalid."""


class LLMRateLimitError(LLMClientError):
    """The endpoint answered 429.

    Never retried here. ``retry_after`` carries the server's Retry-After
    hint in seconds, or None when the header is absent or unparseable.
    """

    def __init__(self, message: str = "Rate limited", retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        if retry_after is not None:
            message += f" (retry after {retry_after}s)"
        super().__init__(message)


class LLMAuthError(LLMClientError):
    """The endpoint rejected the credentials (HTTP 401 or 403)."""


class LLMResponseError(LLMClientError):
    """The completion body is not JSON or lacks the expected members."""
