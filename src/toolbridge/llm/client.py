"""Built-in OpenAI-compatible httpx client.

Provides a sync HTTP client for OpenAI and Azure OpenAI chat completion
APIs, with a plain call returning the full response dict and a streaming
call yielding content fragments as they arrive. Failed calls are never
retried; errors surface immediately to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

import httpx

from toolbridge.llm.config import LLMSettings
from toolbridge.llm.errors import (
    LLMAuthError,
    LLMRateLimitError,
    LLMResponseError,
)
from toolbridge.llm.streaming import iter_fragments

logger = logging.getLogger(__name__)

_AUTH_ERROR_STATUS_CODES = {401, 403}


class OpenAIClient:
    """Sync httpx client for OpenAI-compatible chat completions.

    Implements the LLMClient protocol.

    Usage::

        settings = LLMSettings.from_env()
        with OpenAIClient(settings) as client:
            response = client.chat([{"role": "user", "content": "Hello"}])
            text = OpenAIClient.extract_content(response)

            for fragment in client.stream_chat(messages):
                print(fragment, end="")
    """

    def __init__(
        self,
        settings: LLMSettings,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Endpoint, credential and generation defaults.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self._settings = settings
        if settings.is_azure:
            auth_headers = {"api-key": settings.api_key}
        else:
            auth_headers = {"Authorization": f"Bearer {settings.api_key}"}
        self._client = httpx.Client(
            timeout=settings.timeout,
            transport=transport,
            headers={"Content-Type": "application/json", **auth_headers},
        )

    @property
    def settings(self) -> LLMSettings:
        return self._settings

    @property
    def url(self) -> str:
        """Chat-completions URL for the configured endpoint."""
        base = self._settings.endpoint.rstrip("/")
        if self._settings.is_azure:
            return (
                f"{base}/openai/deployments/{self._settings.model}"
                f"/chat/completions?api-version={self._settings.api_version}"
            )
        return f"{base}/chat/completions"

    def chat(
        self,
        messages: list[dict[str, Any]],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> dict:
        """Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            model: Model to use. Falls back to the configured model.
            temperature: Sampling temperature. Falls back to settings.
            max_tokens: Maximum tokens to generate. Falls back to settings.
            **kwargs: Additional payload parameters (e.g. ``tools``).

        Returns:
            Full response dict with 'choices', 'usage', 'model', etc.

        Raises:
            LLMAuthError: On 401/403.
            LLMRateLimitError: On 429.
            LLMResponseError: On an unparseable body or missing 'choices'.
            httpx.HTTPStatusError: On other non-success statuses.
        """
        payload = self._build_payload(
            messages, model=model, temperature=temperature,
            max_tokens=max_tokens, stream=False, **kwargs,
        )
        logger.debug("POST %s (%d messages)", self.url, len(messages))
        response = self._client.post(self.url, json=payload)
        self._check_status(response)

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMResponseError(
                f"Failed to parse response body: {exc}"
            ) from exc
        if not isinstance(data, dict) or "choices" not in data:
            raise LLMResponseError(
                f"Unexpected response format: missing 'choices' key. "
                f"Response: {data}"
            )
        return data

    def stream_chat(
        self,
        messages: list[dict[str, Any]],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> Iterator[str]:
        """Send a streaming chat completion request and yield content fragments.

        The request is only sent once iteration starts. Concatenating the
        yielded fragments gives the full reply text.

        Raises:
            Same as :meth:`chat`, raised from the first ``next()``.
        """
        payload = self._build_payload(
            messages, model=model, temperature=temperature,
            max_tokens=max_tokens, stream=True, **kwargs,
        )
        logger.debug("POST %s (stream, %d messages)", self.url, len(messages))
        with self._client.stream("POST", self.url, json=payload) as response:
            if response.status_code >= 400:
                response.read()
            self._check_status(response)
            yield from iter_fragments(response.iter_text())

    def _build_payload(
        self,
        messages: list[dict[str, Any]],
        *,
        model: str | None,
        temperature: float | None,
        max_tokens: int | None,
        stream: bool,
        **kwargs: Any,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "messages": messages,
            "max_tokens": max_tokens if max_tokens is not None else self._settings.max_tokens,
            "temperature": temperature if temperature is not None else self._settings.temperature,
            "stream": stream,
        }
        # Azure selects the deployment through the URL instead
        if not self._settings.is_azure:
            payload["model"] = model or self._settings.model
        payload.update(kwargs)
        return payload

    @staticmethod
    def _check_status(response: httpx.Response) -> None:
        status = response.status_code
        if status in _AUTH_ERROR_STATUS_CODES:
            raise LLMAuthError(f"Authentication failed: HTTP {status} - {response.text}")
        if status == 429:
            raise LLMRateLimitError(
                f"Rate limited: HTTP 429 - {response.text}",
                retry_after=_retry_after(response),
            )
        response.raise_for_status()

    def close(self) -> None:
        """Close the underlying httpx client."""
        self._client.close()

    def __enter__(self) -> OpenAIClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @staticmethod
    def extract_content(response: dict) -> str:
        """Extract the assistant's message content from a response dict.

        Raises:
            LLMResponseError: If the response format is unexpected.
        """
        try:
            return response["choices"][0]["message"].get("content") or ""
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise LLMResponseError(
                f"Cannot extract content from response: {exc}. "
                f"Response: {response}"
            ) from exc

    @staticmethod
    def extract_message(response: dict) -> dict:
        """Return the first choice's message dict.

        Raises:
            LLMResponseError: If no choices are present.
        """
        try:
            message = response["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMResponseError(
                f"No response choices available: {exc}. Response: {response}"
            ) from exc
        if not isinstance(message, dict):
            raise LLMResponseError(f"Malformed message in response: {message!r}")
        return message

    @staticmethod
    def extract_usage(response: dict) -> dict | None:
        """Extract usage information from a response dict, if present."""
        return response.get("usage")


def _retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None
