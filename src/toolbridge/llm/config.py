"""Completion API settings.

LLMSettings holds everything the chat-completion client needs. Values come
from constructor arguments (the CLI passes its flags through) or from the
OPENAI_API_* environment variables.
"""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field

from toolbridge.llm.errors import LLMConfigError

ENV_ENDPOINT = "OPENAI_API_ENDPOINT"
ENV_API_KEY = "OPENAI_API_KEY"
ENV_MODEL = "OPENAI_API_MODEL"
ENV_API_VERSION = "OPENAI_API_VERSION"

DEFAULT_MODEL = "gpt-35-turbo"


class LLMSettings(BaseModel):
    """Settings for an OpenAI-compatible chat-completion endpoint.

    When ``api_version`` is set the endpoint is treated as Azure OpenAI:
    requests go to ``/openai/deployments/{model}/chat/completions`` and the
    key is sent in the ``api-key`` header. Otherwise ``endpoint`` is an
    OpenAI-style base URL and the key is sent as a bearer token.
    """

    endpoint: str
    api_key: str
    model: str = DEFAULT_MODEL
    api_version: Optional[str] = None
    max_tokens: int = Field(default=1000, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    timeout: float = Field(default=120.0, gt=0)

    @property
    def is_azure(self) -> bool:
        return self.api_version is not None

    @classmethod
    def from_env(
        cls,
        *,
        endpoint: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        api_version: str | None = None,
        **overrides: object,
    ) -> LLMSettings:
        """Build settings, falling back to environment variables.

        Explicit arguments win over the environment.

        Raises:
            LLMConfigError: If no endpoint or API key can be found.
        """
        endpoint = endpoint or os.environ.get(ENV_ENDPOINT)
        if not endpoint:
            raise LLMConfigError(
                "Chat endpoint is required. Pass --endpoint or set the "
                f"{ENV_ENDPOINT} environment variable."
            )
        api_key = api_key or os.environ.get(ENV_API_KEY)
        if not api_key:
            raise LLMConfigError(
                "API key is required. Pass --api-key or set the "
                f"{ENV_API_KEY} environment variable."
            )
        return cls(
            endpoint=endpoint,
            api_key=api_key,
            model=model or os.environ.get(ENV_MODEL) or DEFAULT_MODEL,
            api_version=api_version or os.environ.get(ENV_API_VERSION) or None,
            **overrides,
        )
