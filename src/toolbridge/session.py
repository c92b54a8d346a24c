"""ChatSession: conversation state for an interactive chat.

Holds the message list and picks the right path for each user turn: the
orchestration loop when tools are registered, otherwise a streaming or a
plain completion call. A failed turn is rolled back so the conversation
looks as if it never happened.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from toolbridge.llm.client import OpenAIClient
from toolbridge.llm.protocols import StreamingLLMClient
from toolbridge.orchestrator.loop import Orchestrator

if TYPE_CHECKING:
    from toolbridge.llm.protocols import LLMClient
    from toolbridge.mcp.host import CapabilityHost
    from toolbridge.orchestrator.config import OrchestratorConfig
    from toolbridge.orchestrator.models import LoopResult

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."


class ChatSession:
    """One conversation with a chat model, optionally backed by tools.

    Usage::

        session = ChatSession(client, host=host)
        reply = session.send("List the files in the project root")
        session.clear()
    """

    def __init__(
        self,
        client: LLMClient,
        host: CapabilityHost | None = None,
        *,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        stream: bool = False,
        config: OrchestratorConfig | None = None,
    ) -> None:
        if stream and not isinstance(client, StreamingLLMClient):
            raise TypeError(f"{type(client).__name__} does not support streaming")
        self._client = client
        self._host = host
        self._system_prompt = system_prompt
        self._stream = stream
        self._orchestrator = Orchestrator(client, host, config)
        self._messages: list[dict[str, Any]] = []
        self.last_result: LoopResult | None = None
        self.clear()

    @property
    def messages(self) -> list[dict[str, Any]]:
        """A copy of the conversation so far."""
        return list(self._messages)

    @property
    def tools_active(self) -> bool:
        return self._host is not None and len(self._host) > 0

    def clear(self) -> None:
        """Reset the conversation to just the system prompt."""
        self._messages = [{"role": "system", "content": self._system_prompt}]
        self.last_result = None

    def send(self, text: str, on_fragment: Callable[[str], None] | None = None) -> str:
        """Add a user turn and return the assistant's reply.

        Args:
            text: The user's message.
            on_fragment: Called with reply text as it becomes available:
                each streamed fragment, or the whole reply at once.

        Returns:
            The full reply text.

        Raises:
            Any error from the completion API or the orchestration loop.
            The conversation is truncated back to its state before this
            call first.
        """
        checkpoint = len(self._messages)
        self._messages.append({"role": "user", "content": text})
        self.last_result = None
        try:
            if self.tools_active:
                result = self._orchestrator.run(self._messages)
                self.last_result = result
                reply = result.content
                if on_fragment is not None and reply:
                    on_fragment(reply)
                return reply

            if self._stream:
                parts: list[str] = []
                for fragment in self._client.stream_chat(list(self._messages)):
                    parts.append(fragment)
                    if on_fragment is not None:
                        on_fragment(fragment)
                reply = "".join(parts)
            else:
                response = self._client.chat(list(self._messages))
                reply = OpenAIClient.extract_content(response)
                if on_fragment is not None and reply:
                    on_fragment(reply)

            self._messages.append({"role": "assistant", "content": reply})
            return reply
        except BaseException:
            logger.debug("Turn failed, discarding %d message(s)", len(self._messages) - checkpoint)
            del self._messages[checkpoint:]
            raise
