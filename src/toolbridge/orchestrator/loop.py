"""Core orchestration loop interleaving model replies and tool calls.

Provides the Orchestrator class that runs a tool-calling loop: send the
conversation plus the capability manifest to the LLM, dispatch any tool
calls through the CapabilityHost, append the results, and repeat until the
LLM answers without requesting tools.

Tool failures never abort a run. They are handed back to the model as an
error payload in the tool-result turn. Completion API failures propagate
to the caller.
"""

from __future__ import annotations

import copy
import json
import logging
import uuid
from typing import TYPE_CHECKING, Any

from toolbridge.exceptions import ToolbridgeError, ToolRoundLimitError
from toolbridge.llm.client import OpenAIClient
from toolbridge.llm.errors import LLMResponseError
from toolbridge.orchestrator.config import LoopState, OrchestratorConfig
from toolbridge.orchestrator.models import LoopResult, StepResult, ToolCall

if TYPE_CHECKING:
    from toolbridge.llm.protocols import LLMClient
    from toolbridge.mcp.host import CapabilityHost

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs the model/tool loop for one conversation.

    The conversation list passed to :meth:`run` is extended in place: the
    assistant's tool-requesting replies, one result turn per tool call, and
    finally the assistant's plain answer.

    Usage::

        orch = Orchestrator(client, host)
        messages = [{"role": "user", "content": "What's the weather in Paris?"}]
        result = orch.run(messages)
        print(result.content)
    """

    def __init__(
        self,
        client: LLMClient,
        host: CapabilityHost | None = None,
        config: OrchestratorConfig | None = None,
    ) -> None:
        self._client = client
        self._host = host
        self._config = config or OrchestratorConfig()
        self._state = LoopState.IDLE

    @property
    def state(self) -> LoopState:
        """Return the current loop state."""
        return self._state

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    def run(self, messages: list[dict[str, Any]]) -> LoopResult:
        """Drive the conversation until the model stops requesting tools.

        Args:
            messages: Conversation state; appended to in place.

        Returns:
            LoopResult with the final reply text and every dispatched step.

        Raises:
            ToolRoundLimitError: If ``max_rounds`` dispatch rounds pass
                without a final answer.
            LLMClientError: If the completion API call fails or a reply
                carries malformed tool calls.
        """
        tools = self._host.manifest() if self._host is not None else []
        steps: list[StepResult] = []
        rounds = 0
        self._state = LoopState.AWAITING_MODEL

        try:
            while True:
                response = self._call_llm(messages, tools)
                message = OpenAIClient.extract_message(response)
                tool_calls = self._extract_tool_calls(message)

                if not tool_calls:
                    messages.append(self._assistant_turn(message))
                    self._state = LoopState.DONE
                    return LoopResult(
                        content=message.get("content") or "",
                        steps=steps,
                        rounds=rounds,
                        state=self._state,
                        response=response,
                    )

                max_rounds = self._config.max_rounds
                if max_rounds is not None and rounds >= max_rounds:
                    raise ToolRoundLimitError(rounds)
                rounds += 1

                self._state = LoopState.DISPATCHING
                messages.append(self._assistant_turn(message))
                for tc in tool_calls:
                    step = self._dispatch(tc, len(steps) + 1, rounds)
                    steps.append(step)
                    messages.append(self._result_turn(step))

                    if self._config.on_step is not None:
                        try:
                            self._config.on_step(step)
                        except Exception:
                            logger.debug("on_step callback error", exc_info=True)

                self._state = LoopState.AWAITING_MODEL
        finally:
            if self._state != LoopState.DONE:
                self._state = LoopState.FAILED

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    def _call_llm(self, messages: list[dict[str, Any]], tools: list[dict]) -> dict:
        kwargs: dict[str, Any] = {}
        if tools:
            kwargs["tools"] = tools
        if self._config.model:
            kwargs["model"] = self._config.model
        if self._config.temperature is not None:
            kwargs["temperature"] = self._config.temperature
        if self._config.max_tokens is not None:
            kwargs["max_tokens"] = self._config.max_tokens
        if self._config.extra_llm_kwargs:
            kwargs.update(self._config.extra_llm_kwargs)
        return self._client.chat(list(messages), **kwargs)

    @staticmethod
    def _assistant_turn(message: dict) -> dict:
        """Copy the reply for the conversation, keeping tool_calls intact."""
        turn = copy.deepcopy(message)
        turn.setdefault("role", "assistant")
        turn.setdefault("content", None if turn.get("tool_calls") else "")
        return turn

    def _extract_tool_calls(self, message: dict) -> list[ToolCall]:
        """Parse the tool calls an OpenAI-format reply requests.

        Handles ``tool_calls`` and the legacy single ``function_call``.

        Returns:
            List of ToolCall instances. Empty if no tool calls.

        Raises:
            LLMResponseError: If a requested tool call is not an object or
                its ``function`` member is not an object.
        """
        raw_calls = message.get("tool_calls") or []
        result: list[ToolCall] = []
        if isinstance(raw_calls, list):
            for raw in raw_calls:
                func = (raw.get("function") or {}) if isinstance(raw, dict) else None
                if not isinstance(func, dict):
                    raise LLMResponseError(f"Malformed tool call in response: {raw!r}")
                result.append(ToolCall(
                    id=raw.get("id") or f"call_{uuid.uuid4().hex[:8]}",
                    name=func.get("name", ""),
                    arguments=self._parse_arguments(func.get("name", ""), func.get("arguments")),
                ))
        if result:
            return result

        function_call = message.get("function_call")
        if isinstance(function_call, dict) and function_call.get("name"):
            name = function_call["name"]
            return [ToolCall(
                id=f"call_{uuid.uuid4().hex[:8]}",
                name=name,
                arguments=self._parse_arguments(name, function_call.get("arguments")),
                legacy=True,
            )]
        return []

    @staticmethod
    def _parse_arguments(name: str, raw: Any) -> Any:
        if raw is None or raw == "":
            return {}
        if not isinstance(raw, str):
            return raw
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Malformed JSON in tool call arguments for %s", name)
            return {"_raw": raw}

    def _dispatch(self, tc: ToolCall, step_num: int, round_num: int) -> StepResult:
        if self._host is None:
            logger.warning("Model requested %s but no capability host is attached", tc.name)
            return StepResult(
                step=step_num,
                round=round_num,
                tool_call=tc,
                result_error=f"capability unknown: {tc.name}",
                success=False,
            )
        try:
            result = self._host.invoke(tc.name, tc.arguments)
        except ToolbridgeError as exc:
            logger.warning("Tool %s failed: %s", tc.name, exc)
            return StepResult(
                step=step_num,
                round=round_num,
                tool_call=tc,
                result_error=str(exc),
                success=False,
            )
        return StepResult(
            step=step_num,
            round=round_num,
            tool_call=tc,
            result_output=json.dumps(result, ensure_ascii=False),
        )

    @staticmethod
    def _result_turn(step: StepResult) -> dict:
        if step.success:
            content = step.result_output
        else:
            content = json.dumps({"error": step.result_error}, ensure_ascii=False)
        tc = step.tool_call
        if tc.legacy:
            return {"role": "function", "name": tc.name, "content": content}
        return {"role": "tool", "tool_call_id": tc.id, "content": content}
