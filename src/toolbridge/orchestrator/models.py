"""Orchestrator result models.

Provides ToolCall, StepResult, and LoopResult for the tool-calling loop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from toolbridge.orchestrator.config import LoopState


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model.

    Attributes:
        id: Correlation id echoed back in the tool-result turn.
        name: Capability name.
        arguments: Parsed arguments (``{"_raw": text}`` if they were not JSON).
        legacy: True for a single ``function_call`` reply, which is answered
            with a ``function`` turn instead of a ``tool`` turn.
    """

    id: str
    name: str
    arguments: Any = field(default_factory=dict)
    legacy: bool = False


@dataclass(frozen=True)
class StepResult:
    """Result of a single tool call.

    Frozen: step results are immutable records of what happened.
    """

    step: int
    round: int
    tool_call: ToolCall
    result_output: str = ""
    result_error: str = ""
    success: bool = True


@dataclass(frozen=True)
class LoopResult:
    """Final result of an orchestration run.

    Attributes:
        content: Text of the final assistant reply.
        steps: Every tool call dispatched, in order.
        rounds: Number of tool-dispatch rounds.
        state: Final loop state (DONE on success).
        response: The raw final completion response.
    """

    content: str
    steps: list[StepResult] = field(default_factory=list)
    rounds: int = 0
    state: LoopState = LoopState.DONE
    response: dict | None = None

    @property
    def total_tool_calls(self) -> int:
        return len(self.steps)

    @property
    def failed(self) -> list[StepResult]:
        """Return all steps whose invocation failed."""
        return [s for s in self.steps if not s.success]
