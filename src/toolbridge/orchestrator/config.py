"""Orchestrator configuration types.

Provides LoopState and OrchestratorConfig for the tool-calling loop.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from toolbridge.orchestrator.models import StepResult


class LoopState(str, enum.Enum):
    """States the orchestration loop moves through during a run."""

    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    DISPATCHING = "dispatching"
    DONE = "done"
    FAILED = "failed"


@dataclass
class OrchestratorConfig:
    """Configuration for the tool-calling loop.

    Mutable dataclass -- users may adjust settings between runs.

    Attributes:
        max_rounds: Maximum number of tool-dispatch rounds per run. A round
            is one model reply requesting tool calls plus their dispatch.
            None removes the limit.
        model: LLM model identifier (None = use the client's default).
        temperature: LLM temperature (None = use the client's default).
        max_tokens: Maximum tokens per reply (None = use the client's default).
        extra_llm_kwargs: Additional kwargs forwarded to client.chat().
        on_step: Callback invoked after each tool call is dispatched.
    """

    max_rounds: int | None = 8
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    extra_llm_kwargs: dict | None = None
    on_step: Callable[[StepResult], None] | None = None
