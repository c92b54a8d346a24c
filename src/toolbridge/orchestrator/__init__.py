"""Orchestrator package -- the model/tool-call loop.

Provides the Orchestrator class, its configuration, and the step/result
types it returns.
"""

from toolbridge.orchestrator.config import LoopState, OrchestratorConfig
from toolbridge.orchestrator.loop import Orchestrator
from toolbridge.orchestrator.models import LoopResult, StepResult, ToolCall

__all__ = [
    # Core
    "Orchestrator",
    # Config
    "LoopState",
    "OrchestratorConfig",
    # Models
    "ToolCall",
    "StepResult",
    "LoopResult",
]
