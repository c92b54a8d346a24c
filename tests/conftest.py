"""Shared test fixtures for toolbridge.

Provides server specs that launch tests/fake_provider.py as a real MCP
stdio child process, and a scripted LLM client that replays canned
responses.
"""

from __future__ import annotations

import copy
import json
import sys
from pathlib import Path

import pytest

from toolbridge.mcp.config import McpServerConfig

FAKE_PROVIDER = Path(__file__).parent / "fake_provider.py"


def make_spec(
    name: str = "fake",
    *,
    tools: str | None = None,
    mode: str = "normal",
    log: Path | None = None,
    **kwargs,
) -> McpServerConfig:
    """Server spec running the fake provider with the given flags."""
    args = [str(FAKE_PROVIDER), "--name", name, "--mode", mode]
    if tools is not None:
        args += ["--tools", tools]
    if log is not None:
        args += ["--log", str(log)]
    return McpServerConfig(name=name, command=sys.executable, args=args, **kwargs)


# ------------------------------------------------------------------
# Completion responses
# ------------------------------------------------------------------


def text_response(text: str = "Done.") -> dict:
    """LLM response with no tool calls."""
    return {
        "choices": [{"message": {"role": "assistant", "content": text}}]
    }


def tool_call_response(
    calls: list[tuple[str, dict | str, str]],
    text: str | None = None,
) -> dict:
    """LLM response requesting tool calls.

    Args:
        calls: List of (tool_name, arguments, call_id) tuples. String
            arguments are sent verbatim, dicts are JSON-encoded.
        text: Optional text content.
    """
    tool_calls = [
        {
            "id": cid,
            "type": "function",
            "function": {
                "name": name,
                "arguments": args if isinstance(args, str) else json.dumps(args),
            },
        }
        for name, args, cid in calls
    ]
    return {
        "choices": [
            {
                "message": {
                    "role": "assistant",
                    "content": text,
                    "tool_calls": tool_calls,
                }
            }
        ]
    }


class ScriptedLLM:
    """A mock LLM client that records calls and returns canned responses.

    Responses are returned in order; the last one repeats. An exception
    instance in the list is raised instead of returned.
    """

    def __init__(self, responses: list):
        self.responses = responses
        self.calls: list[dict] = []

    def chat(self, messages, **kwargs) -> dict:
        self.calls.append({"messages": copy.deepcopy(messages), **kwargs})
        idx = min(len(self.calls) - 1, len(self.responses) - 1)
        response = self.responses[idx]
        if isinstance(response, BaseException):
            raise response
        return response

    def stream_chat(self, messages, **kwargs):
        self.calls.append({"messages": copy.deepcopy(messages), "stream": True, **kwargs})
        for item in self.responses:
            if isinstance(item, BaseException):
                raise item
            yield item

    def close(self) -> None:
        pass


@pytest.fixture
def fake_spec():
    """Factory for fake provider server specs."""
    return make_spec
