"""Tests for the orchestration loop.

Tests cover the full loop lifecycle: plain replies, tool dispatch through a
real CapabilityHost, tool failures turned into model-visible errors,
argument parsing fallbacks, legacy function calls, the round limit, and
completion API errors.

All tests use scripted LLM clients -- no real API calls.
"""

from __future__ import annotations

import json

import pytest

from toolbridge.exceptions import ToolRoundLimitError
from toolbridge.llm.errors import LLMAuthError, LLMResponseError
from toolbridge.mcp.host import CapabilityHost
from toolbridge.orchestrator import (
    LoopResult,
    LoopState,
    Orchestrator,
    OrchestratorConfig,
    StepResult,
)

from tests.conftest import ScriptedLLM, make_spec, text_response, tool_call_response


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def host():
    h = CapabilityHost.start([make_spec("calc", tools="add,fail,echo")])
    yield h
    h.teardown()


def user(text: str) -> list[dict]:
    return [{"role": "user", "content": text}]


# ===========================================================================
# Plain replies
# ===========================================================================


class TestPlainReply:

    def test_no_tool_calls_finishes_immediately(self, host):
        llm = ScriptedLLM([text_response("Hi there")])
        messages = user("Hello")
        result = Orchestrator(llm, host).run(messages)

        assert isinstance(result, LoopResult)
        assert result.content == "Hi there"
        assert result.state == LoopState.DONE
        assert result.rounds == 0
        assert result.steps == []
        assert messages[-1] == {"role": "assistant", "content": "Hi there"}
        assert len(llm.calls) == 1

    def test_manifest_attached_to_every_request(self, host):
        llm = ScriptedLLM([
            tool_call_response([("add", {"a": 1, "b": 2}, "c1")]),
            text_response("3"),
        ])
        Orchestrator(llm, host).run(user("1+2?"))

        assert len(llm.calls) == 2
        for call in llm.calls:
            names = [t["function"]["name"] for t in call["tools"]]
            assert names == ["add", "fail", "echo"]

    def test_no_tools_key_without_capabilities(self):
        empty = CapabilityHost.start([])
        llm = ScriptedLLM([text_response("ok")])
        Orchestrator(llm, empty).run(user("hi"))
        assert "tools" not in llm.calls[0]

    def test_config_forwarded_to_client(self, host):
        llm = ScriptedLLM([text_response("ok")])
        config = OrchestratorConfig(model="m", temperature=0.1, max_tokens=50, extra_llm_kwargs={"top_p": 0.5})
        Orchestrator(llm, host, config).run(user("hi"))
        call = llm.calls[0]
        assert (call["model"], call["temperature"], call["max_tokens"], call["top_p"]) == ("m", 0.1, 50, 0.5)


# ===========================================================================
# Tool dispatch
# ===========================================================================


class TestToolDispatch:

    def test_tool_result_appended_and_sent_back(self, host):
        llm = ScriptedLLM([
            tool_call_response([("add", {"a": 2, "b": 3}, "call_add")]),
            text_response("The sum is 5."),
        ])
        messages = user("What is 2+3?")
        orch = Orchestrator(llm, host)
        result = orch.run(messages)

        assert result.content == "The sum is 5."
        assert result.rounds == 1
        assert orch.state == LoopState.DONE
        assert [m["role"] for m in messages] == ["user", "assistant", "tool", "assistant"]
        assert messages[1]["tool_calls"][0]["id"] == "call_add"
        assert messages[2] == {
            "role": "tool",
            "tool_call_id": "call_add",
            "content": json.dumps({"sum": 5}),
        }
        # second request carries the tool result
        assert llm.calls[1]["messages"][2]["tool_call_id"] == "call_add"

    def test_multiple_calls_dispatched_in_order(self, host):
        steps: list[StepResult] = []
        llm = ScriptedLLM([
            tool_call_response([
                ("add", {"a": 1, "b": 1}, "c1"),
                ("echo", {"x": "y"}, "c2"),
                ("add", {"a": 2, "b": 2}, "c3"),
            ]),
            text_response("done"),
        ])
        messages = user("go")
        result = Orchestrator(llm, host, OrchestratorConfig(on_step=steps.append)).run(messages)

        assert [m.get("tool_call_id") for m in messages[2:5]] == ["c1", "c2", "c3"]
        assert [s.step for s in result.steps] == [1, 2, 3]
        assert [s.tool_call.name for s in steps] == ["add", "echo", "add"]
        assert all(s.round == 1 for s in steps)

    def test_unknown_capability_becomes_error_payload(self, host):
        llm = ScriptedLLM([
            tool_call_response([("get_weather", {"city": "Paris"}, "call_w")]),
            text_response("I could not get the weather."),
        ])
        messages = user("Weather in Paris?")
        result = Orchestrator(llm, host).run(messages)

        tool_turn = messages[2]
        assert tool_turn["role"] == "tool"
        assert tool_turn["tool_call_id"] == "call_w"
        assert json.loads(tool_turn["content"]) == {"error": "capability unknown: get_weather"}
        assert len(llm.calls) == 2
        assert llm.calls[1]["messages"][2] == tool_turn
        assert result.state == LoopState.DONE
        assert len(result.failed) == 1

    def test_provider_error_does_not_abort(self, host):
        llm = ScriptedLLM([
            tool_call_response([("fail", {}, "c1"), ("add", {"a": 1, "b": 2}, "c2")]),
            text_response("partial"),
        ])
        messages = user("go")
        result = Orchestrator(llm, host).run(messages)

        assert "tool exploded" in json.loads(messages[2]["content"])["error"]
        assert json.loads(messages[3]["content"]) == {"sum": 3}
        assert [s.success for s in result.steps] == [False, True]

    def test_malformed_arguments_passed_through_raw(self, host):
        llm = ScriptedLLM([
            tool_call_response([("echo", "{not json", "c1")]),
            text_response("ok"),
        ])
        result = Orchestrator(llm, host).run(user("go"))
        assert result.steps[0].tool_call.arguments == {"_raw": "{not json"}
        assert result.steps[0].success

    def test_empty_arguments_become_empty_object(self, host):
        llm = ScriptedLLM([
            tool_call_response([("echo", "", "c1")]),
            text_response("ok"),
        ])
        result = Orchestrator(llm, host).run(user("go"))
        assert result.steps[0].tool_call.arguments == {}

    def test_no_host_attached(self):
        llm = ScriptedLLM([
            tool_call_response([("add", {}, "c1")]),
            text_response("sorry"),
        ])
        messages = user("go")
        Orchestrator(llm).run(messages)
        assert json.loads(messages[2]["content"]) == {"error": "capability unknown: add"}

    def test_legacy_function_call(self, host):
        llm = ScriptedLLM([
            {"choices": [{"message": {
                "role": "assistant",
                "content": None,
                "function_call": {"name": "add", "arguments": '{"a": 5, "b": 5}'},
            }}]},
            text_response("10"),
        ])
        messages = user("5+5")
        Orchestrator(llm, host).run(messages)
        assert messages[2] == {"role": "function", "name": "add", "content": json.dumps({"sum": 10})}

    def test_on_step_errors_are_ignored(self, host):
        def explode(step):
            raise RuntimeError("callback bug")

        llm = ScriptedLLM([tool_call_response([("add", {"a": 1, "b": 1}, "c1")]), text_response("2")])
        result = Orchestrator(llm, host, OrchestratorConfig(on_step=explode)).run(user("go"))
        assert result.content == "2"


# ===========================================================================
# Termination and errors
# ===========================================================================


class TestLimitsAndErrors:

    def test_round_limit(self, host):
        llm = ScriptedLLM([tool_call_response([("add", {"a": 1, "b": 1}, "c")])])
        orch = Orchestrator(llm, host, OrchestratorConfig(max_rounds=3))
        with pytest.raises(ToolRoundLimitError) as exc_info:
            orch.run(user("loop forever"))
        assert exc_info.value.rounds == 3
        assert len(llm.calls) == 4
        assert orch.state == LoopState.FAILED

    def test_unbounded_when_limit_disabled(self, host):
        responses = [tool_call_response([("add", {"a": i, "b": 0}, f"c{i}")]) for i in range(12)]
        llm = ScriptedLLM(responses + [text_response("finally")])
        result = Orchestrator(llm, host, OrchestratorConfig(max_rounds=None)).run(user("go"))
        assert result.rounds == 12
        assert result.content == "finally"

    def test_completion_error_propagates(self, host):
        llm = ScriptedLLM([LLMAuthError("bad key")])
        orch = Orchestrator(llm, host)
        with pytest.raises(LLMAuthError):
            orch.run(user("hi"))
        assert orch.state == LoopState.FAILED

    @pytest.mark.parametrize("tool_calls", [
        [{"id": "c1", "function": "get_weather"}],
        ["get_weather"],
    ])
    def test_malformed_tool_call_fails_the_run(self, host, tool_calls):
        llm = ScriptedLLM([{"choices": [{"message": {
            "role": "assistant", "content": None, "tool_calls": tool_calls,
        }}]}])
        orch = Orchestrator(llm, host)
        messages = user("hi")
        with pytest.raises(LLMResponseError, match="Malformed tool call"):
            orch.run(messages)
        assert orch.state == LoopState.FAILED
        assert messages == user("hi")

    def test_reply_without_choices(self, host):
        llm = ScriptedLLM([{"choices": []}])
        with pytest.raises(LLMResponseError):
            Orchestrator(llm, host).run(user("hi"))
