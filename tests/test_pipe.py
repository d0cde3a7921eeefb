"""Tests for pipe splitting and chain execution (quiver.interface.pipe)."""

from __future__ import annotations

import pytest

from quiver.commands import CommandResult
from quiver.errors import ChainStageFailure, PipeSyntaxError
from quiver.interface.pipe import PipeChain, parse_stage, split_tokens, translate_args


# ---------------------------------------------------------------------------
# split_tokens / parse_stage
# ---------------------------------------------------------------------------


def test_split_tokens_on_standalone_delimiter():
    assert split_tokens(["upper", "a", "+", "count"]) == [["upper", "a"], ["count"]]


def test_split_tokens_keeps_embedded_delimiter():
    assert split_tokens(["echo", "a+b"]) == [["echo", "a+b"]]


def test_split_tokens_custom_delimiter():
    assert split_tokens(["a", "|", "b", "+"], delimiter="|") == [["a"], ["b", "+"]]


@pytest.mark.parametrize("tokens", [["+", "count"], ["upper", "+"], ["a", "+", "+", "b"]])
def test_split_tokens_rejects_empty_side(tokens):
    with pytest.raises(PipeSyntaxError):
        split_tokens(tokens)


def test_parse_stage_strips_leading_global_options():
    stage = parse_stage(["-v", "--index", "upper", "a", "-h"])
    assert stage.name == "upper"
    assert stage.args == ["a", "-h"]
    assert stage.options == {"verbose": True, "index": True}


def test_parse_stage_only_options():
    stage = parse_stage(["-h"])
    assert stage.name == ""
    assert stage.options == {"help": True}


def test_translate_args_skips_none():
    assert translate_args(["x"], None) == ["x"]
    assert translate_args(["x"], 0) == [0, "x"]


# ---------------------------------------------------------------------------
# PipeChain
# ---------------------------------------------------------------------------


def _recording_executor(results):
    calls = []

    def _executor(name, args):
        calls.append((name, list(args)))
        value = results[name]
        if isinstance(value, Exception):
            raise value
        return value(*args) if callable(value) else value

    return calls, _executor


def test_chain_forwards_previous_result_as_first_argument():
    chain = PipeChain.parse(["upper", "hi", "+", "wrap", "!"])
    calls, executor = _recording_executor({
        "upper": lambda text: text.upper(),
        "wrap": lambda text, mark: f"{mark}{text}{mark}",
    })
    assert chain.execute(executor) == "!HI!"
    assert calls == [("upper", ["hi"]), ("wrap", ["HI", "!"])]


def test_chain_does_not_prepend_none():
    chain = PipeChain.parse(["noop", "+", "count", "x"])
    calls, executor = _recording_executor({"noop": None, "count": lambda *a: len(a)})
    assert chain.execute(executor) == 1
    assert calls[1] == ("count", ["x"])


def test_chain_forwards_falsy_results():
    chain = PipeChain.parse(["zero", "+", "show"])
    calls, executor = _recording_executor({"zero": 0, "show": lambda v: v})
    assert chain.execute(executor) == 0
    assert calls[1] == ("show", [0])


def test_stage_failure_stops_chain_and_names_stage():
    chain = PipeChain.parse(["a", "+", "b", "+", "c"])
    calls, executor = _recording_executor({"a": 1, "b": ValueError("boom"), "c": 3})
    with pytest.raises(ChainStageFailure) as info:
        chain.execute(executor)
    assert info.value.index == 1
    assert info.value.command == "b"
    assert isinstance(info.value.cause, ValueError)
    assert "Stage 2 (b) failed" in str(info.value)
    assert [name for name, _ in calls] == ["a", "b"]


def test_failed_command_result_stops_chain():
    chain = PipeChain.parse(["a", "+", "b"])
    _, executor = _recording_executor({"a": CommandResult(ok=False, message="nope"), "b": 1})
    with pytest.raises(ChainStageFailure) as info:
        chain.execute(executor)
    assert info.value.index == 0
    assert info.value.cause == "nope"


def test_single_stage_errors_are_not_wrapped():
    chain = PipeChain.parse(["a"])
    _, executor = _recording_executor({"a": KeyError("k")})
    with pytest.raises(KeyError):
        chain.execute(executor)


def test_global_options_and_commands():
    chain = PipeChain.parse(["--verbose", "upper", "x", "+", "count"])
    assert chain.global_options == {"verbose": True}
    assert chain.commands() == ["upper", "count"]
    assert chain.piped is True


def test_commands_are_memoized():
    chain = PipeChain.parse(["a", "+", "b"])
    first = chain.commands()
    chain.stages[0].name = "changed"
    assert chain.commands() == first


def test_options_only_first_stage_is_a_syntax_error_when_piped():
    with pytest.raises(PipeSyntaxError):
        PipeChain.parse(["-v", "+", "count"])


def test_stage_input_tracks_forwarded_value():
    chain = PipeChain.parse(["a", "+", "b"])
    seen = []

    def _executor(name, args):
        seen.append(chain.stage_input)
        return "out"

    chain.execute(_executor)
    assert seen == [None, "out"]
