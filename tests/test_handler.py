"""Tests for line dispatch, help and completion against the bundled sample libraries."""

from __future__ import annotations

from pathlib import Path

import pytest

from quiver.commands import REGISTRY
from quiver.errors import UnknownCommand
from quiver.interface import execute_command, format_command_help, handle_line, list_categories, suggest
from quiver.libraries import Manager

PLUGINS = Path(__file__).resolve().parent.parent / "plugins"


@pytest.fixture
def samples() -> Manager:
    manager = Manager(REGISTRY, local_root=PLUGINS, file_root=PLUGINS)
    manager.discover()
    manager.load_all()
    assert manager.failed_libraries() == []
    return manager


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("line, expected", [
    ("echo hello world", "hello world"),
    ("echo hello + upper", "HELLO"),
    ("up hi", "HI"),
    ('echo "a + b"', "a + b"),
    ("echo a b c + count", 3),
    ("echo abc + count --chars", 3),
    ("seq 1 5 + take 2", [1, 2]),
    ("seq 1 3 + sorted --reverse", [3, 2, 1]),
    ("words 'b a' + enumerate-items", [{"#": 1, "item": "b"}, {"#": 2, "item": "a"}]),
    ("echo a-b + replace - _", "a_b"),
])
def test_lines_run_through_pipes(samples, line, expected):
    assert handle_line(line) == expected


def test_custom_delimiter(samples):
    assert handle_line("echo hi | upper", delimiter="|") == "HI"
    assert handle_line("echo hi + upper", delimiter="|") == "hi + upper"


def test_blank_line_and_exit(samples):
    assert handle_line("   ") is None
    with pytest.raises(SystemExit):
        handle_line("quit")


def test_execute_command_unknown(samples):
    with pytest.raises(UnknownCommand):
        execute_command("nope", [])


# ---------------------------------------------------------------------------
# Error strings
# ---------------------------------------------------------------------------


def test_unknown_command_suggests_similar_names(samples):
    message = handle_line("uper x")
    assert message.startswith("[error] Unknown command: uper.")
    assert "upper" in message


def test_missing_argument_shows_usage(samples):
    message = handle_line("upper")
    assert message.startswith("[error] Missing required argument: text")
    assert message.endswith("Usage: upper <text>")


def test_failing_stage_is_named(samples):
    message = handle_line("echo x + seq")
    assert message.startswith("[error] Stage 2 (seq): ValueError")


def test_pipe_syntax_error(samples):
    assert handle_line("echo a +") == "[error] Syntax: '+' missing right-hand command."


def test_unbalanced_quotes(samples):
    assert handle_line('echo "abc').startswith("[error]")


def test_command_errors_are_reported(samples):
    assert handle_line("seq 1 5 0") == "[error] ValueError: step must not be zero"


# ---------------------------------------------------------------------------
# Help
# ---------------------------------------------------------------------------


def test_category_overview(samples):
    text = list_categories()
    assert "listing" in text
    assert "Transform and measure text" in text
    assert handle_line("help") == text


def test_command_help_starts_with_usage(samples):
    text = format_command_help("upper")
    assert text.splitlines()[0] == "upper <text>"
    assert "Aliases:     up" in text
    assert handle_line("help up") == text
    assert handle_line("-h upper") == text


def test_verbose_help_shows_definition_site(samples):
    text = handle_line("-v -h sort-items")
    assert text.splitlines()[0].startswith("sort-items <items> [reverse=False]")
    assert "Defined at:" in text
    assert "entrypoint.py" in text
    assert "--reverse (boolean)" in text


def test_library_help_lists_its_commands(samples):
    text = handle_line("help listing")
    assert "seq <start> <stop> [step=1]" in text
    assert "take" in text


def test_help_for_unknown_name(samples):
    assert handle_line("help nothing") == "No such command or library: nothing"


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------


def test_complete_first_token(samples):
    assert suggest("ec") == ["echo"]
    assert "help" in suggest("")


def test_complete_after_delimiter(samples):
    assert suggest("echo hi + up") == ["up", "upper"]
    assert suggest("echo hi | up", delimiter="|") == ["up", "upper"]


def test_complete_help_targets(samples):
    assert suggest("help lis") == ["listing"]


def test_complete_flags_and_keys(samples):
    assert suggest("echo a + count x --c") == ["--chars"]
    assert suggest("take items n") == ["n="]
