#!/usr/bin/env python3
# quiver/interface/handler.py
from __future__ import annotations

"""
Command dispatch and help formatting, with pipe chaining.

    upper hello + count
    -h upper
    help text

The handler turns a line into tokens, builds a PipeChain and runs it through
execute_command(). Errors come back as '[error] ...' strings so the REPL can
keep going; SystemExit passes through.
"""

import difflib
from typing import Any, Optional

from quiver.commands import REGISTRY, Command
from quiver.errors import ChainStageFailure, PipeSyntaxError, UnknownCommand
from quiver.introspect import arguments_for
from quiver.ui import clear_screen, format_table

from .completion import BUILT_IN_COMMANDS
from .parser import bind_args, build_usage, tokenize
from .pipe import PIPE, PipeChain

# Short hint shown at startup and used in unknown command errors
HELP_TEXT = "Type 'help <command>' for more information on a specific command."


# ---------------------------------------------------------------------------
# Help
# ---------------------------------------------------------------------------


def _suggest_similar_names(name: str) -> str:
    """Return a short suggestion string for misspelled commands."""
    universe = REGISTRY.names() + list(BUILT_IN_COMMANDS)
    matches = difflib.get_close_matches(name, universe, n=3, cutoff=0.6)
    return f" Did you mean: {', '.join(matches)}?" if matches else ""


def usage_for(command_obj: Command) -> str:
    return build_usage(command_obj.name, arguments_for(command_obj), command_obj.options)


def list_categories() -> str:
    """Render the library overview table."""
    categories = REGISTRY.categories()
    if not categories:
        return "No commands loaded."

    rows = []
    for category_name in sorted(categories):
        command_count = len(categories[category_name])
        rows.append([
            category_name,
            f"{command_count} command{'s' if command_count != 1 else ''}",
            REGISTRY.get_category_description(category_name),
        ])
    return format_table(rows, headers=["Library", "Commands", "Description"])


def _format_category_help(category: str) -> str:
    """Render the commands table for one library."""
    commands_in_category = REGISTRY.categories().get(category)
    if not commands_in_category:
        return f"No such library: {category}"

    rows = []
    for command_obj in sorted(commands_in_category, key=lambda x: x.name.lower()):
        alias_display = ", ".join(command_obj.aliases) if command_obj.aliases else "-"
        rows.append([usage_for(command_obj), alias_display, command_obj.description])
    return format_table(rows, headers=["Usage", "Aliases", "Description"])


def format_command_help(name: str, *, verbose: bool = False) -> str:
    """Render help for a command, or for a library when the name matches one."""
    command_obj = REGISTRY.get(name)
    if command_obj is None:
        if name in REGISTRY.categories():
            return _format_category_help(name)
        return f"No such command or library: {name}"

    alias_text = ", ".join(command_obj.aliases) if command_obj.aliases else "(none)"
    lines = [
        usage_for(command_obj),
        f"  Library:     {command_obj.library_name or '(none)'}",
        f"  Aliases:     {alias_text}",
        f"  Description: {command_obj.description or '(none)'}",
        f"  Example:     {command_obj.example or '(none)'}",
    ]
    if verbose:
        source = command_obj.provenance
        if source is not None:
            lines.append(f"  Defined at:  {source.file}:{source.line}")
        if command_obj.class_method:
            lines.append(f"  Bound to:    {command_obj.class_method}")
        if command_obj.arguments.get() is None:
            lines.append("  Arguments:   (unavailable)")
        for flag, type_name in command_obj.options.items():
            lines.append(f"  Option:      --{flag} ({type_name})")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def execute_command(name: str, args: list[Any], *, piped: bool = False) -> Any:
    """Resolve a command by name or alias, bind `args` and run it."""
    command_obj = REGISTRY.get(name)
    if command_obj is None:
        raise UnknownCommand(name)
    if command_obj.callback is None:
        raise TypeError(f"Command '{command_obj.name}' has nothing to run")
    positional_args, keyword_args = bind_args(
        command_obj.callback, args, command_obj.options, piped=piped)
    return command_obj.invoke(*positional_args, **keyword_args)


def run_tokens(tokens: list[str], *, delimiter: str = PIPE) -> Any:
    """Run a (possibly piped) token list and return the chain's result."""
    chain = PipeChain.parse(tokens, delimiter=delimiter)
    options = chain.global_options
    if options.get("help"):
        target = chain.commands()[0]
        if not target:
            return list_categories()
        return format_command_help(target, verbose=bool(options.get("verbose")))
    if not chain.commands()[0]:
        return None

    def _executor(name: str, args: list[Any]) -> Any:
        return execute_command(name, args, piped=chain.stage_input is not None)

    return chain.execute(_executor)


def _describe_failure(name: str, exc: BaseException) -> str:
    if isinstance(exc, UnknownCommand):
        return f"[error] {exc}.{_suggest_similar_names(exc.name)} {HELP_TEXT}"
    if isinstance(exc, TypeError):
        command_obj = REGISTRY.get(name)
        usage = f"\nUsage: {usage_for(command_obj)}" if command_obj is not None else ""
        return f"[error] {exc}{usage}"
    return f"[error] {type(exc).__name__}: {exc}"


def handle_tokens(tokens: list[str], *, delimiter: str = PIPE) -> Any:
    """run_tokens() with failures turned into printable error strings."""
    try:
        return run_tokens(tokens, delimiter=delimiter)
    except PipeSyntaxError as exc:
        return f"[error] {exc}"
    except ChainStageFailure as exc:
        cause = exc.cause
        if isinstance(cause, BaseException):
            return f"[error] Stage {exc.index + 1} ({exc.command}): " + \
                _describe_failure(exc.command, cause).removeprefix("[error] ")
        return f"[error] {exc}"
    except Exception as exc:
        first = next((t for t in tokens if not t.startswith("-")), "")
        return _describe_failure(first, exc)


def handle_line(input_line: str, *, delimiter: str = PIPE) -> Optional[Any]:
    """
    Parse and execute one input line.

    Returns:
        - None if nothing should be printed.
        - Help text, an error string, or the command result to render.
    """
    line = input_line.strip()
    if not line:
        return None

    lowered = line.lower()
    if lowered in {"exit", "quit"}:
        raise SystemExit()

    if lowered in {"clear", "cls"}:
        clear_screen()
        return None

    if lowered == "help":
        return list_categories()

    if lowered.startswith("help "):
        _, _, target = line.partition(" ")
        return format_command_help(target.strip())

    try:
        tokens = tokenize(line)
    except ValueError as exc:
        return f"[error] {exc}"
    return handle_tokens(tokens, delimiter=delimiter)
