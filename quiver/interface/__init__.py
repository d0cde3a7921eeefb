#!/usr/bin/env python3
# quiver/interface/__init__.py
from __future__ import annotations

"""
Package for the interactive console interface and command dispatch.

Provides:
- Pipe chaining of invocations.
- Parser utilities for binding arguments to command functions.
- Command dispatcher, help formatting and result rendering.
- CLI frontends with history and completion (prompt_toolkit / readline / plain).
"""

# Completion FIRST (cli depends on it)
from .completion import suggest, BUILT_IN_COMMANDS

from .pipe import PIPE, GLOBAL_OPTIONS, Invocation, PipeChain, split_tokens, parse_stage, translate_args

from .parser import tokenize, bind_args, build_usage

from .render import format_rows, render_output

from .handler import (
    handle_line,
    handle_tokens,
    run_tokens,
    execute_command,
    HELP_TEXT,
    list_categories,
    format_command_help,
)

from .cli import (
    BaseCLI,
    PromptToolkitCLI,
    ReadlineCLI,
    make_cli,
    HISTORY_FILE_PATH,
)

__all__ = [
    # completion
    "suggest",
    "BUILT_IN_COMMANDS",
    # pipe
    "PIPE",
    "GLOBAL_OPTIONS",
    "Invocation",
    "PipeChain",
    "split_tokens",
    "parse_stage",
    "translate_args",
    # parser
    "tokenize",
    "bind_args",
    "build_usage",
    # render
    "format_rows",
    "render_output",
    # handler
    "handle_line",
    "handle_tokens",
    "run_tokens",
    "execute_command",
    "HELP_TEXT",
    "list_categories",
    "format_command_help",
    # cli
    "BaseCLI",
    "PromptToolkitCLI",
    "ReadlineCLI",
    "make_cli",
    "HISTORY_FILE_PATH",
]
