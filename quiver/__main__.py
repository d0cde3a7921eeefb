#!/usr/bin/env python3
# quiver/__main__.py
from __future__ import annotations

"""
Entry point.

    python -m quiver                      # interactive console
    python -m quiver upper hello + count  # one (possibly piped) invocation
"""

import sys
from typing import Optional, Sequence

from quiver.boot import boot_sequence
from quiver.interface import HELP_TEXT, handle_line, handle_tokens, make_cli, render_output
from quiver.interface.cli import DEFAULT_PROMPT
from quiver.ui import colorize, print_line


def _is_error(result: object) -> bool:
    return isinstance(result, str) and result.startswith("[error]")


def run_once(tokens: Sequence[str]) -> int:
    state = boot_sequence(quiet=True)
    result = handle_tokens(list(tokens), delimiter=state.config.pipe_delimiter)
    if _is_error(result):
        print_line(str(result), file=sys.stderr)
        return 1
    render_output(result)
    return 0


def repl() -> int:
    state = boot_sequence()
    config = state.config
    print_line(colorize(HELP_TEXT, "cyan"))

    cli = make_cli(
        prompt=config.prompt or DEFAULT_PROMPT,
        history_path=config.workspace_path / ".history",
        delimiter=config.pipe_delimiter,
        completion=config.enable_completion,
    )
    with cli:
        while True:
            try:
                line = cli.get_line()
            except KeyboardInterrupt:
                continue
            except EOFError:
                return 0
            try:
                result = handle_line(line, delimiter=config.pipe_delimiter)
            except SystemExit:
                return 0
            except KeyboardInterrupt:
                print_line(colorize("^C", "yellow"))
                continue
            render_output(result)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if args:
        return run_once(args)
    return repl()


if __name__ == "__main__":
    sys.exit(main())
