#!/usr/bin/env python3
# quiver/interface/render.py
from __future__ import annotations

"""
Result rendering for the console.

Rules:
  None / True / False  -> nothing is printed
  str                  -> printed as-is
  CommandResult        -> its message (or its data when there is no message)
  list / tuple         -> table (rows of mappings, rows of sequences, or one column)
  anything else        -> repr()
A hint of "plain" skips table rendering.
"""

from typing import Any, Mapping, Optional, Sequence

from quiver.commands import CommandResult
from quiver.ui import format_table, print_line


def _is_row(item: Any) -> bool:
    return isinstance(item, (list, tuple))


def format_rows(items: Sequence[Any]) -> str:
    """Render a sequence as a table, with a row count footer."""
    if not items:
        return "0 rows in set"
    footer = f"{len(items)} row{'s' if len(items) != 1 else ''} in set"

    if all(isinstance(item, Mapping) for item in items):
        headers: list[str] = []
        for item in items:
            for key in item:
                if str(key) not in headers:
                    headers.append(str(key))
        keyed = [{str(k): v for k, v in item.items()} for item in items]
        rows = [[item.get(h, "") for h in headers] for item in keyed]
        return format_table(rows, headers) + "\n" + footer

    if all(_is_row(item) for item in items):
        return format_table([list(item) for item in items]) + "\n" + footer

    return format_table([[item] for item in items]) + "\n" + footer


def render_output(result: Any, hint: Optional[str] = None, *, file=None) -> bool:
    """Print a command result. Returns True if anything was printed."""
    kwargs = {} if file is None else {"file": file}

    if result is None or isinstance(result, bool):
        return False

    if isinstance(result, CommandResult):
        if result.message or not result.ok:
            print_line(str(result), **kwargs)
            return True
        return render_output(result.data, hint, file=file)

    if isinstance(result, str):
        print_line(result, **kwargs)
        return True

    if hint != "plain" and isinstance(result, (list, tuple)):
        print_line(format_rows(result), **kwargs)
        return True

    print_line(repr(result), **kwargs)
    return True
