#!/usr/bin/env python3
# quiver/interface/completion.py
from __future__ import annotations

"""
Command line completion utilities.

This module offers token-aware suggestions for:
- First token of each pipe stage: built-ins (first stage only) plus all
  registered command names and aliases.
- 'help <partial>' and '-h <partial>': libraries and command names.
- Subsequent tokens: argument keys (key=), option flags (--flag) and values
  via per-command completers.
"""

import shlex

from quiver.commands import REGISTRY

from .pipe import GLOBAL_OPTIONS, PIPE

# Built-in verbs always available
BUILT_IN_COMMANDS: tuple[str, ...] = (
    "help", "exit", "quit", "clear", "cls")


def _split_current_token(raw_input: str) -> tuple[list[str], str]:
    """
    Return (parts, current_prefix).

    Behavior:
      - Use shlex.split for shell-like parsing (POSIX).
      - If trailing whitespace exists, append an empty token to signal a new one.
      - On malformed quotes, fall back to whitespace splitting.
    """
    if not raw_input:
        return [], ""

    try:
        parts = shlex.split(raw_input, posix=True)
    except ValueError:
        parts = raw_input.split()
    if raw_input[-1].isspace():
        parts.append("")
    current_prefix = parts[-1] if parts else ""
    return parts, current_prefix


def _split_key_value(token: str) -> tuple[str | None, str]:
    """If token appears as 'key=value' return (key, value_prefix), else (None, token)."""
    if "=" in token:
        key, value = token.split("=", 1)
        return key, value
    return None, token


def _current_stage(parts: list[str], delimiter: str) -> tuple[list[str], bool]:
    """Return the tokens of the stage being typed and whether it is the first one."""
    last = -1
    for index, token in enumerate(parts[:-1]):
        if token == delimiter:
            last = index
    stage = parts[last + 1:]
    if last < 0:
        stage = [t for t in stage[:-1] if t not in GLOBAL_OPTIONS] + stage[-1:]
    return stage, last < 0


def suggest(text_before_cursor: str, *, delimiter: str = PIPE) -> list[str]:
    """
    Produce suggestions based on the current buffer content.

    Strategy:
      1) If entering the first token of a stage, suggest command names/aliases.
      2) If the line is 'help <partial>', suggest libraries and command names.
      3) For known commands, suggest:
         - parameter keys as 'name=' and declared options as '--flag'
         - parameter values using the command's completer providers
         - positional arguments via providers 'posN' or 'pos*'
    """
    raw_buffer = text_before_cursor.lstrip()
    parts, current_prefix = _split_current_token(raw_buffer)
    stage, first_stage = _current_stage(parts, delimiter)

    if len(stage) <= 1:
        universe = [*REGISTRY.names()]
        if first_stage and len(parts) <= 1:
            universe.extend(BUILT_IN_COMMANDS)
        return sorted({w for w in universe if w.startswith(current_prefix)})

    first_token = stage[0]
    if first_stage and first_token == "help":
        if len(stage) > 2:
            return []
        target_prefix = stage[1]
        universe = set(REGISTRY.categories().keys()) | set(REGISTRY.names())
        return sorted([w for w in universe if w.startswith(target_prefix)])

    command_obj = REGISTRY.get(first_token)
    if not command_obj:
        return []

    argument_tokens = stage[1:]
    current_token = argument_tokens[-1] if argument_tokens else ""
    key, value_prefix = _split_key_value(current_token)

    if current_token.startswith("--") and key is None:
        flags = [f"--{name}" for name in command_obj.options]
        return sorted([f for f in flags if f.startswith(current_token)])

    # Suggest parameter keys when typing the key segment (exclude positional markers)
    if key is None and current_token and not current_token.startswith("-"):
        parameter_keys = [
            k for k in command_obj.completers.keys() if not k.startswith("pos")]
        parameter_keys = sorted(
            set(parameter_keys + [p for p in command_obj.param_names if p != "args"]))
        return [f"{k}=" for k in parameter_keys if f"{k}=".startswith(current_token)]

    if key is not None:
        provider = command_obj.completers.get(key)
        if not provider:
            return []
        return [f"{key}={value}" for value in provider(text=value_prefix, argv=argument_tokens, index=None)]  # type: ignore[return-value]

    positional_only = [
        token for token in argument_tokens if "=" not in token]
    position_index = max(0, len(positional_only) - 1)
    provider = command_obj.completers.get(
        f"pos{position_index}") or command_obj.completers.get("pos*")
    if not provider:
        return []
    return list(provider(text=current_token, argv=argument_tokens, index=position_index))  # type: ignore[return-value]
