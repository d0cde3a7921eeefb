#!/usr/bin/env python3
# quiver/interface/pipe.py
from __future__ import annotations

"""
Pipe chaining for one invocation.

    upper hello + count + echo

splits into three sub-invocations run left to right; each stage after the
first receives the previous stage's result as its leading positional
argument (unless that result is None). The chain's value is the last result.

The delimiter is only recognized as a whole token, so quoting it
('upper "a + b"') keeps it a literal argument.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from quiver.commands import CommandResult
from quiver.errors import ChainStageFailure, PipeSyntaxError

PIPE = "+"

# Leading tokens of the first stage that configure the run rather than the command.
GLOBAL_OPTIONS: dict[str, str] = {
    "-h": "help",
    "--help": "help",
    "-v": "verbose",
    "--verbose": "verbose",
    "--index": "index",
}

Executor = Callable[[str, list[Any]], Any]


@dataclass(slots=True)
class Invocation:
    name: str
    args: list[Any] = field(default_factory=list)
    options: dict[str, Any] = field(default_factory=dict)


def split_tokens(tokens: Iterable[Any], delimiter: str = PIPE) -> list[list[Any]]:
    """
    Split on standalone delimiter tokens.

    Example:
        ["upper", "a", "+", "count"] -> [["upper", "a"], ["count"]]
    """
    segments: list[list[Any]] = [[]]
    for token in tokens:
        if isinstance(token, str) and token == delimiter:
            segments.append([])
        else:
            segments[-1].append(token)
    if len(segments) > 1:
        for index, segment in enumerate(segments):
            if not segment:
                side = "left" if index == 0 else "right"
                raise PipeSyntaxError(f"Syntax: '{delimiter}' missing {side}-hand command.")
    return segments


def parse_stage(tokens: list[Any]) -> Invocation:
    """
    Parse the first stage: leading global options, then command name and args.

    Example:
        ["-v", "upper", "a"] -> Invocation("upper", ["a"], {"verbose": True})
    """
    options: dict[str, Any] = {}
    index = 0
    while index < len(tokens) and isinstance(tokens[index], str) and tokens[index] in GLOBAL_OPTIONS:
        options[GLOBAL_OPTIONS[tokens[index]]] = True
        index += 1
    rest = tokens[index:]
    name = str(rest[0]) if rest else ""
    return Invocation(name, list(rest[1:]), options)


def translate_args(args: list[Any], piped: Any) -> list[Any]:
    """Prepend the previous stage's result, unless there was none."""
    if piped is None:
        return list(args)
    return [piped, *args]


class PipeChain:
    def __init__(self, stages: list[Invocation], *, delimiter: str = PIPE) -> None:
        self.stages = stages
        self.delimiter = delimiter
        self._commands: Optional[list[str]] = None
        # Result forwarded into the stage currently running (None for the first).
        self.stage_input: Any = None

    @classmethod
    def parse(
        cls,
        tokens: Iterable[Any],
        *,
        delimiter: str = PIPE,
        stage_parser: Callable[[list[Any]], Invocation] = parse_stage,
    ) -> "PipeChain":
        segments = split_tokens(tokens, delimiter)
        first = stage_parser(segments[0])
        if not first.name and len(segments) > 1:
            raise PipeSyntaxError(f"Syntax: '{delimiter}' missing left-hand command.")
        # First stage is rebuilt as [command] + args; later stages are taken verbatim.
        stages = [first] + [Invocation(str(seg[0]), list(seg[1:])) for seg in segments[1:]]
        return cls(stages, delimiter=delimiter)

    @property
    def global_options(self) -> dict[str, Any]:
        return self.stages[0].options if self.stages else {}

    @property
    def piped(self) -> bool:
        return len(self.stages) > 1

    def commands(self) -> list[str]:
        """Command names in the order the user typed them."""
        if self._commands is None:
            self._commands = [stage.name for stage in self.stages]
        return list(self._commands)

    def execute(self, executor: Executor) -> Any:
        """Run all stages; a failing stage stops the chain with ChainStageFailure."""
        if not self.stages:
            return None
        if not self.piped:
            first = self.stages[0]
            return executor(first.name, list(first.args))

        acc: Any = None
        for index, stage in enumerate(self.stages):
            args = translate_args(stage.args, acc) if index else list(stage.args)
            self.stage_input = acc if index else None
            try:
                result = executor(stage.name, args)
            except Exception as exc:
                raise ChainStageFailure(index, stage.name, exc) from exc
            if isinstance(result, CommandResult) and not result.ok:
                raise ChainStageFailure(index, stage.name, result.message or "error")
            acc = result
        return acc
