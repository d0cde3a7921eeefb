# plugins/text.py
from __future__ import annotations

"""Text transforms that read well in pipes."""

from quiver.commands import command

CATEGORY_DESCRIPTION = "Transform and measure text; every command accepts piped input."


def _as_text(value: object) -> str:
    if isinstance(value, (list, tuple)):
        return "\n".join(str(item) for item in value)
    return str(value)


@command(
    description="Print the arguments joined by spaces.",
    example="echo hello world",
)
def echo(*words: str) -> str:
    return " ".join(_as_text(w) for w in words)


@command(
    description="Upper-case the text.",
    example="echo hello + upper",
    aliases=["up"],
)
def upper(text: str) -> str:
    return _as_text(text).upper()


@command(
    description="Lower-case the text.",
    example="lower HELLO",
)
def lower(text: str) -> str:
    return _as_text(text).lower()


@command(
    description="Reverse the characters of the text.",
    example="echo abc + reverse",
)
def reverse(text: str) -> str:
    return _as_text(text)[::-1]


@command(
    description="Count words (or characters with --chars).",
    example="echo a b c + count",
    options={"chars": "boolean"},
)
def count(text: str, chars: bool = False) -> int:
    value = _as_text(text)
    return len(value) if chars else len(value.split())


@command(
    description="Split text into words.",
    example='words "a b c" + sort-items',
)
def words(text: str) -> list[str]:
    return _as_text(text).split()


@command(
    description="Replace every occurrence of old with new.",
    example="echo a-b + replace - _",
)
def replace(text: str, old: str, new: str = "") -> str:
    return _as_text(text).replace(old, new)
