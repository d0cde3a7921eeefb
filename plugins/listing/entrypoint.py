# plugins/listing/entrypoint.py
from __future__ import annotations

"""
List helpers:
- build sequences (seq)
- reorder and slice them (sort-items, take)
- render them as rows (enumerate-items)
"""

from typing import Any

from quiver.commands import command

CATEGORY_DESCRIPTION = "Build, reorder and slice lists."

_STATE: dict[str, Any] = {"ready": False}


def config() -> dict[str, Any]:
    """Defaults merged under whatever the user configured for this library."""
    return {
        "aliases": {"sort-items": ["sorted"], "take": ["head"]},
        "options": {"sort-items": {"reverse": "boolean"}},
    }


def after_setup() -> None:
    _STATE["ready"] = True


def _items(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        return value.split()
    return [value]


@command(
    description="Numbers from start to stop (inclusive).",
    example="seq 1 5 + take 2",
)
def seq(start: int, stop: int, step: int = 1) -> list[int]:
    if step == 0:
        raise ValueError("step must not be zero")
    end = stop + (1 if step > 0 else -1)
    return list(range(start, end, step))


@command(
    name="sort-items",
    description="Sort a list (or whitespace separated words).",
    example="words 'b c a' + sort-items --reverse",
)
def sort_items(items: Any, reverse: bool = False) -> list[Any]:
    return sorted(_items(items), key=str, reverse=reverse)


@command(
    description="First n items.",
    example="seq 1 10 + take 3",
)
def take(items: Any, n: int = 5) -> list[Any]:
    return _items(items)[:n]


@command(
    name="enumerate-items",
    description="Pair each item with its position.",
    example="words 'a b' + enumerate-items",
)
def enumerate_items(items: Any, start: int = 1) -> list[dict[str, Any]]:
    return [{"#": i, "item": item} for i, item in enumerate(_items(items), start)]
