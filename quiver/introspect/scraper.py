#!/usr/bin/env python3
# quiver/introspect/scraper.py
from __future__ import annotations

"""
Textual argument scraping.

Finds a function definition by name in source text and reports its formal
parameters as written: (name, has_default, default_literal). Nothing is
imported or executed, so commands can be documented before they ever run.
"""

import ast
from typing import Iterator, Optional

ScrapedArgument = tuple[str, bool, Optional[str]]

_FunctionNode = (ast.FunctionDef, ast.AsyncFunctionDef)


def _candidates(tree: ast.Module) -> Iterator[tuple[ast.AST, bool]]:
    """Yield (def node, is_method): top-level defs first, then class bodies."""
    pending: list[ast.ClassDef] = []
    for node in tree.body:
        if isinstance(node, _FunctionNode):
            yield node, False
        elif isinstance(node, ast.ClassDef):
            pending.append(node)
    while pending:
        klass = pending.pop(0)
        for node in klass.body:
            if isinstance(node, _FunctionNode):
                yield node, True
            elif isinstance(node, ast.ClassDef):
                pending.append(node)


def _class_methods(tree: ast.Module, class_path: str) -> Iterator[tuple[ast.AST, bool]]:
    """Yield the defs directly inside the class at dotted `class_path` ('Outer.Inner')."""
    body: list[ast.stmt] = tree.body
    for part in class_path.split("."):
        for node in body:
            if isinstance(node, ast.ClassDef) and node.name == part:
                body = node.body
                break
        else:
            return
    for node in body:
        if isinstance(node, _FunctionNode):
            yield node, True


def _literal(source: str, node: ast.AST) -> str:
    return ast.get_source_segment(source, node) or ast.unparse(node)


def _is_static(node: ast.AST) -> bool:
    for deco in getattr(node, "decorator_list", ()):
        if isinstance(deco, ast.Name) and deco.id == "staticmethod":
            return True
    return False


def scrape_arguments(source: str, lookup_key: str) -> Optional[list[ScrapedArgument]]:
    """
    Return the formal parameters of the definition named `lookup_key`.

    A dotted key ("Shell.run") only matches a method of that class; a plain
    key matches the first top-level def, then the first method of that name.

    Returns None when the source does not parse or holds no such definition.
    Variadic parameters keep their stars ("*args", "**kwargs"); the implicit
    first parameter of a non-static method is dropped.
    """
    try:
        tree = ast.parse(source)
    except (SyntaxError, ValueError):
        return None

    class_path, _, name = lookup_key.rpartition(".")
    candidates = _class_methods(tree, class_path) if class_path else _candidates(tree)
    for node, is_method in candidates:
        if node.name != name:  # type: ignore[attr-defined]
            continue
        args: ast.arguments = node.args  # type: ignore[attr-defined]
        out: list[ScrapedArgument] = []

        positional = [*args.posonlyargs, *args.args]
        defaults: list[Optional[ast.expr]] = [None] * (len(positional) - len(args.defaults))
        defaults.extend(args.defaults)
        for arg, default in zip(positional, defaults):
            if default is None:
                out.append((arg.arg, False, None))
            else:
                out.append((arg.arg, True, _literal(source, default)))

        if args.vararg is not None:
            out.append((f"*{args.vararg.arg}", False, None))
        for arg, kw_default in zip(args.kwonlyargs, args.kw_defaults):
            if kw_default is None:
                out.append((arg.arg, False, None))
            else:
                out.append((arg.arg, True, _literal(source, kw_default)))
        if args.kwarg is not None:
            out.append((f"**{args.kwarg.arg}", False, None))

        if is_method and not _is_static(node) and out and out[0][0] in ("self", "cls"):
            out = out[1:]
        return out
    return None
