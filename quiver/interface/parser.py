#!/usr/bin/env python3
# quiver/interface/parser.py
from __future__ import annotations

"""
Argument parsing helpers for commands.

Responsibilities:
- Tokenize a command line into shell-like tokens.
- Bind tokens (and piped values) to a callable signature with type coercion
  based on annotations or the command's option schema.
- Render compact Usage strings from a command's introspected arguments.
"""

import inspect
import shlex
from types import UnionType
from typing import Any, Mapping, Optional, Sequence, Union, get_args, get_origin

from quiver.commands import Argument

# Option schema type name -> Python type used for coercion.
OPTION_TYPES: dict[str, Any] = {
    "string": str,
    "boolean": bool,
    "numeric": float,
    "integer": int,
    "array": list,
}


# Unevaluated annotation text -> type, for signatures that could not be resolved.
_ANNOTATION_NAMES: dict[str, Any] = {"str": str, "bool": bool, "int": int, "float": float, "list": list}


def tokenize(command_line: str) -> list[str]:
    """Split a raw command line into tokens using POSIX rules."""
    return shlex.split(command_line, posix=True)


def _coerce_value(value: Any, annotation: Any) -> Any:
    """
    Convert a string to the annotated type when reasonable.

    Supported coercions:
        - non-string values (piped results) -> unchanged
        - str/Any/inspect._empty -> original text
        - bool -> accepts '1,true,yes,y,on' (case-insensitive)
        - int/float -> cast via constructor
        - list -> comma separated items
    """
    if not isinstance(value, str):
        return value
    if isinstance(annotation, str):
        annotation = _ANNOTATION_NAMES.get(annotation, inspect._empty)
    if get_origin(annotation) in (Union, UnionType):
        members = [a for a in get_args(annotation) if a is not type(None)]
        annotation = members[0] if len(members) == 1 else inspect._empty
    if annotation in (inspect._empty, str, Any):
        return value
    if annotation is bool:
        return value.lower() in ("1", "true", "yes", "y", "on")
    if annotation in (int, float):
        return annotation(value)
    if annotation is list or get_origin(annotation) is list:
        return [item.strip() for item in value.split(",") if item.strip()]
    # Fallback to original text for any other type
    return value


def _split_keyword(token: Any) -> Optional[tuple[str, Any]]:
    """Return (key, raw value) for 'key=value', '--key=value' and '--flag' tokens."""
    if not isinstance(token, str):
        return None
    text = token[2:] if token.startswith("--") else token
    if "=" in text:
        key, value = text.split("=", 1)
        return key.replace("-", "_"), value
    if token.startswith("--") and len(token) > 2:
        return text.replace("-", "_"), "true"
    return None


def _signature(func: Any) -> inspect.Signature:
    """Signature with string annotations evaluated when they resolve."""
    try:
        return inspect.signature(func, eval_str=True)
    except (NameError, SyntaxError, TypeError):
        return inspect.signature(func)


def bind_args(
    func: Any,
    tokens: Sequence[Any],
    options: Mapping[str, str] | None = None,
    *,
    piped: bool = False,
) -> tuple[tuple[Any, ...], dict[str, Any]]:
    """
    Bind a flat token list to the signature of `func`.

    Supports:
        - positional tokens (strings or piped objects)
        - key=value / --key=value / --flag tokens for keyword-capable parameters
        - *args (VAR_POSITIONAL) with optional element annotation via typing.Tuple[T, ...]
        - **kwargs collecting unknown keywords

    With `piped`, the first token is a previous stage's result and is always
    bound positionally, whatever it looks like.
    """
    schema = dict(options or {})
    signature = _signature(func)
    parameters = list(signature.parameters.values())

    keyword_names = {p.name for p in parameters
                     if p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD, p.POSITIONAL_ONLY)}
    takes_any_keyword = any(p.kind is p.VAR_KEYWORD for p in parameters)

    positional_tokens: list[Any] = []
    kw_tokens_raw: dict[str, Any] = {}
    for position, token in enumerate(tokens):
        keyword = None if (piped and position == 0) else _split_keyword(token)
        # "a=b" stays a plain value unless it names something the command accepts
        if keyword is not None and (
            keyword[0] in keyword_names or keyword[0] in schema or takes_any_keyword
        ):
            kw_tokens_raw[keyword[0]] = keyword[1]
        else:
            positional_tokens.append(token)

    def annotation_for(parameter: inspect.Parameter) -> Any:
        if parameter.annotation is not inspect._empty:
            return parameter.annotation
        return OPTION_TYPES.get(schema.get(parameter.name, ""), inspect._empty)

    bound_positional: list[Any] = []
    bound_keywords: dict[str, Any] = {}
    positional_index = 0
    var_positional_annotation: Any = inspect._empty
    has_var_positional = False
    has_var_keyword = False
    keyword_mode = False

    # First pass: positional parameters and detection of *args
    for parameter in parameters:
        if parameter.kind is parameter.VAR_POSITIONAL:
            has_var_positional = True
            var_positional_annotation = parameter.annotation
            continue
        if parameter.kind is parameter.VAR_KEYWORD:
            has_var_keyword = True
            continue

        if parameter.kind in (parameter.POSITIONAL_ONLY, parameter.POSITIONAL_OR_KEYWORD):
            if keyword_mode or (
                parameter.name in kw_tokens_raw and parameter.kind is parameter.POSITIONAL_OR_KEYWORD
            ):
                # Bound by keyword in the second pass; later positionals follow suit.
                keyword_mode = True
                continue
            if positional_index < len(positional_tokens):
                raw = positional_tokens[positional_index]
                bound_positional.append(_coerce_value(raw, annotation_for(parameter)))
                positional_index += 1
            elif parameter.default is not inspect._empty:
                bound_positional.append(parameter.default)
            else:
                raise TypeError(f"Missing required argument: {parameter.name}")
        elif parameter.kind is parameter.KEYWORD_ONLY:
            if parameter.name in kw_tokens_raw:
                bound_keywords[parameter.name] = _coerce_value(
                    kw_tokens_raw[parameter.name], annotation_for(parameter))
            elif parameter.default is inspect._empty:
                raise TypeError(
                    f"Missing required keyword-only argument: {parameter.name}")

    # Pack remaining positionals into *args
    if has_var_positional:
        remaining = positional_tokens[positional_index:]
        element_annotation: Any = str
        origin = get_origin(var_positional_annotation)
        args_ = get_args(var_positional_annotation) or ()
        if origin is tuple and args_:
            element_annotation = args_[0]
        elif var_positional_annotation is not inspect._empty:
            element_annotation = var_positional_annotation
        bound_positional.extend(_coerce_value(item, element_annotation) for item in remaining)
        positional_index = len(positional_tokens)
    elif positional_index < len(positional_tokens):
        raise TypeError("Too many positional arguments.")

    # Map remaining kwargs for POSITIONAL_OR_KEYWORD params (and **kwargs)
    known = {p.name for p in parameters}
    for parameter in parameters:
        if parameter.kind is parameter.POSITIONAL_OR_KEYWORD and parameter.name in kw_tokens_raw:
            bound_keywords[parameter.name] = _coerce_value(
                kw_tokens_raw[parameter.name], annotation_for(parameter))
    for key, value in kw_tokens_raw.items():
        if key in known:
            continue
        if not has_var_keyword:
            raise TypeError(f"Unknown option: {key}")
        bound_keywords[key] = _coerce_value(value, OPTION_TYPES.get(schema.get(key, ""), inspect._empty))

    return tuple(bound_positional), bound_keywords


def build_usage(
    command_name: str,
    arguments: Optional[Sequence[Argument]],
    options: Mapping[str, str] | None = None,
) -> str:
    """
    Render a compact usage string from scraped arguments.

    Examples:
        'scan <host> [port=80] [args...]'
    """
    usage_parts: list[str] = []
    for argument in arguments or ():
        if argument.name.startswith("**"):
            usage_parts.append("[key=value...]")
        elif argument.name.startswith("*"):
            usage_parts.append(f"[{argument.name[1:]}...]")
        elif argument.has_default:
            usage_parts.append(f"[{argument.name}={argument.default}]")
        else:
            usage_parts.append(f"<{argument.name}>")

    for flag, type_name in (options or {}).items():
        usage_parts.append(f"[--{flag}]" if type_name == "boolean" else f"[--{flag}=...]")

    return f"{command_name} " + " ".join(usage_parts) if usage_parts else command_name
