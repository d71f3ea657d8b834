"""Command inputs: where each field comes from, and how to print it back.

Input types are dataclasses whose fields name their source with
``cli_field(arg=N)`` (positional) or ``cli_field(flag="name")``. The same
schema drives ``decode_input`` (argv -> typed input) and ``input_to_args``
(typed input -> the replayable command text shown under each frame).
``args_to_input`` reads that text back, for forms that edit a command in place.
"""

from __future__ import annotations

import dataclasses
import shlex
import types
import typing
from dataclasses import dataclass
from typing import Any, Mapping, Sequence, TypeVar

from ..errors import InputError

_META_KEY = "cli"

InputT = TypeVar("InputT")


@dataclass(frozen=True)
class CliSource:
    flag: str | None = None
    arg: int | None = None


def cli_field(*, flag: str | None = None, arg: int | None = None, **kwargs: Any) -> Any:
    """``dataclasses.field`` tagged with its command-line source."""
    if (flag is None) == (arg is None):
        raise ValueError("cli_field needs exactly one of flag= or arg=")
    metadata = dict(kwargs.pop("metadata", {}) or {})
    metadata[_META_KEY] = CliSource(flag=flag, arg=arg)
    return dataclasses.field(metadata=metadata, **kwargs)


def _sources(cls: type) -> list[tuple[dataclasses.Field, CliSource]]:
    return [
        (f, f.metadata[_META_KEY])
        for f in dataclasses.fields(cls)
        if _META_KEY in f.metadata
    ]


def _has_default(f: dataclasses.Field) -> bool:
    return f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING


def _default(f: dataclasses.Field) -> Any:
    if f.default is not dataclasses.MISSING:
        return f.default
    if f.default_factory is not dataclasses.MISSING:
        return f.default_factory()
    return dataclasses.MISSING


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _unwrap_optional(hint: Any) -> Any:
    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is getattr(types, "UnionType", None):
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def _split(raw: Any) -> list[str]:
    items = raw if isinstance(raw, (list, tuple)) else [raw]
    out: list[str] = []
    for item in items:
        out.extend(part.strip() for part in str(item).split(",") if part.strip())
    return out


def _coerce(name: str, raw: Any, hint: Any) -> Any:
    hint = _unwrap_optional(hint)
    origin = typing.get_origin(hint)
    if origin in (list, tuple) or hint in (list, tuple):
        return _split(raw)
    if hint is bool:
        if isinstance(raw, bool):
            return raw
        value = str(raw).strip().lower()
        if value in ("true", "1", "yes"):
            return True
        if value in ("false", "0", "no", ""):
            return False
        raise InputError(f"invalid value {raw!r} for {name}: expected true or false")
    if hint is int:
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise InputError(f"invalid value {raw!r} for {name}: expected an integer")
    if hint is float:
        try:
            return float(raw)
        except (TypeError, ValueError):
            raise InputError(f"invalid value {raw!r} for {name}: expected a number")
    return str(raw)


def decode_input(
    cls: type[InputT],
    args: Sequence[str] = (),
    flags: Mapping[str, Any] | None = None,
) -> InputT:
    """Bind positionals and flags into *cls*.

    Flags whose value is None are treated as not given. A missing positional
    without a default, or a surplus positional, raises InputError.
    """
    flags = flags or {}
    hints = typing.get_type_hints(cls)
    kwargs: dict[str, Any] = {}
    max_arg = -1

    for f, source in _sources(cls):
        if source.arg is not None:
            max_arg = max(max_arg, source.arg)
            if source.arg < len(args) and args[source.arg] != "":
                raw = args[source.arg]
            elif _has_default(f):
                continue
            else:
                raise InputError(f"missing required argument <{f.name}>")
        else:
            raw = flags.get(source.flag)
            if raw is None:
                continue
        kwargs[f.name] = _coerce(f.name, raw, hints.get(f.name, str))

    if len(args) > max_arg + 1:
        extra = " ".join(args[max_arg + 1:])
        raise InputError(f"unexpected argument(s): {extra}")
    return cls(**kwargs)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _format_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def input_to_args(value: Any) -> str:
    """Positionals in index order, then ``--flag=value`` for non-default flags."""
    positional: list[tuple[int, str]] = []
    flags: list[str] = []
    for f, source in _sources(type(value)):
        current = getattr(value, f.name)
        if source.arg is not None:
            if current not in (None, ""):
                positional.append((source.arg, str(current)))
            continue
        if current is None or current == _default(f) or current in ("", [], ()):
            continue
        if current is True:
            flags.append(f"--{source.flag}")
        elif current is False:
            flags.append(f"--{source.flag}=false")
        else:
            flags.append(f"--{source.flag}={_format_value(current)}")
    return " ".join(shlex.quote(part) for part in [v for _, v in sorted(positional)] + flags)


def command_text(command: str, value: Any) -> str:
    """The full, replayable command line for a frame."""
    args = input_to_args(value) if dataclasses.is_dataclass(value) else ""
    return " ".join(part for part in ("render", command, args) if part)


def args_to_input(cls: type[InputT], text: str) -> InputT:
    """Parse command text in the shape ``input_to_args`` prints.

    Accepts ``--flag=value`` and ``--flag value``; a bare boolean flag means
    true. Repeating a list flag adds to it.
    """
    try:
        tokens = shlex.split(text)
    except ValueError as e:
        raise InputError(f"cannot parse {text!r}: {e}")

    hints = typing.get_type_hints(cls)
    by_flag = {s.flag: f for f, s in _sources(cls) if s.flag is not None}
    args: list[str] = []
    flags: dict[str, Any] = {}
    queue = list(tokens)
    while queue:
        token = queue.pop(0)
        if not token.startswith("--"):
            args.append(token)
            continue
        name, eq, raw = token[2:].partition("=")
        f = by_flag.get(name)
        if f is None:
            raise InputError(f"unknown flag --{name}")
        hint = _unwrap_optional(hints.get(f.name, str))
        if not eq:
            if hint is bool:
                raw = "true"
            elif queue:
                raw = queue.pop(0)
            else:
                raise InputError(f"flag --{name} needs a value")
        if typing.get_origin(hint) in (list, tuple) and name in flags:
            flags[name] = [*flags[name], raw]
        else:
            flags[name] = [raw] if typing.get_origin(hint) in (list, tuple) else raw
    return decode_input(cls, args, flags)
