"""Convert a structured options mapping into an argv tail.

A mapping such as ``{"foo": "bar", "yes": True}`` becomes
``["--foo", "bar", "--yes"]``.  Several keys carry special meaning:

``"*"``
    positional values (string or list).
``"_"``
    remainder values placed after flags and positionals.
``"--"``
    extra values emitted after a literal ``--`` separator.
``"splat"``
    a :class:`SplatOptions` (or dict of its fields) used for this call.

The non-string :class:`SplatKeys` sentinels provide the same slots without
colliding with real option names.
"""

from __future__ import annotations

import dataclasses
import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from shuttle.tokenize import split_arguments

Pattern = str | re.Pattern


class _Marker:
    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"SplatKeys.{self.name}"


class SplatKeys:
    """Sentinel keys that never collide with option names."""

    COMMAND = _Marker("COMMAND")
    ARGS = _Marker("ARGS")
    ARG_NAMES = _Marker("ARG_NAMES")
    REMAINDER = _Marker("REMAINDER")
    EXTRA = _Marker("EXTRA")


@dataclass
class SplatOptions:
    """Rules controlling how :func:`splat` renders a mapping."""

    command: str | list[str] | None = None
    prefix: str = "--"
    assign: str | None = None
    short_flag: bool = True
    preserve_case: bool = False
    includes: list[Pattern] | None = None
    excludes: list[Pattern] | None = None
    aliases: dict[str, str] = field(default_factory=dict)
    argument_names: list[str] = field(default_factory=list)
    append_arguments: bool = False
    no_flags: list[str] | bool | None = None
    no_flag_values: tuple[str, str] = ("true", "false")
    ignore_true: bool = False
    ignore_false: bool = False


_OPTION_FIELDS = {f.name for f in dataclasses.fields(SplatOptions)}


def _coerce_options(value: SplatOptions | Mapping[str, Any] | None) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, SplatOptions):
        defaults = SplatOptions()
        return {
            name: getattr(value, name)
            for name in _OPTION_FIELDS
            if getattr(value, name) != getattr(defaults, name)
        }
    unknown = set(value) - _OPTION_FIELDS
    if unknown:
        raise TypeError(f"Unknown splat options: {', '.join(sorted(unknown))}")
    return dict(value)


def _dasherize(key: str) -> str:
    key = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", key)
    key = re.sub(r"[_\s]+", "-", key)
    return key.lower()


def _matches(patterns: Sequence[Pattern], key: str) -> bool:
    for pattern in patterns:
        if isinstance(pattern, re.Pattern):
            if pattern.search(key):
                return True
        elif pattern == key:
            return True
    return False


def _as_tokens(value: str | Sequence[str]) -> list[str]:
    if isinstance(value, str):
        return split_arguments(value)
    return [str(v) for v in value]


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def splat(
    fields: Mapping[Any, Any],
    options: SplatOptions | Mapping[str, Any] | None = None,
) -> list[str]:
    """Render *fields* as a list of command-line arguments.

    Options embedded under the ``"splat"`` key are merged beneath
    *options*.  The input mapping is not modified.
    """
    merged = _coerce_options(fields.get("splat"))
    merged.update(_coerce_options(options))
    opts = SplatOptions(**merged)

    commands: list[str] = _as_tokens(opts.command) if opts.command else []
    argument_names = list(opts.argument_names)
    positionals: list[Any] = []
    remainder: list[Any] = []
    extra: list[Any] = []
    flags: list[str] = []

    if isinstance(fields.get(SplatKeys.ARG_NAMES), (list, tuple)):
        argument_names = list(fields[SplatKeys.ARG_NAMES])
    if fields.get(SplatKeys.COMMAND):
        commands = _as_tokens(fields[SplatKeys.COMMAND])
    if isinstance(fields.get(SplatKeys.REMAINDER), (list, tuple)):
        remainder = list(fields[SplatKeys.REMAINDER])
    if isinstance(fields.get(SplatKeys.EXTRA), (list, tuple)):
        extra = list(fields[SplatKeys.EXTRA])
    if isinstance(fields.get(SplatKeys.ARGS), (list, tuple)):
        positionals = list(fields[SplatKeys.ARGS])
    elif argument_names:
        positionals = [None] * len(argument_names)

    if opts.no_flags is True:
        def is_no_flag(key: str) -> bool:
            return True
    elif opts.no_flags:
        no_flag_keys = set(opts.no_flags)

        def is_no_flag(key: str) -> bool:
            return key in no_flag_keys
    else:
        def is_no_flag(key: str) -> bool:
            return False

    def push_option(key: str, value: str | None = None) -> None:
        prefix = "-" if opts.short_flag and len(key) == 1 else opts.prefix
        name = prefix + (key if opts.preserve_case else _dasherize(key))
        if opts.assign and value is not None:
            flags.append(f"{name}{opts.assign}{value}")
        elif value is not None:
            flags.extend((name, value))
        else:
            flags.append(name)

    def push_alias(alias: str, value: str | None = None) -> None:
        if not alias.startswith(("-", "/")):
            alias = "-" + alias
        if opts.assign and value is not None:
            flags.append(f"{alias}{opts.assign}{value}")
        elif value is not None:
            flags.extend((alias, value))
        else:
            flags.append(alias)

    def slot(index: int, value: Any) -> None:
        while len(positionals) <= index:
            positionals.append(None)
        positionals[index] = value

    true_token, false_token = opts.no_flag_values

    for key, value in fields.items():
        if not isinstance(key, str) or key == "splat":
            continue

        if key == "*":
            if isinstance(value, str):
                positionals.append(value)
            elif isinstance(value, (list, tuple)):
                positionals.extend(value)
            continue

        if key in argument_names:
            index = argument_names.index(key)
            if value:
                if isinstance(value, (list, tuple)):
                    for item in value:
                        slot(index, _format_value(item))
                        index += 1
                else:
                    slot(index, _format_value(value))
            continue

        if key == "--":
            if not isinstance(value, (list, tuple)):
                raise TypeError(f"Expected key `--` to be a list, got {type(value).__name__}")
            extra = list(value)
            continue

        if key == "_":
            if isinstance(value, str):
                remainder = [value]
                continue
            if not isinstance(value, (list, tuple)):
                raise TypeError(f"Expected key `_` to be a list, got {type(value).__name__}")
            remainder = list(value)
            continue

        if opts.excludes and _matches(opts.excludes, key):
            continue
        if opts.includes is not None and not _matches(opts.includes, key):
            continue

        push = push_option
        if key in opts.aliases:
            key = opts.aliases[key]
            push = push_alias

        if value is None:
            continue

        if isinstance(value, bool):
            if value and not opts.ignore_true:
                if is_no_flag(key):
                    push(key, true_token)
                else:
                    push(key)
            elif not value and not opts.ignore_false:
                if is_no_flag(key):
                    push(key, false_token)
                else:
                    push(f"no-{key}")
            continue

        if isinstance(value, str):
            push(key, value if value else None)
            continue

        if isinstance(value, (int, float)):
            if isinstance(value, float) and math.isnan(value):
                continue
            push(key, _format_value(value))
            continue

        if isinstance(value, (list, tuple)):
            for item in value:
                push(key, _format_value(item))

    argv = list(commands)
    normalized: list[str] = []
    for arg in positionals:
        if not arg:
            continue
        if isinstance(arg, (list, tuple)):
            normalized.extend(_format_value(a) for a in arg)
        else:
            normalized.append(_format_value(arg))

    if not opts.append_arguments:
        argv.extend(normalized)
    argv.extend(flags)
    if opts.append_arguments:
        argv.extend(normalized)
    argv.extend(_format_value(a) for a in remainder)
    if extra:
        argv.append("--")
        argv.extend(_format_value(a) for a in extra)
    return argv
