"""Fluent argv builder."""

from __future__ import annotations

from typing import Any


class ArgsBuilder:
    """Build an argv from subcommands, flags, options and trailing args.

    Build order is subcommands, positional args, flags, options,
    positional args again when ``append_args`` is set, then ``--``
    followed by post args.
    """

    def __init__(
        self,
        *,
        prefix: str = "--",
        short_prefix: str = "-",
        assign: str | None = None,
        flags: list[str] | None = None,
        append_args: bool = False,
    ) -> None:
        self.prefix = prefix
        self.short_prefix = short_prefix
        self.assign = assign
        self.flags = list(flags or [])
        self.append_args = append_args
        self._commands: list[str] = []
        self._args: list[str] = []
        self._flags: list[str] = []
        self._options: dict[str, Any] = {}
        self._post_args: list[str] = []

    def args(self, *values: str) -> ArgsBuilder:
        self._args.extend(values)
        return self

    def subcommand(self, *values: str) -> ArgsBuilder:
        self._commands.extend(values)
        return self

    def flag(self, *names: str) -> ArgsBuilder:
        self._flags.extend(names)
        return self

    def option(self, name: str, value: Any, single_quote: bool = False) -> ArgsBuilder:
        """Set option *name*; the last value for a name wins."""
        self._options[name] = f"'{value}'" if single_quote else value
        return self

    def post_args(self, *values: str) -> ArgsBuilder:
        self._post_args.extend(values)
        return self

    def _name(self, key: str) -> str:
        if self.short_prefix and len(key) == 1:
            return self.short_prefix + key
        return self.prefix + key

    def build(self) -> list[str]:
        argv = list(self._commands)
        if not self.append_args:
            argv.extend(self._args)

        argv.extend(self._name(f) for f in self._flags)

        for key, value in self._options.items():
            if key in self.flags:
                if value:
                    argv.append(self._name(key))
                continue
            if self.assign:
                text = str(value)
                if (
                    isinstance(value, str)
                    and not text.startswith(("'", '"'))
                    and any(ch.isspace() for ch in text)
                ):
                    text = f'"{text}"'
                argv.append(f"{self._name(key)}{self.assign}{text}")
                continue
            argv.extend((self._name(key), str(value)))

        if self.append_args:
            argv.extend(self._args)
        if self._post_args:
            argv.append("--")
            argv.extend(self._post_args)
        return argv
