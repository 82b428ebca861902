"""Reusable descriptions of a single program invocation.

A :class:`Command` is configured with fluent setters and executed with
one of its verbs.  Each execution takes an immutable snapshot of the
descriptor, so a command can be run repeatedly and reconfigured in
between without affecting runs already in flight.
"""

from __future__ import annotations

import os
from collections.abc import Generator, Mapping, Sequence
from typing import Any

from shuttle.cancel import CancelSignal
from shuttle.launcher import ProcessLauncher, get_launcher, get_logger
from shuttle.pipe import Pipe
from shuttle.process import ChildProcess
from shuttle.result import Output
from shuttle.splatting import splat
from shuttle.tokenize import split_arguments
from shuttle.types import CommandOptions, Invocation, LogHook, Stdio

ArgSource = str | Sequence[str] | Mapping[Any, Any] | None


def convert_command_args(source: ArgSource) -> list[str]:
    """Normalize an argument source to an argv list.

    Strings are tokenized, mappings are splatted and sequences are
    copied.
    """
    if source is None:
        return []
    if isinstance(source, str):
        return split_arguments(source)
    if isinstance(source, Mapping):
        return splat(source)
    return [str(arg) for arg in source]


def _coerce_options(options: CommandOptions | Mapping[str, Any] | None) -> CommandOptions:
    if options is None:
        return CommandOptions()
    if isinstance(options, CommandOptions):
        return options.copy()
    return CommandOptions(**options)


class Command:
    """Description of one program invocation."""

    def __init__(
        self,
        file: str,
        args: ArgSource = None,
        options: CommandOptions | Mapping[str, Any] | None = None,
        *,
        launcher: ProcessLauncher | None = None,
    ) -> None:
        self.file = file
        self.args = args
        self.options = _coerce_options(options)
        if self.options.log is None:
            self.options.log = get_logger()
        self._launcher = launcher

    @property
    def launcher(self) -> ProcessLauncher:
        return self._launcher or get_launcher()

    # -- fluent configuration -------------------------------------------

    def with_args(self, args: ArgSource) -> Command:
        self.args = args
        return self

    def with_cwd(self, cwd: str | os.PathLike) -> Command:
        self.options.cwd = str(cwd)
        return self

    def with_env(self, env: Mapping[str, str], *, clear: bool = False) -> Command:
        self.options.env = dict(env)
        self.options.clear_env = clear
        return self

    def with_uid(self, uid: int) -> Command:
        self.options.uid = uid
        return self

    def with_gid(self, gid: int) -> Command:
        self.options.gid = gid
        return self

    def with_signal(self, signal: CancelSignal) -> Command:
        self.options.signal = signal
        return self

    def with_stdin(self, stdio: Stdio | str) -> Command:
        self.options.stdin = Stdio.coerce(stdio)
        return self

    def with_stdout(self, stdio: Stdio | str) -> Command:
        self.options.stdout = Stdio.coerce(stdio)
        return self

    def with_stderr(self, stdio: Stdio | str) -> Command:
        self.options.stderr = Stdio.coerce(stdio)
        return self

    def with_log(self, hook: LogHook | None) -> Command:
        self.options.log = hook
        return self

    # -- introspection ---------------------------------------------------

    def to_args(self) -> list[str]:
        return [self.file, *self._argv()]

    def to_options(self) -> CommandOptions:
        return self.options

    def _argv(self) -> list[str]:
        return convert_command_args(self.args)

    def _invocation(self, argv: list[str] | None = None, **changes: Any) -> Invocation:
        if argv is None:
            argv = self._argv()
        return Invocation(
            file=self.file,
            args=tuple(argv),
            options=self.options.copy(**changes),
        )

    def _output_invocation(self, argv: list[str] | None = None, **overrides: Any) -> Invocation:
        options = self.options
        changes: dict[str, Any] = {
            "stdin": options.stdin or Stdio.INHERIT,
            "stdout": options.stdout or Stdio.PIPED,
            "stderr": options.stderr or Stdio.PIPED,
        }
        changes.update(overrides)
        return self._invocation(argv, **changes)

    # -- execution -------------------------------------------------------

    async def _execute(self, **overrides: Any) -> Output:
        return await self.launcher.output(self._output_invocation(**overrides))

    def _execute_sync(self, **overrides: Any) -> Output:
        return self.launcher.output_sync(self._output_invocation(**overrides))

    async def output(self) -> Output:
        """Run to completion; stdout and stderr default to captured."""
        return await self._execute()

    def output_sync(self) -> Output:
        return self._execute_sync()

    async def spawn(self) -> ChildProcess:
        """Start the process; streams without a disposition are inherited."""
        return await self.launcher.spawn(self._invocation())

    async def run(self) -> Output:
        """Run with stdout and stderr inherited from this process."""
        return await self._execute(stdout=Stdio.INHERIT, stderr=Stdio.INHERIT)

    def run_sync(self) -> Output:
        return self._execute_sync(stdout=Stdio.INHERIT, stderr=Stdio.INHERIT)

    async def _captured(self) -> Output:
        return await self._execute(stdout=Stdio.PIPED)

    async def text(self) -> str:
        return (await self._captured()).text()

    async def lines(self) -> list[str]:
        return (await self._captured()).lines()

    async def json(self) -> Any:
        return (await self._captured()).json()

    def __await__(self) -> Generator[Any, None, Output]:
        return self.output().__await__()

    # -- pipes -----------------------------------------------------------

    def _new_stage(
        self,
        file: str,
        args: ArgSource = None,
        options: CommandOptions | Mapping[str, Any] | None = None,
    ) -> Command:
        return type(self)(file, args, options, launcher=self._launcher)

    def pipe(self, next_stage: Command | ChildProcess) -> Pipe:
        """Feed this command's stdout into *next_stage*."""
        self.options.stdout = Stdio.PIPED
        self.options.stderr = Stdio.INHERIT
        return Pipe(self, factory=self._new_stage).pipe(next_stage)

    def pipe_command(
        self,
        file: str,
        args: ArgSource = None,
        options: CommandOptions | Mapping[str, Any] | None = None,
    ) -> Pipe:
        return self.pipe(self._new_stage(file, args, options))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.file!r}, {self._argv()!r})"


def _captured_options(options: dict[str, Any]) -> CommandOptions:
    options.setdefault("stdin", Stdio.INHERIT)
    options.setdefault("stdout", Stdio.PIPED)
    options.setdefault("stderr", Stdio.PIPED)
    return CommandOptions(**options)


def cmd(file: str, args: ArgSource = None, **options: Any) -> Command:
    """Create a :class:`Command` whose output is captured by default."""
    return Command(file, args, _captured_options(options))


def exec_(command_line: str, **options: Any) -> Command:
    """Create a :class:`Command` from one command-line string."""
    tokens = split_arguments(command_line)
    if not tokens:
        raise ValueError("Invalid command: empty command line")
    return Command(tokens[0], tokens[1:], _captured_options(options))


async def output(file: str, args: ArgSource = None, **options: Any) -> Output:
    return await Command(file, args, CommandOptions(**options)).output()


def output_sync(file: str, args: ArgSource = None, **options: Any) -> Output:
    return Command(file, args, CommandOptions(**options)).output_sync()


async def run(file: str, args: ArgSource = None, **options: Any) -> Output:
    return await Command(file, args, CommandOptions(**options)).run()


def run_sync(file: str, args: ArgSource = None, **options: Any) -> Output:
    return Command(file, args, CommandOptions(**options)).run_sync()


async def spawn(file: str, args: ArgSource = None, **options: Any) -> ChildProcess:
    return await Command(file, args, CommandOptions(**options)).spawn()
