"""Shell and script-interpreter commands.

Inline script text is written to a temporary file when the shell has a
script extension, then executed as a file.  A generated file is deleted
on every exit path; a file supplied by the caller is never touched.
"""

from __future__ import annotations

import logging
import os
import sys
import tempfile
from collections.abc import Mapping, Sequence
from typing import Any

from shuttle.command import ArgSource, Command, convert_command_args
from shuttle.launcher import ProcessLauncher
from shuttle.process import ChildProcess
from shuttle.result import Output
from shuttle.types import CommandOptions

logger = logging.getLogger(__name__)


def _remove_script(path: str | None) -> None:
    if path is None:
        return
    try:
        os.unlink(path)
    except FileNotFoundError:
        return
    logger.debug("Removed temporary script %s", path)


class ShellCommand(Command):
    """Run *script* with the shell executable *exe*."""

    def __init__(
        self,
        exe: str,
        script: str,
        *,
        shell_args: Sequence[str] | None = None,
        args: ArgSource = None,
        is_file: bool | None = None,
        options: CommandOptions | Mapping[str, Any] | None = None,
        launcher: ProcessLauncher | None = None,
    ) -> None:
        super().__init__(exe, args, options, launcher=launcher)
        self.script = script
        self.shell_args = list(shell_args) if shell_args is not None else None
        self.is_file = is_file

    @property
    def ext(self) -> str:
        """Script file extension the shell expects; empty for inline-only shells."""
        return ""

    def get_shell_args(self, script: str, is_file: bool) -> list[str]:
        args = list(self.shell_args or [])
        args.append(script)
        return args

    def get_script_file(self) -> str | None:
        """Return the script path when the script already names a file."""
        if self.is_file:
            return self.script
        if "\n" not in self.script and self.ext and self.script.rstrip().endswith(self.ext):
            return self.script
        return None

    def to_args(self) -> list[str]:
        file = self.get_script_file()
        if file is None:
            return [self.file, *self.get_shell_args(self.script, False)]
        return [self.file, *self.get_shell_args(file, True), *convert_command_args(self.args)]

    def _materialize(self) -> tuple[list[str], str | None]:
        """Return the argv to launch and the path of any generated script."""
        file = self.get_script_file()
        generated = None
        if file is None and self.ext:
            fd, generated = tempfile.mkstemp(suffix=self.ext, prefix="shuttle-")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(self.script)
            logger.debug("Wrote temporary script %s", generated)
            file = generated
        if file is None:
            return self.get_shell_args(self.script, False), None
        argv = self.get_shell_args(file, True)
        argv.extend(convert_command_args(self.args))
        return argv, generated

    async def _execute(self, **overrides: Any) -> Output:
        argv, generated = self._materialize()
        try:
            return await self.launcher.output(self._output_invocation(argv, **overrides))
        finally:
            _remove_script(generated)

    def _execute_sync(self, **overrides: Any) -> Output:
        argv, generated = self._materialize()
        try:
            return self.launcher.output_sync(self._output_invocation(argv, **overrides))
        finally:
            _remove_script(generated)

    async def spawn(self) -> ChildProcess:
        argv, generated = self._materialize()
        try:
            child = await self.launcher.spawn(self._invocation(argv))
        except BaseException:
            _remove_script(generated)
            raise
        if generated is not None:
            child.add_cleanup(lambda: _remove_script(generated))
        return child

    def _new_stage(self, file, args=None, options=None) -> Command:
        return Command(file, args, options, launcher=self._launcher)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.file!r}, {self.script!r})"


class Bash(ShellCommand):
    def __init__(self, script: str, *, exe: str = "bash", **kwargs: Any) -> None:
        kwargs.setdefault("shell_args", ["--noprofile", "--norc", "-e", "-o", "pipefail"])
        super().__init__(exe, script, **kwargs)

    @property
    def ext(self) -> str:
        return ".sh"


class Sh(ShellCommand):
    def __init__(self, script: str, *, exe: str = "sh", **kwargs: Any) -> None:
        kwargs.setdefault("shell_args", ["-e"])
        super().__init__(exe, script, **kwargs)

    @property
    def ext(self) -> str:
        return ".sh"


class Pwsh(ShellCommand):
    """PowerShell; files run with ``-File``, text with ``-Command``."""

    def __init__(self, script: str, *, exe: str = "pwsh", **kwargs: Any) -> None:
        kwargs.setdefault(
            "shell_args",
            ["-NoProfile", "-NonInteractive", "-NoLogo", "-ExecutionPolicy", "ByPass"],
        )
        super().__init__(exe, script, **kwargs)

    @property
    def ext(self) -> str:
        return ".ps1"

    def get_shell_args(self, script: str, is_file: bool) -> list[str]:
        args = list(self.shell_args or [])
        args.extend(("-File" if is_file else "-Command", script))
        return args


class Python(ShellCommand):
    def __init__(self, script: str, *, exe: str = sys.executable, **kwargs: Any) -> None:
        super().__init__(exe, script, **kwargs)

    @property
    def ext(self) -> str:
        return ".py"

    def get_shell_args(self, script: str, is_file: bool) -> list[str]:
        args = list(self.shell_args or [])
        if not is_file:
            args.append("-c")
        args.append(script)
        return args


SHELLS: dict[str, type[ShellCommand]] = {
    "bash": Bash,
    "sh": Sh,
    "pwsh": Pwsh,
    "python": Python,
}


def get_shell(name: str) -> type[ShellCommand]:
    try:
        return SHELLS[name]
    except KeyError:
        raise ValueError(
            f"Unknown shell {name!r}; expected one of {', '.join(sorted(SHELLS))}"
        ) from None
