"""Process launchers.

A :class:`ProcessLauncher` turns an :class:`~shuttle.types.Invocation`
into a running :class:`~shuttle.process.ChildProcess` or a finished
:class:`~shuttle.result.Output`.  Descriptors receive a launcher by
injection; :func:`set_launcher` replaces the process-wide default.
"""

from __future__ import annotations

import abc
import asyncio
import logging
import os
import subprocess
import sys
from typing import Any

from shuttle.exceptions import LaunchError, NotFoundOnPathError
from shuttle.process import ChildProcess, status_from_returncode
from shuttle.resolver import PathResolver, get_resolver
from shuttle.result import Output
from shuttle.types import Invocation, LogHook, Stdio
from shuttle.utils.latency import timed_execution

logger = logging.getLogger(__name__)

_STREAM_LIMIT = 2 ** 16

_STDIO_MAP = {
    None: None,
    Stdio.INHERIT: None,
    Stdio.PIPED: subprocess.PIPE,
    Stdio.NULL: subprocess.DEVNULL,
}


class ProcessLauncher(abc.ABC):
    """Spawns processes described by an invocation."""

    @abc.abstractmethod
    async def spawn(self, invocation: Invocation) -> ChildProcess:
        """Start the process and return a handle."""

    async def output(self, invocation: Invocation) -> Output:
        """Run to completion, collecting piped streams."""
        child = await self.spawn(invocation)
        try:
            await child.close_stdin()
            return await child.output()
        finally:
            await child.aclose()

    @abc.abstractmethod
    def output_sync(self, invocation: Invocation) -> Output:
        """Blocking variant of :meth:`output`."""


class SubprocessLauncher(ProcessLauncher):
    """Launcher backed by asyncio subprocess transports and ``subprocess.Popen``."""

    def __init__(self, resolver: PathResolver | None = None) -> None:
        self._resolver = resolver

    @property
    def resolver(self) -> PathResolver:
        return self._resolver or get_resolver()

    def resolve(self, file: str, argv: list[str] | None = None) -> str:
        path = self.resolver.find(file)
        if path is None:
            raise NotFoundOnPathError(file, argv=argv)
        return path

    async def resolve_async(self, file: str, argv: list[str] | None = None) -> str:
        path = await self.resolver.find_async(file)
        if path is None:
            raise NotFoundOnPathError(file, argv=argv)
        return path

    @staticmethod
    def _popen_kwargs(invocation: Invocation) -> dict[str, Any]:
        options = invocation.options
        kwargs: dict[str, Any] = {
            "stdin": _STDIO_MAP[options.stdin],
            "stdout": _STDIO_MAP[options.stdout],
            "stderr": _STDIO_MAP[options.stderr],
        }
        if options.cwd is not None:
            kwargs["cwd"] = options.cwd
        if options.clear_env:
            kwargs["env"] = dict(options.env or {})
        elif options.env:
            kwargs["env"] = {**os.environ, **options.env}
        if options.uid is not None:
            kwargs["user"] = options.uid
        if options.gid is not None:
            kwargs["group"] = options.gid
        return kwargs

    @staticmethod
    def _announce(hook: LogHook | None, path: str, argv: list[str]) -> None:
        logger.debug("Launching %s %s", path, argv)
        if hook is not None:
            hook(path, list(argv))

    async def spawn(self, invocation: Invocation) -> ChildProcess:
        argv = invocation.argv
        path = await self.resolve_async(invocation.file, argv)
        options = invocation.options
        if options.windows_raw_arguments:
            logger.debug("Raw Windows arguments are only applied to blocking launches")
        self._announce(options.log, path, argv)

        loop = asyncio.get_running_loop()
        try:
            transport, protocol = await loop.subprocess_exec(
                lambda: asyncio.subprocess.SubprocessStreamProtocol(
                    limit=_STREAM_LIMIT, loop=loop
                ),
                path,
                *argv,
                **self._popen_kwargs(invocation),
            )
        except OSError as e:
            raise LaunchError(
                f"Failed to launch {path}: {e}", file=invocation.file, argv=argv
            ) from e

        process = asyncio.subprocess.Process(transport, protocol, loop)
        child = ChildProcess(process, transport, file=invocation.file, args=argv)
        logger.debug("Spawned %s (pid %d)", invocation.file, child.pid)

        if options.signal is not None:
            remove = options.signal.add_listener(
                lambda: loop.call_soon_threadsafe(child.kill)
            )
            child.add_cleanup(remove)
        return child

    async def output(self, invocation: Invocation) -> Output:
        with timed_execution(logger, invocation, event="output") as timing:
            return timing.record(await super().output(invocation))

    def output_sync(self, invocation: Invocation) -> Output:
        argv = invocation.argv
        path = self.resolve(invocation.file, argv)
        options = invocation.options
        self._announce(options.log, path, argv)

        cmdline: list[str] | str = [path, *argv]
        if options.windows_raw_arguments and sys.platform == "win32":
            cmdline = " ".join(cmdline)

        with timed_execution(logger, invocation, event="output_sync") as timing:
            try:
                popen = subprocess.Popen(cmdline, **self._popen_kwargs(invocation))
            except OSError as e:
                raise LaunchError(
                    f"Failed to launch {path}: {e}", file=invocation.file, argv=argv
                ) from e

            remove = None
            if options.signal is not None:
                remove = options.signal.add_listener(lambda: _terminate(popen))
            try:
                stdout, stderr = popen.communicate()
            except BaseException:
                popen.kill()
                popen.wait()
                raise
            finally:
                if remove is not None:
                    remove()

            status = status_from_returncode(popen.returncode)
            logger.debug("Process %s exited with %d", invocation.file, status.code)
            return timing.record(
                Output(
                    stdout=stdout or b"",
                    stderr=stderr or b"",
                    code=status.code,
                    signal=status.signal,
                    file=invocation.file,
                    args=argv,
                )
            )


def _terminate(popen: subprocess.Popen) -> None:
    try:
        popen.terminate()
    except ProcessLookupError:
        pass


_launcher: ProcessLauncher = SubprocessLauncher()
_log_hook: LogHook | None = None


def get_launcher() -> ProcessLauncher:
    return _launcher


def set_launcher(launcher: ProcessLauncher) -> None:
    """Replace the launcher used by descriptors created without one."""
    global _launcher
    _launcher = launcher


def get_logger() -> LogHook | None:
    return _log_hook


def set_logger(hook: LogHook | None) -> None:
    """Set the logging hook copied into every new descriptor."""
    global _log_hook
    _log_hook = hook
