"""Handle to a spawned child process."""

from __future__ import annotations

import asyncio
import inspect
import logging
import signal as _signal
from collections.abc import Callable
from typing import Any

from shuttle.exceptions import ShuttleError
from shuttle.result import Output
from shuttle.types import CommandStatus

logger = logging.getLogger(__name__)

_READ_CHUNK = 8192

Cleanup = Callable[[], Any]


async def read_all(stream: asyncio.StreamReader | None) -> bytes:
    """Read *stream* to end-of-file."""
    if stream is None:
        return b""
    chunks: list[bytes] = []
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def status_from_returncode(returncode: int) -> CommandStatus:
    """Map a host return code to a status.

    A negative code means the process was killed by that signal; it is
    reported shell style as ``128 + signum``.
    """
    if returncode >= 0:
        return CommandStatus(code=returncode)
    signum = -returncode
    try:
        name = _signal.Signals(signum).name
    except ValueError:
        name = str(signum)
    return CommandStatus(code=128 + signum, signal=name)


def resolve_signal(sig: str | int) -> int:
    """Return the signal number for *sig*, falling back to SIGTERM."""
    if isinstance(sig, int):
        return sig
    name = sig.upper()
    if not name.startswith("SIG"):
        name = "SIG" + name
    value = getattr(_signal, name, None)
    if isinstance(value, int):
        return int(value)
    logger.debug("Signal %s unsupported on this platform, using SIGTERM", sig)
    return int(_signal.SIGTERM)


class ChildProcess:
    """A running (or finished) child process.

    ``stdin`` is a :class:`asyncio.StreamWriter` and ``stdout`` and
    ``stderr`` are :class:`asyncio.StreamReader` instances when the
    stream was piped, otherwise ``None``.
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        transport: asyncio.SubprocessTransport,
        *,
        file: str,
        args: list[str],
    ) -> None:
        self._process = process
        self._transport = transport
        self.file = file
        self.args = list(args)
        self._cleanups: list[Cleanup] = []
        self._closed = False

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def stdin(self) -> asyncio.StreamWriter | None:
        return self._process.stdin

    @property
    def stdout(self) -> asyncio.StreamReader | None:
        return self._process.stdout

    @property
    def stderr(self) -> asyncio.StreamReader | None:
        return self._process.stderr

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    async def wait(self) -> CommandStatus:
        returncode = await self._process.wait()
        status = status_from_returncode(returncode)
        logger.debug("Process %s (pid %d) exited with %d", self.file, self.pid, status.code)
        return status

    async def output(self) -> Output:
        """Drain piped streams while waiting for exit.

        Both streams are read concurrently with the wait so neither can
        fill its pipe and stall the child.
        """
        try:
            stdout, stderr, status = await asyncio.gather(
                read_all(self.stdout),
                read_all(self.stderr),
                self.wait(),
            )
        finally:
            await self._run_cleanups()
        return Output(
            stdout=stdout,
            stderr=stderr,
            code=status.code,
            signal=status.signal,
            file=self.file,
            args=self.args,
        )

    async def write(self, data: bytes | str) -> None:
        if self.stdin is None:
            raise ShuttleError("stdin is not piped", file=self.file, argv=self.args)
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.stdin.write(data)
        await self.stdin.drain()

    async def close_stdin(self) -> None:
        writer = self.stdin
        if writer is None or writer.is_closing():
            return
        writer.close()
        try:
            await writer.wait_closed()
        except (BrokenPipeError, ConnectionResetError):
            pass

    def close_stdout(self) -> None:
        """Close the read end of stdout, even if unread data remains."""
        pipe = self._transport.get_pipe_transport(1)
        if pipe is not None and not pipe.is_closing():
            pipe.close()

    def kill(self, sig: str | int = "SIGTERM") -> None:
        if self._process.returncode is not None:
            return
        try:
            self._process.send_signal(resolve_signal(sig))
        except ProcessLookupError:
            pass

    def add_cleanup(self, callback: Cleanup) -> None:
        """Register *callback* to run once when the process is disposed."""
        self._cleanups.append(callback)

    async def _run_cleanups(self) -> None:
        cleanups, self._cleanups = self._cleanups, []
        for callback in cleanups:
            result = callback()
            if inspect.isawaitable(result):
                await result

    async def aclose(self) -> None:
        """Terminate if still running, reap, and run cleanups."""
        if self._closed:
            return
        self._closed = True
        try:
            if self._process.returncode is None:
                self.kill()
                await self._process.wait()
        finally:
            self._transport.close()
            await self._run_cleanups()

    async def __aenter__(self) -> ChildProcess:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None and self._process.returncode is None:
            await self.close_stdin()
            await self._process.wait()
        await self.aclose()

    def __repr__(self) -> str:
        return f"<ChildProcess file={self.file!r} pid={self.pid}>"
