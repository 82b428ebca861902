"""Captured result of a finished process."""

from __future__ import annotations

import json as _json
import re
from collections.abc import Callable
from typing import Any

from shuttle.exceptions import CommandError

_UNSET = object()
_LINE_BREAK = re.compile(r"\r?\n")


def decode_utf8(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class Output:
    """Immutable snapshot of a finished process.

    Text, line and JSON views of either stream are decoded lazily the
    first time they are requested and memoized afterwards.
    """

    def __init__(
        self,
        *,
        stdout: bytes = b"",
        stderr: bytes = b"",
        code: int = 0,
        signal: str | None = None,
        file: str | None = None,
        args: list[str] | None = None,
    ) -> None:
        self._stdout = stdout
        self._stderr = stderr
        self._code = code
        self._signal = signal
        self._file = file
        self._args = tuple(args or ())
        self._text: Any = _UNSET
        self._lines: Any = _UNSET
        self._json: Any = _UNSET
        self._error_text: Any = _UNSET
        self._error_lines: Any = _UNSET
        self._error_json: Any = _UNSET

    @property
    def stdout(self) -> bytes:
        return self._stdout

    @property
    def stderr(self) -> bytes:
        return self._stderr

    @property
    def code(self) -> int:
        return self._code

    @property
    def signal(self) -> str | None:
        return self._signal

    @property
    def success(self) -> bool:
        return self._code == 0

    @property
    def file(self) -> str | None:
        return self._file

    @property
    def args(self) -> list[str]:
        return list(self._args)

    def text(self) -> str:
        if self._text is _UNSET:
            self._text = decode_utf8(self._stdout)
        return self._text

    def lines(self) -> list[str]:
        if self._lines is _UNSET:
            self._lines = _LINE_BREAK.split(self.text())
        return list(self._lines)

    def json(self) -> Any:
        """Parse stdout as JSON; decode errors propagate unchanged."""
        if self._json is _UNSET:
            self._json = _json.loads(self.text())
        return self._json

    def error_text(self) -> str:
        if self._error_text is _UNSET:
            self._error_text = decode_utf8(self._stderr)
        return self._error_text

    def error_lines(self) -> list[str]:
        if self._error_lines is _UNSET:
            self._error_lines = _LINE_BREAK.split(self.error_text())
        return list(self._error_lines)

    def error_json(self) -> Any:
        if self._error_json is _UNSET:
            self._error_json = _json.loads(self.error_text())
        return self._error_json

    def validate(
        self,
        predicate: Callable[[Output], bool] | None = None,
        fail_on_stderr: bool = False,
    ) -> Output:
        """Raise :class:`CommandError` unless the output is acceptable.

        The default predicate accepts exit code zero.  With
        *fail_on_stderr*, any captured stderr bytes also fail.
        Returns ``self`` so calls can be chained.
        """
        ok = predicate(self) if predicate is not None else self._code == 0
        if not ok:
            raise CommandError(
                f"Command {self._file} failed with exit code {self._code}",
                file=self._file,
                argv=self._args,
                exit_code=self._code,
            )
        if fail_on_stderr and self._stderr:
            raise CommandError(
                f"Command {self._file} wrote to stderr: {self.error_text().strip()}",
                file=self._file,
                argv=self._args,
                exit_code=self._code,
            )
        return self

    def __str__(self) -> str:
        return self.text()

    def __repr__(self) -> str:
        return f"Output(file={self._file!r}, code={self._code}, signal={self._signal!r})"
