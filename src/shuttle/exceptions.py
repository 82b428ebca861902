"""Shuttle exception hierarchy.

Provides a structured exception tree so catch blocks can be specific
and callers can distinguish between resolution, launch, validation
and pipe failures.
"""

from __future__ import annotations

from collections.abc import Sequence


class ShuttleError(Exception):
    """Base for all Shuttle exceptions."""

    def __init__(
        self,
        message: str,
        *,
        file: str | None = None,
        argv: Sequence[str] | None = None,
        exit_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.file = file
        self.argv = list(argv) if argv is not None else None
        self.exit_code = exit_code


class NotFoundOnPathError(ShuttleError):
    """Executable could not be found on PATH."""

    def __init__(
        self,
        exe: str,
        message: str | None = None,
        *,
        argv: Sequence[str] | None = None,
    ) -> None:
        super().__init__(message or f"Executable not found on PATH: {exe}", file=exe, argv=argv)
        self.exe = exe


class LaunchError(ShuttleError):
    """The host refused to start the process."""


class CommandError(ShuttleError):
    """A finished process failed validation."""


class PipeError(ShuttleError):
    """Transfer between two pipe stages failed."""

    def __init__(self, message: str, *, stage: int, file: str | None = None) -> None:
        super().__init__(message, file=file)
        self.stage = stage


class ConfigError(ShuttleError):
    """Raised when configuration loading or validation fails."""
