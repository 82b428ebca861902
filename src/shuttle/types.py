"""Value types shared by descriptors, launchers and handles."""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shuttle.cancel import CancelSignal

# Called with the resolved executable path and the final argv.
LogHook = Callable[[str, list[str]], None]


class Stdio(str, enum.Enum):
    """Disposition of one standard stream."""

    INHERIT = "inherit"
    PIPED = "piped"
    NULL = "null"

    @classmethod
    def coerce(cls, value: Stdio | str | None) -> Stdio | None:
        if value is None or isinstance(value, Stdio):
            return value
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Invalid stdio disposition: {value!r}") from None


@dataclass
class CommandOptions:
    """Mutable spawn options owned by a command descriptor."""

    cwd: str | None = None
    env: dict[str, str] | None = None
    clear_env: bool = False
    uid: int | None = None
    gid: int | None = None
    signal: CancelSignal | None = None
    stdin: Stdio | None = None
    stdout: Stdio | None = None
    stderr: Stdio | None = None
    log: LogHook | None = None
    windows_raw_arguments: bool = False

    def __post_init__(self):
        self.stdin = Stdio.coerce(self.stdin)
        self.stdout = Stdio.coerce(self.stdout)
        self.stderr = Stdio.coerce(self.stderr)

    def copy(self, **changes) -> CommandOptions:
        """Return an independent copy; ``env`` is copied, not shared."""
        env = changes.pop("env", self.env)
        return dataclasses.replace(
            self, env=dict(env) if env is not None else None, **changes
        )


@dataclass(frozen=True)
class CommandStatus:
    """Exit status of a finished process."""

    code: int
    signal: str | None = None

    @property
    def success(self) -> bool:
        return self.code == 0


@dataclass(frozen=True)
class Invocation:
    """Immutable snapshot of one execution handed to a launcher."""

    file: str
    args: tuple[str, ...] = ()
    options: CommandOptions = field(default_factory=CommandOptions)

    @property
    def argv(self) -> list[str]:
        return list(self.args)
