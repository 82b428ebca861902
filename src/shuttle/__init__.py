"""Shuttle: run processes, capture their output and chain them through pipes."""

from shuttle.args_builder import ArgsBuilder
from shuttle.cancel import CancelSignal
from shuttle.command import (
    Command,
    cmd,
    convert_command_args,
    exec_,
    output,
    output_sync,
    run,
    run_sync,
    spawn,
)
from shuttle.exceptions import (
    CommandError,
    ConfigError,
    LaunchError,
    NotFoundOnPathError,
    PipeError,
    ShuttleError,
)
from shuttle.launcher import (
    ProcessLauncher,
    SubprocessLauncher,
    get_launcher,
    set_launcher,
    set_logger,
)
from shuttle.pipe import Pipe
from shuttle.process import ChildProcess
from shuttle.resolver import PathResolver, which, which_sync
from shuttle.result import Output
from shuttle.shell import Bash, Pwsh, Python, Sh, ShellCommand
from shuttle.splatting import SplatKeys, SplatOptions, splat
from shuttle.tokenize import join_args, split_arguments
from shuttle.types import CommandOptions, CommandStatus, Invocation, Stdio

__version__ = "0.1.0"

__all__ = [
    "ArgsBuilder",
    "Bash",
    "CancelSignal",
    "ChildProcess",
    "Command",
    "CommandError",
    "CommandOptions",
    "CommandStatus",
    "ConfigError",
    "Invocation",
    "LaunchError",
    "NotFoundOnPathError",
    "Output",
    "PathResolver",
    "Pipe",
    "PipeError",
    "ProcessLauncher",
    "Pwsh",
    "Python",
    "Sh",
    "ShellCommand",
    "ShuttleError",
    "SplatKeys",
    "SplatOptions",
    "Stdio",
    "SubprocessLauncher",
    "cmd",
    "convert_command_args",
    "exec_",
    "get_launcher",
    "join_args",
    "output",
    "output_sync",
    "run",
    "run_sync",
    "set_launcher",
    "set_logger",
    "spawn",
    "splat",
    "split_arguments",
    "which",
    "which_sync",
]
