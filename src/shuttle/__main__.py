"""CLI entry point for Shuttle."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
import yaml

from shuttle import __version__
from shuttle.command import Command
from shuttle.config import Config, ConfigError, load_config
from shuttle.exceptions import ShuttleError
from shuttle.launcher import SubprocessLauncher
from shuttle.resolver import PathResolver
from shuttle.result import Output
from shuttle.shell import get_shell
from shuttle.splatting import SplatOptions, splat
from shuttle.tokenize import join_args, split_arguments
from shuttle.types import CommandOptions

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _echo_command(path: str, argv: list[str]) -> None:
    click.echo(f"$ {join_args([path, *argv])}", err=True)


def _parse_env(pairs: tuple[str, ...]) -> dict[str, str] | None:
    if not pairs:
        return None
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--env")
        env[key] = value
    return env


def _options(ctx: click.Context, cwd: Path | None = None, env: tuple[str, ...] = ()) -> CommandOptions:
    return CommandOptions(
        cwd=str(cwd) if cwd is not None else None,
        env=_parse_env(env),
        log=ctx.obj["log_hook"],
    )


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _finish(ctx: click.Context, result: Output, check: bool) -> None:
    if check and not result.success:
        _fail(f"{result.file} exited with code {result.code}")
    ctx.exit(result.code)


_passthrough = {"ignore_unknown_options": True, "allow_interspersed_args": False}


@click.group()
@click.version_option(version=__version__, prog_name="shuttle")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to shuttle.toml configuration file.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, log_level: str | None) -> None:
    """Shuttle: run processes, capture their output and chain them."""
    ctx.ensure_object(dict)
    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    logging.basicConfig(level=(log_level or config.logging.level).upper(), format=_LOG_FORMAT)
    ctx.obj["config"] = config
    ctx.obj["launcher"] = SubprocessLauncher(
        PathResolver(config.resolver.search_paths, use_cache=config.resolver.use_cache)
    )
    ctx.obj["log_hook"] = _echo_command if config.logging.echo_commands else None


@cli.command(context_settings=_passthrough)
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--cwd", type=click.Path(exists=True, file_okay=False, path_type=Path), default=None)
@click.option("--env", "env", multiple=True, help="Extra environment variable, KEY=VALUE.")
@click.option("--check", is_flag=True, help="Report a non-zero exit code as an error.")
@click.pass_context
def run(ctx: click.Context, command: tuple[str, ...], cwd, env, check: bool) -> None:
    """Run COMMAND with inherited stdio and exit with its exit code."""
    cmd = Command(command[0], list(command[1:]), _options(ctx, cwd, env), launcher=ctx.obj["launcher"])
    try:
        result = cmd.run_sync()
    except ShuttleError as e:
        _fail(str(e))
    _finish(ctx, result, check)


@cli.command(context_settings=_passthrough)
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--cwd", type=click.Path(exists=True, file_okay=False, path_type=Path), default=None)
@click.option("--env", "env", multiple=True, help="Extra environment variable, KEY=VALUE.")
@click.option("--json", "as_json", is_flag=True, help="Print a JSON record of the result.")
@click.option("--lines", "as_lines", is_flag=True, help="Print stdout lines as a JSON array.")
@click.option("--check", is_flag=True, help="Report a non-zero exit code as an error.")
@click.pass_context
def output(ctx: click.Context, command, cwd, env, as_json: bool, as_lines: bool, check: bool) -> None:
    """Run COMMAND capturing stdout and stderr."""
    cmd = Command(command[0], list(command[1:]), _options(ctx, cwd, env), launcher=ctx.obj["launcher"])
    try:
        result = cmd.output_sync()
    except ShuttleError as e:
        _fail(str(e))

    if as_json:
        click.echo(json.dumps({
            "file": result.file,
            "args": result.args,
            "code": result.code,
            "signal": result.signal,
            "success": result.success,
            "stdout": result.text(),
            "stderr": result.error_text(),
        }, indent=2))
    elif as_lines:
        click.echo(json.dumps(result.lines()))
    else:
        click.echo(result.text(), nl=False)
        if result.stderr:
            click.echo(result.error_text(), nl=False, err=True)
    _finish(ctx, result, check)


@cli.command()
@click.argument("stages", nargs=-1, required=True)
@click.option("--check", is_flag=True, help="Report a non-zero exit code as an error.")
@click.pass_context
def pipe(ctx: click.Context, stages: tuple[str, ...], check: bool) -> None:
    """Chain STAGES, each a command line, stdout to stdin.

    Example: shuttle pipe "printf 'b\\na\\n'" "sort"
    """
    config: Config = ctx.obj["config"]
    commands = []
    for stage in stages:
        tokens = split_arguments(stage)
        if not tokens:
            raise click.BadParameter("empty pipe stage", param_hint="STAGES")
        commands.append(Command(tokens[0], tokens[1:], _options(ctx), launcher=ctx.obj["launcher"]))

    head, *rest = commands
    chain = head.pipe(rest[0]) if rest else None
    for stage_cmd in rest[1:]:
        chain.pipe(stage_cmd)
    if chain is not None:
        chain.chunk_size = config.pipe.chunk_size

    try:
        result = asyncio.run(chain.output() if chain is not None else head.output())
    except ShuttleError as e:
        _fail(str(e))
    click.echo(result.text(), nl=False)
    _finish(ctx, result, check)


@cli.command()
@click.argument("script")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option("--shell", "shell_name", default=None, help="Shell to use: bash, sh, pwsh or python.")
@click.option("--cwd", type=click.Path(exists=True, file_okay=False, path_type=Path), default=None)
@click.pass_context
def script(ctx: click.Context, script: str, args, shell_name: str | None, cwd) -> None:
    """Run SCRIPT (inline text or a file path) with a shell."""
    config: Config = ctx.obj["config"]
    try:
        shell_cls = get_shell(shell_name or config.shell.default)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--shell") from e

    is_file = "\n" not in script and Path(script).is_file()
    cmd = shell_cls(
        script,
        args=list(args),
        is_file=is_file or None,
        options=_options(ctx, cwd),
        launcher=ctx.obj["launcher"],
    )
    try:
        result = cmd.run_sync()
    except ShuttleError as e:
        _fail(str(e))
    ctx.exit(result.code)


@cli.command()
@click.argument("text")
def split(text: str) -> None:
    """Print the argv tokens of TEXT as a JSON array."""
    click.echo(json.dumps(split_arguments(text)))


@cli.command("splat")
@click.argument("mapping")
@click.option("--assign", default=None, help="Join flag and value with this string.")
@click.option("--prefix", default="--", show_default=True)
@click.option("--append-arguments", is_flag=True, help="Put positional values after flags.")
@click.option("--argument-name", "argument_names", multiple=True, help="Key rendered positionally.")
def splat_command(mapping: str, assign, prefix: str, append_arguments: bool, argument_names) -> None:
    """Print the argv for MAPPING (YAML or JSON) as a JSON array."""
    try:
        data = yaml.safe_load(mapping)
    except yaml.YAMLError as e:
        raise click.BadParameter(f"not valid YAML or JSON: {e}", param_hint="MAPPING") from e
    if not isinstance(data, dict):
        raise click.BadParameter("expected a mapping", param_hint="MAPPING")

    options = SplatOptions(
        assign=assign,
        prefix=prefix,
        append_arguments=append_arguments,
        argument_names=list(argument_names),
    )
    try:
        argv = splat(data, options)
    except TypeError as e:
        raise click.BadParameter(str(e), param_hint="MAPPING") from e
    click.echo(json.dumps(argv))


@cli.command()
@click.argument("name")
@click.pass_context
def which(ctx: click.Context, name: str) -> None:
    """Print the resolved path of executable NAME."""
    path = ctx.obj["launcher"].resolver.find(name)
    if path is None:
        _fail(f"{name} not found on PATH")
    click.echo(path)


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
