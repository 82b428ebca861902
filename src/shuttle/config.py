"""Configuration loader for Shuttle.

Loads from shuttle.toml with sensible defaults when the file is absent.
Configuration is read once by the CLI and handed to the pieces that need
it; library callers pass settings explicitly instead.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from shuttle.exceptions import ConfigError

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "WARNING"
    echo_commands: bool = False


@dataclass(frozen=True)
class ResolverConfig:
    """Extra executable search directories, consulted before PATH."""

    search_paths: list[str] = field(default_factory=list)
    use_cache: bool = True


@dataclass(frozen=True)
class ShellConfig:
    default: str = "bash"


@dataclass(frozen=True)
class PipeConfig:
    chunk_size: int = 65536


@dataclass(frozen=True)
class Config:
    """Root configuration."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    shell: ShellConfig = field(default_factory=ShellConfig)
    pipe: PipeConfig = field(default_factory=PipeConfig)


def config_candidates() -> list[Path]:
    return [
        Path.cwd() / "shuttle.toml",
        Path.home() / ".shuttle" / "shuttle.toml",
    ]


def load_config(path: Path | None = None) -> Config:
    """Load configuration from a TOML file.

    If path is None, searches for shuttle.toml in the current directory
    then ~/.shuttle/.  Returns default config if no file is found.
    """
    if path is None:
        for candidate in config_candidates():
            if candidate.exists():
                path = candidate
                break

    if path is None or not path.exists():
        return Config()

    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e

    log_data = raw.get("logging", {})
    level = str(log_data.get("level", "WARNING")).upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(f"Invalid logging level in {path}: {level}")
    logging_cfg = LoggingConfig(
        level=level,
        echo_commands=bool(log_data.get("echo_commands", False)),
    )

    resolver_data = raw.get("resolver", {})
    raw_paths = resolver_data.get("search_paths", [])
    if not isinstance(raw_paths, list):
        raise ConfigError(f"resolver.search_paths must be a list in {path}")
    resolver = ResolverConfig(
        search_paths=[str(p) for p in raw_paths],
        use_cache=bool(resolver_data.get("use_cache", True)),
    )

    shell_data = raw.get("shell", {})
    shell = ShellConfig(default=str(shell_data.get("default", "bash")))

    pipe_data = raw.get("pipe", {})
    try:
        chunk_size = int(pipe_data.get("chunk_size", 65536))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"pipe.chunk_size must be an integer in {path}") from e
    if chunk_size <= 0:
        raise ConfigError(f"pipe.chunk_size must be positive in {path}")

    return Config(
        logging=logging_cfg,
        resolver=resolver,
        shell=shell,
        pipe=PipeConfig(chunk_size=chunk_size),
    )
