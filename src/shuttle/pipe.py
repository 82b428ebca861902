"""Chains of processes connected stdout to stdin."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Generator
from typing import Any

from shuttle.exceptions import PipeError
from shuttle.process import ChildProcess, read_all
from shuttle.result import Output
from shuttle.types import Stdio

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 65536

# (file, args, options) -> descriptor with an async ``spawn()``
StageFactory = Callable[..., Any]


class Pipe:
    """An ordered chain of stages.

    Each stage is either a not-yet-spawned command descriptor or an
    already running :class:`ChildProcess`.  Only the final stage's
    :class:`Output` is surfaced.
    """

    def __init__(
        self,
        head: Any,
        factory: StageFactory | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._stages: list[Any] = [head]
        self._factory = factory
        self.chunk_size = chunk_size

    @property
    def stages(self) -> list[Any]:
        return list(self._stages)

    def pipe(self, next_stage: Any) -> Pipe:
        if not isinstance(next_stage, ChildProcess):
            next_stage.options.stdin = Stdio.PIPED
            next_stage.options.stdout = Stdio.PIPED
        self._stages.append(next_stage)
        logger.debug("Attached pipe stage %d: %r", len(self._stages) - 1, next_stage)
        return self

    def pipe_command(self, file: str, args: Any = None, options: Any = None) -> Pipe:
        factory = self._factory
        if factory is None:
            from shuttle.command import Command

            factory = Command
        return self.pipe(factory(file, args, options))

    async def output(self) -> Output:
        """Run every stage and return the final stage's output."""
        children: list[ChildProcess] = []
        tasks: list[asyncio.Task] = []
        transfers: list[asyncio.Task] = []
        try:
            for index, stage in enumerate(self._stages):
                child = stage if isinstance(stage, ChildProcess) else await stage.spawn()
                children.append(child)
                if index == 0:
                    continue
                prev = children[index - 1]
                if prev.stdout is None or child.stdin is None:
                    raise PipeError(
                        f"Stage {index} ({child.file}) cannot be connected: "
                        "stdout and stdin must both be piped",
                        stage=index,
                        file=child.file,
                    )
                transfers.append(asyncio.create_task(self._transfer(prev, child, index)))
                if prev.stderr is not None:
                    tasks.append(asyncio.create_task(read_all(prev.stderr)))

            result = await children[-1].output()
            await asyncio.gather(*transfers)
            for child in children[:-1]:
                await child.wait()
            return result
        finally:
            for task in [*transfers, *tasks]:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*transfers, *tasks, return_exceptions=True)
            for child in children:
                await child.aclose()

    async def _transfer(self, source: ChildProcess, sink: ChildProcess, stage: int) -> None:
        reader = source.stdout
        writer = sink.stdin
        try:
            while True:
                chunk = await reader.read(self.chunk_size)
                if not chunk:
                    break
                writer.write(chunk)
                await writer.drain()
        except (BrokenPipeError, ConnectionResetError):
            logger.debug("Stage %d (%s) stopped reading its input", stage, sink.file)
        except Exception as e:
            raise PipeError(
                f"Pipe transfer into stage {stage} ({sink.file}) failed: {e}",
                stage=stage,
                file=sink.file,
            ) from e
        finally:
            source.close_stdout()
            await sink.close_stdin()

    def __await__(self) -> Generator[Any, None, Output]:
        return self.output().__await__()
