"""Opt-in timing diagnostics for process executions.

Set ``SHUTTLE_LATENCY_DIAGNOSTICS=1`` to log one INFO line per finished
execution with its duration, argument count and exit code.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Iterator
from contextlib import contextmanager

from shuttle.result import Output
from shuttle.types import Invocation

_TRUTHY = {"1", "true", "yes", "on"}
ENV_VAR = "SHUTTLE_LATENCY_DIAGNOSTICS"


def diagnostics_enabled() -> bool:
    raw = os.environ.get(ENV_VAR, "")
    return raw.strip().lower() in _TRUTHY


class ExecutionTiming:
    """Timing record for one invocation; the exit code is filled in on success."""

    def __init__(self, invocation: Invocation) -> None:
        self.file = invocation.file
        self.argc = len(invocation.args)
        self.code: int | None = None
        self.started = time.monotonic()
        self.elapsed = 0.0

    def record(self, output: Output) -> Output:
        self.code = output.code
        return output

    def stop(self) -> None:
        self.elapsed = max(0.0, time.monotonic() - self.started)

    def describe(self) -> str:
        code = "error" if self.code is None else str(self.code)
        return f"file={self.file} argc={self.argc} code={code}"


@contextmanager
def timed_execution(
    logger: logging.Logger, invocation: Invocation, *, event: str
) -> Iterator[ExecutionTiming]:
    """Time the enclosed execution of *invocation*.

    The caller passes its :class:`Output` through :meth:`ExecutionTiming.record`
    so the logged line carries the exit code; a block that raises is
    logged with ``code=error``.
    """
    timing = ExecutionTiming(invocation)
    try:
        yield timing
    finally:
        timing.stop()
        if diagnostics_enabled():
            logger.info(
                "latency event=%s duration_ms=%.2f %s",
                event,
                timing.elapsed * 1000.0,
                timing.describe(),
            )
