"""Executable discovery on PATH.

Lookups consult any prepended directories first, then ``PATH``.  On
Windows ``shutil.which`` applies the ``PATHEXT`` extension rules.  Hits
are stored in a process-wide cache that only ever grows; misses are
never cached so an executable installed later is still found.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

logger = logging.getLogger(__name__)

# PATH scans stat every directory entry; async lookups run them here.
_LOOKUP_EXECUTOR = ThreadPoolExecutor(max_workers=4, thread_name_prefix="shuttle-which")

_cache: dict[tuple[str, tuple[str, ...]], str] = {}
_cache_lock = threading.Lock()


def clear_cache() -> None:
    """Drop all cached lookups."""
    with _cache_lock:
        _cache.clear()


def _search_path(prepend: Sequence[str]) -> str:
    dirs = [str(Path(p).expanduser().resolve()) for p in prepend if p]
    system = os.environ.get("PATH", os.defpath)
    dirs.extend(
        os.path.expandvars(segment)
        for segment in system.split(os.pathsep)
        if segment
    )
    return os.pathsep.join(dirs)


class PathResolver:
    """Resolve executable names to absolute paths."""

    def __init__(self, search_paths: Sequence[str] = (), use_cache: bool = True) -> None:
        self.search_paths = tuple(search_paths)
        self.use_cache = use_cache

    def find(self, name: str, prepend_path: Sequence[str] = ()) -> str | None:
        """Return the absolute path of *name*, or ``None`` when not found."""
        if not name or not name.strip():
            raise ValueError("Executable name cannot be empty")

        prepend = tuple(prepend_path) + self.search_paths
        key = (name, prepend)
        if self.use_cache:
            cached = _cache.get(key)
            if cached is not None:
                return cached

        if os.path.isabs(name):
            location = name if os.path.isfile(name) else None
        else:
            location = shutil.which(name, path=_search_path(prepend))
            if location is not None:
                location = os.path.abspath(location)

        if location is None:
            logger.debug("Executable %s not found on PATH", name)
            return None

        if self.use_cache:
            with _cache_lock:
                _cache.setdefault(key, location)
        return location

    async def find_async(self, name: str, prepend_path: Sequence[str] = ()) -> str | None:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_LOOKUP_EXECUTOR, self.find, name, tuple(prepend_path))


_default_resolver = PathResolver()


def get_resolver() -> PathResolver:
    return _default_resolver


def set_resolver(resolver: PathResolver) -> None:
    """Replace the resolver used by descriptors created without one."""
    global _default_resolver
    _default_resolver = resolver


def which_sync(
    name: str,
    prepend_path: Sequence[str] = (),
    use_cache: bool = True,
) -> str | None:
    return PathResolver(use_cache=use_cache).find(name, prepend_path)


async def which(
    name: str,
    prepend_path: Sequence[str] = (),
    use_cache: bool = True,
) -> str | None:
    return await PathResolver(use_cache=use_cache).find_async(name, prepend_path)
