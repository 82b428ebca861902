"""Command-line tokenizer.

Splits a single command-line string into argv tokens without any shell
semantics: no globbing, no variable expansion, no redirection.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

_WHITESPACE = frozenset(" \t\r\n")
_QUOTES = frozenset("'\"")
_CONTINUATION_MARKERS = frozenset("\\`")

_NEEDS_DOUBLE_QUOTES = re.compile(r"[$']")
_NEEDS_SINGLE_QUOTES = re.compile(r"[\s\"]")


def _continuation_length(text: str, i: int) -> int:
    """Length of a line-continuation sequence starting at ``text[i]``.

    ``text[i]`` is whitespace. Returns 0 when no ``\\`` or backtick
    followed by LF or CRLF comes next.
    """
    marker = text[i + 1:i + 2]
    if marker not in _CONTINUATION_MARKERS:
        return 0
    if text[i + 2:i + 3] == "\n":
        return 3
    if text[i + 2:i + 4] == "\r\n":
        return 4
    return 0


def split_arguments(text: str) -> list[str]:
    """Split *text* into argv tokens.

    >>> split_arguments('hello "dog world"')
    ['hello', 'dog world']
    """
    tokens: list[str] = []
    buf: list[str] = []
    quote: str | None = None
    i = 0
    n = len(text)

    while i < n:
        c = text[i]

        if quote is not None:
            if c in _QUOTES and buf and buf[-1] == "\\":
                buf[-1] = c
                i += 1
                continue
            if c == quote:
                # Closing a quote always ends the token, even an empty one.
                tokens.append("".join(buf))
                buf.clear()
                quote = None
                i += 1
                continue
            buf.append(c)
            i += 1
            continue

        if c in _WHITESPACE:
            skip = _continuation_length(text, i)
            if buf:
                tokens.append("".join(buf))
                buf.clear()
            i += skip or 1
            continue

        if c == "\\":
            nxt = text[i + 1:i + 2]
            if nxt == " " or nxt in _QUOTES:
                buf.append(c)
                buf.append(nxt)
                i += 2
                continue
            buf.append(c)
            i += 1
            continue

        if not buf and c in _QUOTES:
            quote = c
            i += 1
            continue

        buf.append(c)
        i += 1

    if buf:
        tokens.append("".join(buf))
    return tokens


def join_args(args: Iterable[str]) -> str:
    """Join argv into one display string, quoting where needed."""
    parts = []
    for arg in args:
        if _NEEDS_DOUBLE_QUOTES.search(arg):
            parts.append(f'"{arg}"')
        elif _NEEDS_SINGLE_QUOTES.search(arg):
            parts.append(f"'{arg}'")
        else:
            parts.append(arg)
    return " ".join(parts)
