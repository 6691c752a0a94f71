"""Quoting helpers for command lines passed to native shells."""

from __future__ import annotations

from typing import Iterable


def quote(*args: str | Iterable[str]) -> str:
    """Render arguments as one double-quoted shell token.

    Arguments are joined with single spaces and the joined text is wrapped in
    one pair of double quotes. Embedded double quotes are doubled, which is how
    ``cmd.exe`` reads a literal quote inside a quoted token.

    Args:
        args: Arguments to quote. A single list or tuple is treated as the
            argument sequence itself.

    Returns:
        The quoted token, e.g. ``quote("a", "b") == '"a b"'``.
    """

    parts = _flatten(args)
    joined = " ".join(part.replace('"', '""') for part in parts)
    return f'"{joined}"'


def double_quote(*args: str | Iterable[str]) -> str:
    """Wrap the result of :func:`quote` in one more pair of double quotes.

    ``cmd /S /C`` strips the outermost pair of quotes from its command string,
    so a quoted path must be wrapped twice to survive as a quoted path.
    """

    return f'"{quote(*args)}"'


def _flatten(args: tuple[str | Iterable[str], ...]) -> list[str]:
    parts: list[str] = []
    for arg in args:
        if isinstance(arg, str):
            parts.append(arg)
        else:
            parts.extend(str(item) for item in arg)
    return parts
