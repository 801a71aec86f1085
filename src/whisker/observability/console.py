"""Console reporter — prefixed, level-filtered diagnostics on stderr.

Every human-facing line whisker prints goes through a ``Reporter`` so the
``log_level`` and ``log_prefix`` settings apply uniformly.  Detects
``NO_COLOR`` / ``TERM`` for safe fallback.
"""

from __future__ import annotations

import os
import sys
from typing import TextIO


# ---------------------------------------------------------------------------
# ANSI helpers — respect NO_COLOR (https://no-color.org)
# ---------------------------------------------------------------------------

def _supports_color() -> bool:
    """Return True if the terminal supports ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


COLOR = _supports_color()

RESET = "\033[0m" if COLOR else ""
BOLD = "\033[1m" if COLOR else ""
DIM = "\033[2m" if COLOR else ""
RED = "\033[31m" if COLOR else ""
CYAN = "\033[36m" if COLOR else ""
GREEN = "\033[32m" if COLOR else ""
YELLOW = "\033[33m" if COLOR else ""
MAGENTA = "\033[35m" if COLOR else ""
ORANGE = "\033[38;5;214m" if COLOR else ""


LEVELS: dict[str, int] = {
    "debug": 10,
    "info": 20,
    "warn": 30,
    "error": 40,
    "silent": 100,
}

_LEVEL_COLORS: dict[str, str] = {
    "debug": DIM,
    "info": CYAN,
    "warn": YELLOW,
    "error": RED,
}


class Reporter:
    """Writes ``[prefix] message`` lines to stderr above a level threshold.

    Args:
        level: Minimum level to print (``debug``, ``info``, ``warn``,
            ``error`` or ``silent``).
        prefix: Text shown in brackets in front of every line.
        stream: Output stream; defaults to ``sys.stderr`` at write time.

    """

    __slots__ = ("_prefix", "_stream", "_threshold")

    def __init__(
        self,
        level: str = "info",
        prefix: str = "whisker",
        *,
        stream: TextIO | None = None,
    ) -> None:
        if level not in LEVELS:
            msg = f"unknown log level {level!r} (expected one of {', '.join(LEVELS)})"
            raise ValueError(msg)
        self._threshold = LEVELS[level]
        self._prefix = prefix
        self._stream = stream

    def enabled(self, level: str) -> bool:
        """Whether messages at *level* are printed."""
        return LEVELS[level] >= self._threshold

    def debug(self, message: str) -> None:
        self._write("debug", message)

    def info(self, message: str) -> None:
        self._write("info", message)

    def warn(self, message: str) -> None:
        self._write("warn", message)

    def error(self, message: str) -> None:
        self._write("error", message)

    def _write(self, level: str, message: str) -> None:
        if not self.enabled(level):
            return
        color = _LEVEL_COLORS[level]
        tag = f"{color}[{self._prefix}]{RESET}" if self._prefix else ""
        stream = self._stream if self._stream is not None else sys.stderr
        print(f"{tag} {message}".lstrip(), file=stream)
