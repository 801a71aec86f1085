"""Ignore filter for watchfiles.

Entries of the ``ignored`` setting come in two flavours:

- a bare name or glob without ``/`` (``node_modules``, ``*.swp``) is
  compared with every path segment;
- an entry containing ``/`` (``web/tmp``, ``build/**``) is compared with the
  path relative to a watch root, and ignores everything below a match.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from watchfiles import DefaultFilter

from whisker.glob import GlobPattern, compile_glob

if TYPE_CHECKING:
    from collections.abc import Sequence

    from watchfiles import Change


class IgnoreFilter(DefaultFilter):
    """watchfiles ``DefaultFilter`` extended with whisker's ignore patterns.

    Args:
        ignored: Ignore entries from configuration.
        roots: Watch roots that relative entries are anchored to.

    Raises:
        MatchError: If an entry is not a valid glob.

    """

    def __init__(self, ignored: Sequence[str], roots: Sequence[Path]) -> None:
        super().__init__()
        self._roots = tuple(roots)
        self._segment_globs: list[GlobPattern] = []
        self._path_globs: list[GlobPattern] = []
        for entry in ignored:
            glob = compile_glob(entry.strip("/"))
            if "/" in glob.source:
                self._path_globs.append(glob)
            else:
                self._segment_globs.append(glob)

    def __call__(self, change: Change, path: str) -> bool:
        if not super().__call__(change, path):
            return False
        return not self.is_ignored(Path(path))

    def is_ignored(self, path: Path) -> bool:
        """Whether *path* falls under any ignore entry."""
        for root in self._roots:
            try:
                parts = path.relative_to(root).parts
            except ValueError:
                continue
            if any(glob.matches(part) for glob in self._segment_globs for part in parts):
                return True
            for depth in range(1, len(parts) + 1):
                prefix = "/".join(parts[:depth])
                if any(glob.matches(prefix) for glob in self._path_globs):
                    return True
        return False
