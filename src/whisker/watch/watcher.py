"""File watcher — the change stream feeding the reactive pipeline.

Runs ``watchfiles.awatch`` over the configured watch roots and turns each
raw notification into an immutable ``ChangeRecord``.  Records travel through
a bounded queue; when the consumer falls behind and the queue overflows, the
dropped records are replaced by a single ``WatcherGap`` marker so the
pipeline knows the stream is incomplete.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from watchfiles import Change

from whisker.watch.filters import IgnoreFilter

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from whisker.config import WhiskerConfig
    from whisker.observability.console import Reporter


class ChangeKind(StrEnum):
    """Kind of filesystem change."""

    CREATED = "created"
    MODIFIED = "modified"
    REMOVED = "removed"
    DIR_CREATED = "dir_created"
    DIR_REMOVED = "dir_removed"

    @property
    def is_directory(self) -> bool:
        return self in (ChangeKind.DIR_CREATED, ChangeKind.DIR_REMOVED)


@dataclass(frozen=True, slots=True)
class ChangeRecord:
    """A file change detected by the watcher.

    Attributes:
        path: Absolute path of the changed file or directory.
        kind: Type of filesystem change.
        observed_at: Monotonic clock reading (seconds) when it was seen.

    """

    path: Path
    kind: ChangeKind
    observed_at: float = field(default_factory=time.monotonic)


@dataclass(frozen=True, slots=True)
class WatcherGap:
    """Marker for records the watcher had to drop."""

    observed_at: float
    reason: str


type WatchItem = ChangeRecord | WatcherGap


_STOP = object()


def to_record(
    change: Change,
    path_str: str,
    known_dirs: set[str],
    *,
    observed_at: float | None = None,
) -> ChangeRecord:
    """Convert one raw watchfiles notification into a ``ChangeRecord``.

    watchfiles does not say whether a path is a directory.  Additions are
    checked on disk; a removal is a directory removal only if the path was
    previously seen being created as a directory.
    """
    path = Path(path_str)
    when = time.monotonic() if observed_at is None else observed_at

    if change == Change.added:
        if path.is_dir():
            known_dirs.add(path_str)
            return ChangeRecord(path=path, kind=ChangeKind.DIR_CREATED, observed_at=when)
        return ChangeRecord(path=path, kind=ChangeKind.CREATED, observed_at=when)

    if change == Change.deleted:
        if path_str in known_dirs:
            known_dirs.discard(path_str)
            return ChangeRecord(path=path, kind=ChangeKind.DIR_REMOVED, observed_at=when)
        return ChangeRecord(path=path, kind=ChangeKind.REMOVED, observed_at=when)

    return ChangeRecord(path=path, kind=ChangeKind.MODIFIED, observed_at=when)


class FileWatcher:
    """Watches the configured roots and yields change records.

    Uses watchfiles for efficient filesystem monitoring (or polling when
    ``use_polling`` is set).  Ignore patterns are applied inside watchfiles
    so ignored trees never reach the queue.

    Args:
        config: Resolved configuration (watch roots, ignore list, polling).
        queue_size: Records buffered between the watcher and the pipeline.
        reporter: Console reporter for diagnostics.

    """

    def __init__(
        self,
        config: WhiskerConfig,
        *,
        queue_size: int = 1024,
        reporter: Reporter | None = None,
    ) -> None:
        self._config = config
        self._reporter = reporter
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=queue_size)
        self._stop_event = asyncio.Event()
        self._filter = IgnoreFilter(config.ignored, config.watch_roots)
        self._known_dirs: set[str] = set()
        self._dropped = 0
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether ``changes()`` is currently being iterated."""
        return self._running

    @property
    def roots(self) -> tuple[Path, ...]:
        """Watch roots that exist on disk."""
        return tuple(root for root in self._config.watch_roots if root.exists())

    def stop(self) -> None:
        """Signal the watcher to stop; ``changes()`` ends after draining."""
        self._stop_event.set()

    async def changes(self) -> AsyncIterator[WatchItem]:
        """Async iterator that yields records (and gap markers) as they occur."""
        producer = asyncio.create_task(self._watch_loop())
        self._running = True
        try:
            while True:
                item = await self._queue.get()
                if item is _STOP:
                    break
                yield item  # type: ignore[misc]
                if self._dropped:
                    dropped, self._dropped = self._dropped, 0
                    yield WatcherGap(
                        observed_at=time.monotonic(),
                        reason=f"watcher queue overflowed, {dropped} event(s) dropped",
                    )
        finally:
            self._running = False
            self._stop_event.set()
            producer.cancel()

    def offer(self, record: ChangeRecord) -> bool:
        """Queue *record* without waiting; count it as dropped when full."""
        try:
            self._queue.put_nowait(record)
        except asyncio.QueueFull:
            self._dropped += 1
            return False
        return True

    async def _watch_loop(self) -> None:
        """Run watchfiles and push records onto the queue."""
        from watchfiles import awatch

        roots = self.roots
        missing = set(self._config.watch_roots) - set(roots)
        if self._reporter is not None:
            for root in sorted(missing):
                self._reporter.warn(f"watch root does not exist: {root}")

        try:
            if roots:
                async for raw_changes in awatch(
                    *roots,
                    watch_filter=self._filter,
                    stop_event=self._stop_event,
                    force_polling=self._config.use_polling,
                    debounce=50,
                    step=25,
                ):
                    now = time.monotonic()
                    for change_type, path_str in sorted(raw_changes, key=lambda c: c[1]):
                        self.offer(
                            to_record(
                                change_type, path_str, self._known_dirs, observed_at=now
                            )
                        )
        finally:
            await self._queue.put(_STOP)
