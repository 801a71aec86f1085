"""Watcher adapter — filesystem change records for the reactive pipeline."""

from whisker.watch.filters import IgnoreFilter
from whisker.watch.watcher import ChangeKind, ChangeRecord, FileWatcher, WatcherGap

__all__ = [
    "ChangeKind",
    "ChangeRecord",
    "FileWatcher",
    "IgnoreFilter",
    "WatcherGap",
]
