"""Whisker configuration.

WhiskerConfig is the central configuration object, frozen after creation.
Every component receives it (or the values it needs) at construction time.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

ALL_WATCH_EVENTS: frozenset[str] = frozenset(
    {"created", "modified", "removed", "dir_created", "dir_removed"}
)


@dataclass(frozen=True, slots=True)
class FileRule:
    """One entry of the ``files`` list.

    Attributes:
        match: Glob patterns, relative to ``scope_root``.
        reaction: Reaction reference (``reload``, ``inject:<scope>`` or
            ``module:attr``).  ``None`` means a full reload.
        scope_root: Directory the patterns are relative to.  Relative values
            are resolved against the config root; ``None`` means the root itself.

    """

    match: tuple[str, ...]
    reaction: str | None = None
    scope_root: str | None = None


@dataclass(frozen=True, slots=True)
class WhiskerConfig:
    """Configuration for a whisker process.

    Attributes:
        root: Project root.  Always resolved to an absolute path on construction.
        host: Bind address for the dev server.
        port: Bind port for the dev server.
        proxy: Backend address (``host:port`` or URL) that ordinary traffic is
            forwarded to.  ``None`` disables proxying.
        files: Ordered watch rules.  Declaration order is significant.
        watch_roots: Directories handed to the filesystem watcher.  Empty
            means ``(root,)``.
        ignored: Names or globs the watcher never reports.
        watch_events: Change kinds that reach the rule matcher.
        reload_delay: Minimum wait (ms) after the first matching change.
        reload_debounce: Quiet period (ms) required after the last matching change.
        reload_max_wait: Hard ceiling (ms) on a pending reaction.  ``0`` means
            four times the larger of the two windows.
        use_polling: Poll the filesystem instead of using native notifications.
        notify: Show reaction notices in the browser.
        open: Open the browser on startup.
        log_level: Reporter verbosity.
        log_prefix: Prefix printed in front of every diagnostic line.
        heartbeat_interval: Seconds between heartbeats to connected browsers.
        client_timeout: Seconds an undrained client may lag before it is dropped.
        client_queue_size: Per-client message buffer.

    """

    root: Path = field(default_factory=Path.cwd)
    host: str = "127.0.0.1"
    port: int = 3000
    proxy: str | None = None
    files: tuple[FileRule, ...] = ()
    watch_roots: tuple[Path, ...] = ()
    ignored: tuple[str, ...] = ("node_modules", ".git")
    watch_events: frozenset[str] = ALL_WATCH_EVENTS
    reload_delay: int = 0
    reload_debounce: int = 250
    reload_max_wait: int = 0
    use_polling: bool = False
    notify: bool = False
    open: bool = False
    log_level: str = "info"
    log_prefix: str = "whisker"
    heartbeat_interval: float = 15.0
    client_timeout: float = 45.0
    client_queue_size: int = 64

    def __post_init__(self) -> None:
        # watchfiles reports absolute paths; rule scopes are compared with
        # Path.relative_to(), so everything must be absolute.
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())
        roots = self.watch_roots or (self.root,)
        object.__setattr__(
            self,
            "watch_roots",
            tuple(r if r.is_absolute() else _join(self.root, r) for r in roots),
        )

    @property
    def proxy_url(self) -> str | None:
        """Backend base URL without a trailing slash, or None."""
        if not self.proxy:
            return None
        target = self.proxy.rstrip("/")
        if "://" not in target:
            target = f"http://{target}"
        return target

    @property
    def max_wait_ms(self) -> int:
        """Effective hard ceiling for one debounce cycle, in milliseconds."""
        if self.reload_max_wait > 0:
            return self.reload_max_wait
        return 4 * max(self.reload_delay, self.reload_debounce)

    def scope_path(self, rule: FileRule) -> Path:
        """Absolute directory a rule's patterns are relative to."""
        if rule.scope_root is None:
            return self.root
        scope = Path(rule.scope_root)
        if scope.is_absolute():
            return scope
        return _join(self.root, scope)


def _join(root: Path, relative: Path) -> Path:
    # Collapse ".." without following symlinks: watchfiles reports paths
    # under the roots exactly as they were given.
    return Path(os.path.normpath(root / relative))
