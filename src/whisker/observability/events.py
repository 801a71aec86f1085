"""Event model for pipeline observability.

Defines the structured events recorded while changes travel from the
watcher to the browsers.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Change stream events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ChangeMatched:
    """A change record matched one or more watch rules.

    Attributes:
        path: Changed path.
        kind: Change kind value (``modified``, ``dir_created``, ...).
        rule_ids: Matching rules in declaration order.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    kind: str
    rule_ids: tuple[int, ...]
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class WatcherGapDetected:
    """The watcher reported dropped events.

    Attributes:
        reason: What the watcher reported.
        rule_ids: Pending rules refreshed because of the gap (may be empty).
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    reason: str
    rule_ids: tuple[int, ...]
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Reaction events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ReactionFired:
    """A pending reaction left its debounce window and produced a command.

    Attributes:
        rule_id: Rule whose reaction ran.
        reaction: Reaction name (``reload``, ``inject:*.css``, ``module:attr``).
        paths: Paths collected during the window.
        command: Resulting command kind.
        scope: Command scope, if any.
        wait_ms: Time from first matching change to firing.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    rule_id: int
    reaction: str
    paths: tuple[str, ...]
    command: str
    scope: str | None
    wait_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ReactionFailed:
    """A custom reaction failed and the default reload was used instead.

    Attributes:
        rule_id: Rule whose reaction failed.
        reaction: Reaction name.
        error_type: Exception class name of the underlying failure.
        message: Error message.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    rule_id: int
    reaction: str
    error_type: str
    message: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Client events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CommandDispatched:
    """A dispatch command was delivered to the connected browsers.

    Attributes:
        command: ``full`` or ``scoped``.
        scope: Command scope, if any.
        clients_notified: Clients that accepted the message.
        clients_dropped: Clients removed because delivery failed.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    command: str
    scope: str | None
    clients_notified: int
    clients_dropped: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ClientConnected:
    """A browser opened the dispatch channel."""

    client_id: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ClientDropped:
    """A browser left the registry.

    Attributes:
        client_id: The removed client.
        reason: ``disconnect``, ``stale`` or the delivery failure message.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    client_id: str
    reason: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type PipelineEvent = (
    ChangeMatched
    | WatcherGapDetected
    | ReactionFired
    | ReactionFailed
    | CommandDispatched
    | ClientConnected
    | ClientDropped
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
