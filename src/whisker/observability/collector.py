"""Pipeline collector — records structured events from every pipeline stage.

Each stage of the pipeline (matcher, scheduler, executor, registry,
broadcaster) reports what it did through one collector so a single
``EventLog`` tells the whole story of a change.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.
    Safe for use from the event loop and from connection threads.

"""

from __future__ import annotations

from whisker.observability.events import (
    ChangeMatched,
    ClientConnected,
    ClientDropped,
    CommandDispatched,
    ReactionFailed,
    ReactionFired,
    WatcherGapDetected,
    now_ns,
)
from whisker.observability.log import EventLog


class PipelineCollector:
    """Structured event recorder for the change pipeline.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- Change stream -----

    def record_match(self, path: str, kind: str, rule_ids: tuple[int, ...]) -> None:
        """Record a change record that matched at least one rule."""
        self._log.append(
            ChangeMatched(path=path, kind=kind, rule_ids=rule_ids, timestamp_ns=now_ns())
        )

    def record_gap(self, reason: str, *, rule_ids: tuple[int, ...] = ()) -> None:
        """Record a watcher gap and the rules it refreshed."""
        self._log.append(
            WatcherGapDetected(reason=reason, rule_ids=rule_ids, timestamp_ns=now_ns())
        )

    # ----- Reactions -----

    def record_reaction(
        self,
        rule_id: int,
        reaction: str,
        *,
        paths: tuple[str, ...] = (),
        command: str = "full",
        scope: str | None = None,
        wait_ms: float = 0.0,
    ) -> None:
        """Record a reaction that produced a dispatch command."""
        self._log.append(
            ReactionFired(
                rule_id=rule_id,
                reaction=reaction,
                paths=paths,
                command=command,
                scope=scope,
                wait_ms=wait_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_reaction_error(
        self,
        rule_id: int,
        reaction: str,
        error: BaseException,
    ) -> None:
        """Record a failed custom reaction."""
        cause = error.__cause__ if error.__cause__ is not None else error
        self._log.append(
            ReactionFailed(
                rule_id=rule_id,
                reaction=reaction,
                error_type=type(cause).__name__,
                message=str(error),
                timestamp_ns=now_ns(),
            )
        )

    # ----- Clients -----

    def record_dispatch(
        self,
        command: str,
        *,
        scope: str | None = None,
        clients_notified: int = 0,
        clients_dropped: int = 0,
    ) -> None:
        """Record a dispatch command fan-out."""
        self._log.append(
            CommandDispatched(
                command=command,
                scope=scope,
                clients_notified=clients_notified,
                clients_dropped=clients_dropped,
                timestamp_ns=now_ns(),
            )
        )

    def record_connect(self, client_id: str) -> None:
        """Record a client joining the registry."""
        self._log.append(ClientConnected(client_id=client_id, timestamp_ns=now_ns()))

    def record_drop(self, client_id: str, reason: str) -> None:
        """Record a client leaving the registry."""
        self._log.append(
            ClientDropped(client_id=client_id, reason=reason, timestamp_ns=now_ns())
        )
