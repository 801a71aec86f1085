"""Reactive pipeline coordinator — connects the watcher to the broadcaster.

Orchestrates the full change propagation flow:
    1. FileWatcher yields a ChangeRecord (or a WatcherGap marker)
    2. Records whose kind is not in ``watch_events`` are dropped
    3. RuleMatcher finds the matching rules, in declaration order
    4. DebounceScheduler coalesces each rule's burst into one PendingReaction
    5. ReactionExecutor turns the fired reaction into a DispatchCommand
    6. Broadcaster delivers the command to every connected browser

Each stage isolates failures to its own unit of work: one record, one rule,
one client.  Nothing raised while handling one change stops the pipeline.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from whisker._errors import WatcherGapError
from whisker.config import ALL_WATCH_EVENTS
from whisker.reactive.debounce import DebounceScheduler, PendingReaction
from whisker.watch.watcher import WatcherGap

if TYPE_CHECKING:
    from collections.abc import AsyncIterable

    from whisker.config import WhiskerConfig
    from whisker.observability.collector import PipelineCollector
    from whisker.observability.console import Reporter
    from whisker.reactive.broadcaster import Broadcaster
    from whisker.reactive.executor import ReactionExecutor
    from whisker.reactive.rules import RuleMatcher
    from whisker.watch.watcher import ChangeRecord, WatchItem


class ReactivePipeline:
    """Coordinates change propagation from file edit to browser update.

    Args:
        matcher: Immutable rule list.
        executor: Runs reactions.
        broadcaster: Delivers commands to browsers.
        scheduler_factory: Builds the debounce scheduler around the
            pipeline's fire callback.  Defaults to one built from *config*.
        config: Supplies ``watch_events`` and the debounce windows.
        collector: Records pipeline events.
        reporter: Prints diagnostics.

    """

    def __init__(
        self,
        matcher: RuleMatcher,
        executor: ReactionExecutor,
        broadcaster: Broadcaster,
        *,
        config: WhiskerConfig | None = None,
        scheduler_factory: Callable[[Callable[[PendingReaction], None]], DebounceScheduler]
        | None = None,
        collector: PipelineCollector | None = None,
        reporter: Reporter | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._matcher = matcher
        self._executor = executor
        self._broadcaster = broadcaster
        self._collector = collector
        self._reporter = reporter
        self._clock = clock
        self._watch_events = config.watch_events if config is not None else ALL_WATCH_EVENTS

        if scheduler_factory is not None:
            self._scheduler = scheduler_factory(self._on_fire)
        elif config is not None:
            self._scheduler = DebounceScheduler.from_config(config, self._on_fire, clock=clock)
        else:
            self._scheduler = DebounceScheduler(self._on_fire, clock=clock)

    @property
    def matcher(self) -> RuleMatcher:
        return self._matcher

    @property
    def scheduler(self) -> DebounceScheduler:
        return self._scheduler

    def handle(self, item: WatchItem) -> int:
        """Process one item of the watcher stream.

        Returns:
            Number of rules the item was routed to.

        """
        if isinstance(item, WatcherGap):
            return self._handle_gap(item)
        return self._handle_record(item)

    async def run(self, stream: AsyncIterable[WatchItem]) -> None:
        """Consume *stream* until it ends, isolating each item."""
        async for item in stream:
            try:
                self.handle(item)
            except Exception as exc:
                if self._reporter is not None:
                    self._reporter.error(f"pipeline error: {type(exc).__name__}: {exc}")

    def shutdown(self) -> int:
        """Cancel all pending reactions without running them."""
        return self._scheduler.cancel_all()

    def _handle_record(self, record: ChangeRecord) -> int:
        if str(record.kind) not in self._watch_events:
            return 0

        rules = self._matcher.match(record)
        if not rules:
            return 0

        path = str(record.path)
        if self._collector is not None:
            self._collector.record_match(
                path, str(record.kind), tuple(rule.id for rule in rules)
            )
        if self._reporter is not None:
            self._reporter.debug(f"{record.kind}: {path}")

        for rule in rules:
            self._scheduler.submit(rule.id, path, record.observed_at)
        return len(rules)

    def _handle_gap(self, gap: WatcherGap) -> int:
        """The watcher lost events: refresh every pending rule, never guess.

        Rules that are already collecting a burst may have missed part of
        it, so their windows are extended.  With nothing pending there is
        no rule to attribute the lost events to; a diagnostic is printed
        instead of pretending nothing changed.
        """
        error = WatcherGapError(gap.reason)
        refreshed = tuple(
            rule_id
            for rule_id in self._scheduler.pending_rule_ids()
            if self._scheduler.touch(rule_id, gap.observed_at)
        )
        if self._collector is not None:
            self._collector.record_gap(str(error), rule_ids=refreshed)
        if self._reporter is not None:
            if refreshed:
                self._reporter.warn(
                    f"{error}; extending {len(refreshed)} pending reaction(s)"
                )
            else:
                self._reporter.warn(
                    f"{error}; changes may have been missed, save again to reload"
                )
        return len(refreshed)

    def _on_fire(self, pending: PendingReaction) -> None:
        """Hand a closed window to the executor and broadcast the result."""
        try:
            command = self._executor.execute(pending.rule_id, pending.affected_paths)
            delivered = self._broadcaster.dispatch(command)
        except Exception as exc:
            if self._reporter is not None:
                self._reporter.error(
                    f"rule {pending.rule_id}: dispatch failed: {type(exc).__name__}: {exc}"
                )
            return

        wait_ms = (self._clock() - pending.first_seen_at) * 1000
        rule = self._matcher.rule(pending.rule_id)
        if self._collector is not None:
            self._collector.record_reaction(
                rule.id,
                rule.reaction.name,
                paths=tuple(sorted(pending.affected_paths)),
                command=str(command.kind),
                scope=command.scope,
                wait_ms=wait_ms,
            )
        if self._reporter is not None:
            self._reporter.info(_describe(command.scope, pending, delivered))


def _describe(scope: str | None, pending: PendingReaction, delivered: int) -> str:
    files = sorted(pending.affected_paths)
    changed = files[0] if len(files) == 1 else f"{len(files)} files"
    clients = "browser" if delivered == 1 else "browsers"
    if scope is not None:
        return f"{changed} changed, injecting {scope} into {delivered} {clients}"
    return f"{changed} changed, reloading {delivered} {clients}"
