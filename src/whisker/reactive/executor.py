"""Reaction executor — turns a fired rule into a dispatch command.

Custom reactions are user code, so every call is isolated: an exception, or
a return value that is not a ``DispatchCommand``, becomes a ``ReactionError``
that is reported and recorded, and the rule falls back to a full reload.  A
faulty rule can make the update coarser but never suppress it.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from whisker._errors import ReactionError
from whisker.reactive.commands import CommandKind, DispatchCommand
from whisker.reactive.reactions import CustomReaction, ReactionContext

if TYPE_CHECKING:
    from whisker.observability.collector import PipelineCollector
    from whisker.observability.console import Reporter
    from whisker.reactive.rules import MatchRule, RuleMatcher


class ReactionExecutor:
    """Runs a rule's reaction with the paths collected in its window.

    Args:
        matcher: Source of the (immutable) rule list.
        collector: Records ``ReactionFailed`` events.
        reporter: Prints reaction errors and notices.
        notice_sink: Receives notices from custom reactions, after the
            command has been built (e.g. ``Broadcaster.push_notice``).
        clock: Monotonic clock used for ``issued_at``.

    """

    def __init__(
        self,
        matcher: RuleMatcher,
        *,
        collector: PipelineCollector | None = None,
        reporter: Reporter | None = None,
        notice_sink: Callable[[str], object] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._matcher = matcher
        self._collector = collector
        self._reporter = reporter
        self._notice_sink = notice_sink
        self._clock = clock

    def execute(self, rule_id: int, affected_paths: Iterable[str]) -> DispatchCommand:
        """Run the reaction of *rule_id* and return the command to broadcast."""
        rule = self._matcher.rule(rule_id)
        reaction = rule.reaction
        if not isinstance(reaction, CustomReaction):
            return DispatchCommand.full_reload(issued_at=self._clock())

        ctx = ReactionContext(rule=rule, paths=tuple(sorted(affected_paths)), _clock=self._clock)
        try:
            command = self._invoke(reaction, ctx)
        except ReactionError as exc:
            self._report_failure(rule, exc)
            command = DispatchCommand.full_reload(issued_at=self._clock())

        self._deliver_notices(rule, ctx.notices)
        return command

    def _invoke(self, reaction: CustomReaction, ctx: ReactionContext) -> DispatchCommand:
        try:
            result = reaction.handler(ctx)
        except Exception as exc:
            msg = f"reaction {reaction.name!r} raised {type(exc).__name__}: {exc}"
            raise ReactionError(msg) from exc

        if not isinstance(result, DispatchCommand):
            msg = (
                f"reaction {reaction.name!r} returned {type(result).__name__}, "
                "expected a DispatchCommand"
            )
            raise ReactionError(msg)
        if result.kind is CommandKind.SCOPED_UPDATE and not result.scope:
            msg = f"reaction {reaction.name!r} returned a scoped update without a scope"
            raise ReactionError(msg)
        return result

    def _report_failure(self, rule: MatchRule, error: ReactionError) -> None:
        name = getattr(rule.reaction, "name", "custom")
        if self._reporter is not None:
            self._reporter.error(f"{error} (rule {rule.id}); falling back to full reload")
        if self._collector is not None:
            self._collector.record_reaction_error(rule.id, name, error)

    def _deliver_notices(self, rule: MatchRule, notices: tuple[str, ...]) -> None:
        for notice in notices:
            if self._reporter is not None:
                self._reporter.info(notice)
            if self._notice_sink is None:
                continue
            try:
                self._notice_sink(notice)
            except Exception as exc:
                if self._reporter is not None:
                    self._reporter.warn(f"notice from rule {rule.id} not delivered: {exc}")
