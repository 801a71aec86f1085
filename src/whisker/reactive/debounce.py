"""Debounce scheduler — coalesces bursts of changes into one reaction per rule.

Editors often write a file several times per logical save (temp file and
rename, repeated syncs).  Each rule therefore runs a tiny state machine::

    Idle --submit--> Pending(first_seen_at, last_seen_at) --timer--> Idle
                        ^            |
                        +--submit----+   (update last_seen_at, re-arm)

A pending rule fires once every enabled window is satisfied:

- delay window: ``first_seen_at + delay`` has passed (minimum wait);
- debounce window: ``last_seen_at + debounce`` has passed (quiet period).

A continuous stream of writes would keep pushing the debounce deadline, so
the fire time is clamped to ``first_seen_at + max_wait``.  With both
windows disabled the reaction fires inside ``submit()``.

Ownership: the ``PendingReaction`` lives in the scheduler until it fires;
firing removes it from the scheduler and hands it to ``on_fire``. Nothing
else ever holds a reference to a live one.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from whisker.config import WhiskerConfig


@dataclass(slots=True)
class PendingReaction:
    """Accumulated state of one rule inside its debounce window."""

    rule_id: int
    first_seen_at: float
    last_seen_at: float
    affected_paths: set[str] = field(default_factory=set)


class DebounceScheduler:
    """Per-rule delay/debounce timers on the running asyncio loop.

    Args:
        on_fire: Receives each ``PendingReaction`` when its window closes.
        delay: Minimum wait after the first change, in seconds (0 disables).
        debounce: Quiet period after the last change, in seconds (0 disables).
        max_wait: Hard ceiling after the first change, in seconds.  ``None``
            means four times the larger window.
        clock: Monotonic clock; timestamps passed to ``submit`` must use it.

    """

    def __init__(
        self,
        on_fire: Callable[[PendingReaction], None],
        *,
        delay: float = 0.0,
        debounce: float = 0.0,
        max_wait: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if delay < 0 or debounce < 0:
            msg = "delay and debounce must not be negative"
            raise ValueError(msg)
        self._on_fire = on_fire
        self._delay = delay
        self._debounce = debounce
        self._max_wait = max_wait if max_wait is not None else 4 * max(delay, debounce)
        self._clock = clock
        self._pending: dict[int, PendingReaction] = {}
        self._timers: dict[int, asyncio.TimerHandle] = {}

    @classmethod
    def from_config(
        cls,
        config: WhiskerConfig,
        on_fire: Callable[[PendingReaction], None],
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> DebounceScheduler:
        """Build a scheduler from the millisecond settings in *config*."""
        return cls(
            on_fire,
            delay=config.reload_delay / 1000,
            debounce=config.reload_debounce / 1000,
            max_wait=config.max_wait_ms / 1000,
            clock=clock,
        )

    @property
    def immediate(self) -> bool:
        """True when both windows are disabled."""
        return self._delay == 0 and self._debounce == 0

    def state(self, rule_id: int) -> Literal["idle", "pending"]:
        return "pending" if rule_id in self._pending else "idle"

    def pending_rule_ids(self) -> tuple[int, ...]:
        """Rules currently inside a window, in the order they became pending."""
        return tuple(self._pending)

    def submit(self, rule_id: int, path: str, timestamp: float) -> None:
        """Register a matching change for *rule_id*.

        Must be called from the event loop thread.
        """
        if self.immediate:
            self._on_fire(PendingReaction(rule_id, timestamp, timestamp, {path}))
            return

        pending = self._pending.get(rule_id)
        if pending is None:
            pending = PendingReaction(rule_id, timestamp, timestamp, {path})
            self._pending[rule_id] = pending
        else:
            pending.last_seen_at = max(pending.last_seen_at, timestamp)
            pending.affected_paths.add(path)
        self._arm(pending)

    def touch(self, rule_id: int, timestamp: float) -> bool:
        """Treat *timestamp* as fresh activity for a pending rule.

        Returns False (and does nothing) when the rule is idle.
        """
        pending = self._pending.get(rule_id)
        if pending is None:
            return False
        pending.last_seen_at = max(pending.last_seen_at, timestamp)
        self._arm(pending)
        return True

    def due_at(self, pending: PendingReaction) -> float:
        """Clock reading at which *pending* fires."""
        candidates = []
        if self._delay > 0:
            candidates.append(pending.first_seen_at + self._delay)
        if self._debounce > 0:
            candidates.append(pending.last_seen_at + self._debounce)
        due = max(candidates) if candidates else pending.first_seen_at
        return min(due, pending.first_seen_at + self._max_wait)

    def cancel_all(self) -> int:
        """Drop every pending reaction without firing.  Returns how many."""
        for handle in self._timers.values():
            handle.cancel()
        count = len(self._pending)
        self._timers.clear()
        self._pending.clear()
        return count

    def _arm(self, pending: PendingReaction) -> None:
        previous = self._timers.pop(pending.rule_id, None)
        if previous is not None:
            previous.cancel()
        loop = asyncio.get_running_loop()
        wait = max(0.0, self.due_at(pending) - self._clock())
        self._timers[pending.rule_id] = loop.call_later(wait, self._fire, pending.rule_id)

    def _fire(self, rule_id: int) -> None:
        self._timers.pop(rule_id, None)
        pending = self._pending.pop(rule_id, None)
        if pending is None:
            return
        self._on_fire(pending)
