"""Broadcaster — pushes dispatch commands to every connected browser.

Delivery takes a snapshot of the registry and enqueues one message per
client.  Clients are independent: a client whose channel refuses the message
is reported to the registry and removed, the others are unaffected.  Since
every message goes through the client's own FIFO queue, each client sees
commands in the order they were generated.
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from whisker._errors import DeliveryError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from whisker.observability.collector import PipelineCollector
    from whisker.observability.console import Reporter
    from whisker.reactive.commands import DispatchCommand
    from whisker.reactive.registry import ClientHandle, ClientRegistry, QueueChannel


DISPATCH_EVENT = "whisker:dispatch"
PING_EVENT = "whisker:ping"
NOTIFY_EVENT = "whisker:notify"


@dataclass(frozen=True, slots=True)
class Message:
    """One server-sent event: name plus text payload."""

    event: str
    data: str


class Broadcaster:
    """Fans messages out to a ``ClientRegistry`` snapshot.

    Args:
        registry: Client membership.
        collector: Records ``CommandDispatched`` events.
        reporter: Prints delivery diagnostics.
        clock: Monotonic clock.

    """

    def __init__(
        self,
        registry: ClientRegistry,
        *,
        collector: PipelineCollector | None = None,
        reporter: Reporter | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._collector = collector
        self._reporter = reporter
        self._clock = clock

    @property
    def registry(self) -> ClientRegistry:
        return self._registry

    def dispatch(self, command: DispatchCommand) -> int:
        """Deliver *command* to every client registered right now.

        Returns:
            Number of clients that accepted the message.

        """
        message = Message(DISPATCH_EVENT, json.dumps(command.to_message()))
        delivered, dropped = self._deliver(message)
        if self._collector is not None:
            self._collector.record_dispatch(
                str(command.kind),
                scope=command.scope,
                clients_notified=delivered,
                clients_dropped=dropped,
            )
        return delivered

    def push_notice(self, text: str) -> int:
        """Show *text* in every browser (the ``notify`` option)."""
        delivered, _ = self._deliver(Message(NOTIFY_EVENT, json.dumps({"message": text})))
        return delivered

    def heartbeat(self) -> int:
        """Ping every client, then drop the ones that stopped draining.

        Returns:
            Number of clients still registered afterwards.

        """
        self._deliver(Message(PING_EVENT, str(int(self._clock()))))
        for client_id in self._registry.reap_stale(self._clock()):
            if self._reporter is not None:
                self._reporter.debug(f"client {client_id[:8]} stopped responding, dropped")
        return self._registry.client_count

    async def client_generator(self, handle: ClientHandle) -> AsyncIterator[Message]:
        """Async generator that yields messages from a client's channel.

        Used by the dispatch endpoint.  Every yielded message acknowledges
        the client.  The stream ends once the registry closes the channel
        and the messages buffered before that are drained.  Catches
        ``CancelledError`` (client disconnect / task cancellation) and
        ``GeneratorExit`` (generator cleanup) so a closing connection ends
        quietly.
        """
        channel: QueueChannel = handle.channel  # type: ignore[assignment]
        try:
            while True:
                message = await channel.receive()
                if message is None:
                    return
                handle.acknowledge(self._clock())
                yield message
        except (asyncio.CancelledError, GeneratorExit):
            return

    def _deliver(self, message: Message) -> tuple[int, int]:
        snapshot = self._registry.active_clients()
        now = self._clock()
        delivered = 0
        dropped = 0
        for handle in sorted(snapshot, key=_connection_order):
            # Unregistered after the snapshot was taken: skip, never retry.
            if not self._registry.is_active(handle.client_id):
                continue
            try:
                handle.deliver(message, now)
            except Exception as exc:
                if isinstance(exc, DeliveryError):
                    reason = str(exc)
                else:
                    reason = f"{type(exc).__name__}: {exc}"
                self._registry.unregister(handle.client_id, reason=reason)
                dropped += 1
                if self._reporter is not None:
                    self._reporter.debug(f"client {handle.client_id[:8]} dropped: {reason}")
            else:
                delivered += 1
        return delivered, dropped


def _connection_order(handle: ClientHandle) -> tuple[float, str]:
    return (handle.connected_at, handle.client_id)
