"""Client registry — the set of browsers currently listening for updates.

Each browser holds one long-lived connection to the dispatch endpoint.  The
connection is represented by a ``QueueChannel``: the broadcaster enqueues
messages, the connection's generator drains them.  Every drained message
counts as an acknowledgment; a client whose oldest undrained message is
older than ``client_timeout`` is considered dead and removed.

Thread Safety:
    Membership is protected by a ``threading.Lock``; ``active_clients()``
    returns a snapshot so no lock is held during delivery.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from whisker._errors import DeliveryError

if TYPE_CHECKING:
    from whisker.observability.collector import PipelineCollector


class Channel(Protocol):
    """Outbound side of a client connection."""

    @property
    def pending(self) -> int: ...

    def send(self, message: Any) -> None: ...

    def close(self) -> None: ...


_END_OF_STREAM = object()


class QueueChannel:
    """An ``asyncio.Queue`` standing in for the browser connection.

    ``send`` raises ``DeliveryError`` once the channel is closed or when the
    browser stopped draining and ``maxsize`` messages are waiting.  ``close``
    queues an end-of-stream marker behind the buffered messages: a waiting
    ``receive`` wakes up and returns ``None`` once they are drained.
    """

    __slots__ = ("_closed", "_maxsize", "_queue")

    def __init__(self, maxsize: int = 64) -> None:
        # Unbounded underneath so the end marker always fits.
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._maxsize = maxsize
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Messages enqueued but not yet drained."""
        size = self._queue.qsize()
        if self._closed and size:
            return size - 1
        return size

    def send(self, message: Any) -> None:
        if self._closed:
            raise DeliveryError("connection closed")
        if self._maxsize > 0 and self._queue.qsize() >= self._maxsize:
            msg = f"client buffer full ({self._maxsize} messages)"
            raise DeliveryError(msg)
        self._queue.put_nowait(message)

    async def receive(self) -> Any:
        """Wait for the next message.  Returns ``None`` at end of stream."""
        if self._closed and self._queue.empty():
            return None
        message = await self._queue.get()
        if message is _END_OF_STREAM:
            return None
        return message

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_END_OF_STREAM)


@dataclass(eq=False, slots=True)
class ClientHandle:
    """The registry's record of one connected browser.

    Attributes:
        client_id: Unique identifier for this connection.
        channel: Outbound message channel.
        connected_at: Monotonic time of connection.
        last_ack_at: Monotonic time the client last drained a message.
        waiting_since: When the oldest undrained message was sent, or None.

    """

    client_id: str
    channel: Channel
    connected_at: float = field(default_factory=time.monotonic)
    last_ack_at: float = 0.0
    waiting_since: float | None = None

    def __post_init__(self) -> None:
        if not self.last_ack_at:
            self.last_ack_at = self.connected_at

    def deliver(self, message: Any, now: float) -> None:
        """Send *message*; raises ``DeliveryError`` if the channel refuses it."""
        self.channel.send(message)
        if self.waiting_since is None:
            self.waiting_since = now

    def acknowledge(self, now: float) -> None:
        """Note that the client drained a message."""
        self.last_ack_at = now
        self.waiting_since = now if self.channel.pending else None

    def is_stale(self, now: float, timeout: float) -> bool:
        return self.waiting_since is not None and now - self.waiting_since > timeout


class ClientRegistry:
    """Concurrency-safe mapping of client id to ``ClientHandle``.

    Args:
        client_timeout: Seconds an undrained message may wait before the
            client is dropped by ``reap_stale``.
        clock: Monotonic clock.
        collector: Records connects and drops.

    """

    def __init__(
        self,
        *,
        client_timeout: float = 45.0,
        clock: Callable[[], float] = time.monotonic,
        collector: PipelineCollector | None = None,
    ) -> None:
        self._clients: dict[str, ClientHandle] = {}
        self._lock = threading.Lock()
        self._timeout = client_timeout
        self._clock = clock
        self._collector = collector

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    def __len__(self) -> int:
        return self.client_count

    def register(self, handle: ClientHandle) -> None:
        """Add *handle*.  A reused id replaces (and closes) the old handle."""
        with self._lock:
            previous = self._clients.get(handle.client_id)
            self._clients[handle.client_id] = handle
        if previous is not None and previous is not handle:
            previous.channel.close()
        if self._collector is not None:
            self._collector.record_connect(handle.client_id)

    def unregister(self, client_id: str, *, reason: str = "disconnect") -> ClientHandle | None:
        """Remove a client and close its channel.  Unknown ids are ignored."""
        with self._lock:
            handle = self._clients.pop(client_id, None)
        if handle is None:
            return None
        handle.channel.close()
        if self._collector is not None:
            self._collector.record_drop(client_id, reason)
        return handle

    def is_active(self, client_id: str) -> bool:
        with self._lock:
            return client_id in self._clients

    def get(self, client_id: str) -> ClientHandle | None:
        with self._lock:
            return self._clients.get(client_id)

    def active_clients(self) -> frozenset[ClientHandle]:
        """Snapshot of the current members (no lock held on return)."""
        with self._lock:
            return frozenset(self._clients.values())

    def reap_stale(self, now: float | None = None) -> list[str]:
        """Unregister clients that stopped draining.  Returns their ids."""
        when = self._clock() if now is None else now
        stale = [
            handle.client_id
            for handle in self.active_clients()
            if handle.is_stale(when, self._timeout)
        ]
        for client_id in stale:
            self.unregister(client_id, reason="stale")
        return stale

    def close_all(self) -> int:
        """Unregister every client (shutdown).  Returns how many were closed."""
        with self._lock:
            handles = list(self._clients.values())
            self._clients.clear()
        for handle in handles:
            handle.channel.close()
            if self._collector is not None:
                self._collector.record_drop(handle.client_id, "shutdown")
        return len(handles)
