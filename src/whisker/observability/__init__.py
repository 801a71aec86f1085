"""Pipeline observability — structured events plus console diagnostics.

Aggregates events from every stage of the change pipeline:
- **Matcher**: which rules a change matched, watcher gaps
- **Executor**: reactions fired or failed
- **Broadcaster / registry**: dispatch fan-out, client connects and drops

All events are frozen dataclasses with nanosecond timestamps, safe for
concurrent production from the event loop and connection handlers.

Quick Start:
    >>> from whisker.observability import PipelineCollector, EventLog
    >>> log = EventLog()
    >>> collector = PipelineCollector(log)
    >>> collector.record_connect("client-1")
    >>> len(log)
    1

"""

from whisker.observability.collector import PipelineCollector
from whisker.observability.console import Reporter
from whisker.observability.events import (
    ChangeMatched,
    ClientConnected,
    ClientDropped,
    CommandDispatched,
    PipelineEvent,
    ReactionFailed,
    ReactionFired,
    WatcherGapDetected,
    now_ns,
)
from whisker.observability.log import EventLog

__all__ = [
    "ChangeMatched",
    "ClientConnected",
    "ClientDropped",
    "CommandDispatched",
    "EventLog",
    "PipelineCollector",
    "PipelineEvent",
    "ReactionFailed",
    "ReactionFired",
    "Reporter",
    "WatcherGapDetected",
    "now_ns",
]
