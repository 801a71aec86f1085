"""Whisker's own endpoints — mounted under ``/__whisker/`` on the Chirp app.

The dispatch endpoint is the browser side of the client registry: each
EventSource connection registers one client, and the client is
unregistered when the stream ends.
"""

from __future__ import annotations

import json
import uuid
from typing import TYPE_CHECKING, Any

from whisker.server.client import CLIENT_SCRIPT, CLIENT_SCRIPT_PATH
from whisker.server.proxy import INTERNAL_PREFIX

if TYPE_CHECKING:
    from chirp import App, Request

    from whisker.observability.collector import PipelineCollector
    from whisker.reactive.broadcaster import Broadcaster
    from whisker.reactive.pipeline import ReactivePipeline
    from whisker.reactive.registry import ClientRegistry

EVENTS_ENDPOINT = INTERNAL_PREFIX + "events"
STATS_ENDPOINT = INTERNAL_PREFIX + "stats"


def stats_payload(
    registry: ClientRegistry,
    pipeline: ReactivePipeline,
    collector: PipelineCollector,
) -> dict[str, Any]:
    """Snapshot of the running coordinator for the stats endpoint."""
    return {
        "clients": registry.client_count,
        "rules": len(pipeline.matcher),
        "pending": list(pipeline.scheduler.pending_rule_ids()),
        "event_log": collector.log.stats(),
    }


class WhiskerRouter:
    """Registers whisker's routes on a Chirp ``App``.

    Args:
        app: The Chirp application.

    """

    def __init__(self, app: App) -> None:
        self._app = app

    def register_events_endpoint(self, broadcaster: Broadcaster, *, queue_size: int = 64) -> None:
        """Register the ``/__whisker/events`` SSE endpoint.

        Every connection becomes a ``ClientHandle`` with its own bounded
        channel.  The stream yields the broadcaster's messages as
        ``SSEEvent`` objects until the browser goes away or the registry
        drops the client.
        """
        from chirp import EventStream, SSEEvent

        from whisker.reactive.registry import ClientHandle, QueueChannel

        registry = broadcaster.registry

        async def events_handler(request: Request) -> Any:
            handle = ClientHandle(client_id=str(uuid.uuid4()), channel=QueueChannel(queue_size))
            registry.register(handle)

            async def generate():  # type: ignore[return]
                try:
                    async for message in broadcaster.client_generator(handle):
                        yield SSEEvent(data=message.data, event=message.event)
                finally:
                    registry.unregister(handle.client_id)

            return EventStream(generate())

        events_handler.__name__ = "whisker_events"
        events_handler.__qualname__ = "WhiskerRouter.whisker_events"

        self._app.route(EVENTS_ENDPOINT, name="whisker:events")(events_handler)

    def register_client_script(self) -> None:
        """Serve the browser client at ``/__whisker/client.js``."""

        async def client_handler(request: Request) -> Any:
            from chirp.http.response import Response

            return Response(
                body=CLIENT_SCRIPT,
                status=200,
                content_type="application/javascript; charset=utf-8",
            )

        client_handler.__name__ = "whisker_client"
        client_handler.__qualname__ = "WhiskerRouter.whisker_client"

        self._app.route(CLIENT_SCRIPT_PATH, name="whisker:client")(client_handler)

    def register_stats_endpoint(
        self,
        pipeline: ReactivePipeline,
        registry: ClientRegistry,
        collector: PipelineCollector,
    ) -> None:
        """Register the ``/__whisker/stats`` JSON endpoint."""

        async def stats_handler(request: Request) -> Any:
            from chirp.http.response import Response

            payload = json.dumps(stats_payload(registry, pipeline, collector), indent=2)
            return Response(body=payload, status=200, content_type="application/json")

        stats_handler.__name__ = "whisker_stats"
        stats_handler.__qualname__ = "WhiskerRouter.whisker_stats"

        self._app.route(STATS_ENDPOINT, name="whisker:stats")(stats_handler)
